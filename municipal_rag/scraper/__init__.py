"""Web scraper module."""

from municipal_rag.scraper.chunker import ContentChunker, SectionChunker
from municipal_rag.scraper.crawler import MunicipalCrawler
from municipal_rag.scraper.downloader import DocumentDownloader, DocumentStorage
from municipal_rag.scraper.frontier import Frontier
from municipal_rag.scraper.models import (
    Chunk,
    ChunkMetadata,
    CrawlError,
    CrawlResult,
    DocumentDescriptor,
    DocumentType,
    FileType,
)
from municipal_rag.scraper.processor import DocumentProcessor

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "ContentChunker",
    "CrawlError",
    "CrawlResult",
    "DocumentDescriptor",
    "DocumentDownloader",
    "DocumentProcessor",
    "DocumentStorage",
    "DocumentType",
    "FileType",
    "Frontier",
    "MunicipalCrawler",
    "SectionChunker",
]
