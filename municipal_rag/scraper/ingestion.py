"""
Ingestion pipeline for municipal documents.

Orchestrates crawling, downloading, chunking, and vectorization, writing a
JSON artifact for each stage to the data directory.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import httpx

from municipal_rag.config.logging import get_logger
from municipal_rag.config.settings import get_settings
from municipal_rag.scraper.chunker import ContentChunker
from municipal_rag.scraper.crawler import MunicipalCrawler
from municipal_rag.scraper.downloader import DocumentDownloader, DocumentStorage
from municipal_rag.scraper.fetcher import Fetcher, create_client
from municipal_rag.scraper.models import CrawlResult
from municipal_rag.scraper.processor import DocumentProcessor, ProcessResult

logger = get_logger("ingestion")

CRAWL_RESULTS_FILE = "crawl-results.json"
CRAWL_ERRORS_FILE = "crawl-errors.json"
DOWNLOAD_RESULTS_FILE = "download-results.json"
CHUNKS_FILE = "processed-chunks.json"
PROCESSING_ERRORS_FILE = "processing-errors.json"
VECTORIZE_RESULTS_FILE = "vectorize-results.json"


@dataclass
class IngestionStats:
    """Statistics for a full ingestion run."""

    pages_visited: int = 0
    documents_found: int = 0
    crawl_errors: int = 0
    downloaded: int = 0
    skipped: int = 0
    download_errors: int = 0
    total_chunks: int = 0
    processing_errors: int = 0
    vectorized: int = 0
    vectorize_errors: int = 0
    artifacts: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pages_visited": self.pages_visited,
            "documents_found": self.documents_found,
            "crawl_errors": self.crawl_errors,
            "downloaded": self.downloaded,
            "skipped": self.skipped,
            "download_errors": self.download_errors,
            "total_chunks": self.total_chunks,
            "processing_errors": self.processing_errors,
            "vectorized": self.vectorized,
            "vectorize_errors": self.vectorize_errors,
        }


def write_json(directory: Path, name: str, data: Any) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / name
    path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info(f"Wrote {path}")
    return path


class IngestionPipeline:
    """
    Pipeline for ingesting documents from a municipal website.

    Handles the full flow from crawling to vector storage. Vectorization is
    optional: without a vectorizer the run ends after chunking.
    """

    def __init__(
        self,
        base_url: str | None = None,
        seed_urls: list[str] | None = None,
        page_budget: int | None = None,
        size_limit_kb: int | None = None,
        data_dir: Path | str | None = None,
        download_dir: Path | str | None = None,
        library: bool = False,
        vectorizer: Any | None = None,
        client: httpx.AsyncClient | None = None,
        batch_delay: float | None = None,
    ):
        """
        Initialize the ingestion pipeline.

        Args:
            base_url: Site root; defaults to ``MUNICIPAL_WEBSITE_URL``
            seed_urls: Start points for the frontier crawl
            page_budget: Maximum pages dequeued by the crawl
            size_limit_kb: Documents declared larger than this are skipped
            data_dir: Where JSON artifacts are written
            download_dir: Where downloaded files are written
            library: Crawl the document library pages instead of the frontier
            vectorizer: ``Vectorizer`` to embed and store chunks
            client: Shared HTTP client for crawl and download
            batch_delay: Pause between download batches
        """
        settings = get_settings()

        self.seed_urls = seed_urls
        self.library = library
        self.vectorizer = vectorizer
        self.data_dir = Path(data_dir or settings.data_dir)
        self.batch_delay = batch_delay
        self._client = client

        self.storage = DocumentStorage(download_dir)
        self.crawler = MunicipalCrawler(
            base_url=base_url,
            page_budget=page_budget,
            size_limit_kb=size_limit_kb,
            client=client,
            storage=self.storage,
        )
        self.size_limit_kb = self.crawler.size_limit_kb
        self.processor = DocumentProcessor(ContentChunker())

    async def crawl(self) -> CrawlResult:
        if self.library:
            return await self.crawler.crawl_library()
        return await self.crawler.crawl(self.seed_urls)

    async def run(self) -> IngestionStats:
        """
        Run the full ingestion pipeline.

        Returns:
            IngestionStats with summary
        """
        stats = IngestionStats()

        crawl_result = await self.crawl()
        stats.pages_visited = len(crawl_result.visited)
        stats.documents_found = len(crawl_result.documents)
        stats.crawl_errors = len(crawl_result.errors)
        self._write(stats, CRAWL_RESULTS_FILE, [d.to_dict() for d in crawl_result.documents])
        self._write(stats, CRAWL_ERRORS_FILE, [e.to_dict() for e in crawl_result.errors])

        if self._client is not None:
            download = await self._download(Fetcher(self._client), crawl_result)
        else:
            async with create_client() as client:
                download = await self._download(Fetcher(client), crawl_result)

        stats.downloaded = download.success_count
        stats.skipped = download.skipped_count
        stats.download_errors = len(download.errors)
        self._write(stats, DOWNLOAD_RESULTS_FILE, [d.to_dict() for d in download.documents])

        processed: ProcessResult = await asyncio.to_thread(
            self.processor.process, download.documents
        )
        stats.total_chunks = len(processed.chunks)
        stats.processing_errors = len(processed.errors)
        self._write(stats, CHUNKS_FILE, [c.to_dict() for c in processed.chunks])
        self._write(stats, PROCESSING_ERRORS_FILE, [e.to_dict() for e in processed.errors])

        if self.vectorizer is not None and processed.chunks:
            vectorized = await self.vectorizer.vectorize(processed.chunks)
            stats.vectorized = vectorized.success_count
            stats.vectorize_errors = vectorized.failure_count
            self._write(stats, VECTORIZE_RESULTS_FILE, vectorized.to_dict())

        logger.info(
            f"Ingestion complete: {stats.documents_found} documents, "
            f"{stats.downloaded} downloaded, {stats.total_chunks} chunks, "
            f"{stats.vectorized} vectorized"
        )
        return stats

    async def _download(self, fetcher: Fetcher, crawl_result: CrawlResult):
        downloader = DocumentDownloader(
            fetcher,
            storage=self.storage,
            size_limit_kb=self.size_limit_kb,
            batch_delay=self.batch_delay,
        )
        return await downloader.download(list(crawl_result.documents))

    def _write(self, stats: IngestionStats, name: str, data: Any) -> None:
        stats.artifacts.append(str(write_json(self.data_dir, name, data)))
