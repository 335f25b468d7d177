"""
Document downloader.

Persists PDFs to the download directory in small concurrent batches.
"""

from __future__ import annotations

import asyncio
import re
import uuid
from dataclasses import dataclass, field
from pathlib import Path

from municipal_rag.config.logging import get_logger
from municipal_rag.config.settings import get_settings
from municipal_rag.scraper.errors import FetchError
from municipal_rag.scraper.fetcher import Fetcher
from municipal_rag.scraper.models import CrawlError, DocumentDescriptor, FileType

logger = get_logger("scraper.downloader")


@dataclass
class DownloadResult:
    """Descriptors after a download pass, plus per-URL failures."""

    documents: list[DocumentDescriptor] = field(default_factory=list)
    errors: list[CrawlError] = field(default_factory=list)

    @property
    def success_count(self) -> int:
        return sum(1 for doc in self.documents if doc.local_path)

    @property
    def skipped_count(self) -> int:
        return sum(1 for doc in self.documents if doc.skipped)

    @property
    def error_count(self) -> int:
        return sum(1 for doc in self.documents if doc.error)


def sanitize_filename(title: str) -> str:
    """``"Zoning Bylaw No. 900"`` -> ``"zoning_bylaw_no_900"``."""
    sanitized = re.sub(r"[^a-z0-9]", "_", title, flags=re.I)
    sanitized = re.sub(r"_+", "_", sanitized).strip("_").lower()
    return sanitized or "document"


class DocumentStorage:
    """Writes document bytes under a fixed directory with generated names."""

    def __init__(self, directory: Path | str | None = None):
        self.directory = Path(directory or get_settings().download_dir)

    def filename_for(self, document: DocumentDescriptor) -> str:
        extension = "doc" if document.file_type is FileType.DOC else "pdf"
        return f"{sanitize_filename(document.title)}_{uuid.uuid4().hex[:8]}.{extension}"

    def save(self, document: DocumentDescriptor, data: bytes) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / self.filename_for(document)
        path.write_bytes(data)
        return path


class DocumentDownloader:
    """
    Downloads document descriptors in fixed-size concurrent batches.

    Failures are isolated per document; the batch always runs to completion.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        storage: DocumentStorage | None = None,
        size_limit_kb: int | None = None,
        batch_size: int | None = None,
        batch_delay: float | None = None,
    ):
        settings = get_settings()

        self.fetcher = fetcher
        self.storage = storage or DocumentStorage()
        self.size_limit_kb = (
            settings.download_size_limit_kb if size_limit_kb is None else size_limit_kb
        )
        self.batch_size = settings.download_batch_size if batch_size is None else batch_size
        self.batch_delay = (
            settings.download_batch_delay_seconds if batch_delay is None else batch_delay
        )

    def needs_download(self, document: DocumentDescriptor) -> bool:
        """HTML pages carry their content inline; files already on disk are kept."""
        return not document.local_path and document.content is None

    def exceeds_limit(self, document: DocumentDescriptor) -> bool:
        return bool(document.file_size_kb and document.file_size_kb > self.size_limit_kb)

    async def download_one(
        self, document: DocumentDescriptor, errors: list[CrawlError]
    ) -> DocumentDescriptor:
        if self.exceeds_limit(document):
            logger.info(f"Skipping large file ({document.file_size_kb} KB): {document.title}")
            document.skipped = True
            document.skip_reason = "File too large"
            return document

        logger.info(f"Downloading: {document.title}")
        try:
            response = await self.fetcher.fetch(document.url)
            path = await asyncio.to_thread(self.storage.save, document, response.content)
        except (FetchError, OSError) as e:
            logger.error(f"Error downloading {document.url}: {e}", extra={"url": document.url})
            errors.append(CrawlError(url=document.url, error=str(e)))
            document.error = str(e)
            return document

        document.local_path = str(path)
        return document

    async def download(self, documents: list[DocumentDescriptor]) -> DownloadResult:
        """
        Download every descriptor that is not already on disk.

        Returns:
            DownloadResult with the same descriptors, updated in place
        """
        result = DownloadResult()
        logger.info(f"Downloading {len(documents)} documents...")

        for start in range(0, len(documents), self.batch_size):
            batch = documents[start : start + self.batch_size]
            updated = await asyncio.gather(
                *(
                    self.download_one(doc, result.errors)
                    if self.needs_download(doc)
                    else asyncio.sleep(0, result=doc)
                    for doc in batch
                )
            )
            result.documents.extend(updated)

            if start + self.batch_size < len(documents) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

        logger.info(
            f"Download complete: {result.success_count} successful, "
            f"{result.skipped_count} skipped, {result.error_count} failed"
        )
        return result
