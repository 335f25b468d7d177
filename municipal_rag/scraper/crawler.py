"""
Crawler for municipal websites.

Walks the site from a set of seed pages, collecting bylaws, budgets, and other
published documents, bounded by a page budget.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

import httpx

from municipal_rag.config.logging import get_logger
from municipal_rag.config.settings import get_settings
from municipal_rag.scraper.classifier import (
    DocumentSource,
    HtmlSource,
    PdfSource,
    SitemapSource,
    UnsupportedSource,
    classify,
)
from municipal_rag.scraper.downloader import DocumentStorage
from municipal_rag.scraper.errors import FetchError, ScraperError
from municipal_rag.scraper.extract import parse_html
from municipal_rag.scraper.fetcher import Fetcher, create_client
from municipal_rag.scraper.frontier import Frontier
from municipal_rag.scraper.links import (
    classify_document_type,
    extract_library_documents,
    extract_links,
    url_basename,
)
from municipal_rag.scraper.models import (
    CrawlError,
    CrawlResult,
    DocumentDescriptor,
    FileType,
)
from municipal_rag.scraper.sitemap import expand_sitemap

logger = get_logger("scraper")

# Document library pages, relative to the site root
DEFAULT_SEED_PATHS = [
    "/EN/main/town/bylaws-all.html",
    "/EN/main/town/documents.html",
    "/EN/main/town/documents/policies.html",
    "/EN/main/town/documents/reportsplans.html",
    "/EN/main/town/documents/publications.html",
]

LIBRARY_PATH = "/EN/main/town/documents.html"
LIBRARY_CATEGORY_PATHS = [
    "/EN/main/town/documents/policies.html",
    "/EN/main/town/documents/reportsplans.html",
    "/EN/main/town/documents/publications.html",
    "/EN/main/town/documents/applicationsforms.html",
]


def resolve_seed(seed: str, base_url: str) -> str:
    """Absolute seeds are kept; paths are appended to the site root."""
    if seed.startswith(("http://", "https://")):
        return seed
    return f"{base_url}/{seed.lstrip('/')}"


@dataclass
class CrawlState:
    """Mutable state of one crawl: the frontier plus result accumulators."""

    frontier: Frontier
    documents: list[DocumentDescriptor] = field(default_factory=list)
    errors: list[CrawlError] = field(default_factory=list)
    _by_url: dict[str, DocumentDescriptor] = field(default_factory=dict)

    def get_document(self, url: str) -> DocumentDescriptor | None:
        return self._by_url.get(url)

    def add_document(self, document: DocumentDescriptor) -> bool:
        """Record a descriptor unless one with the same URL exists."""
        if document.url in self._by_url:
            return False
        self._by_url[document.url] = document
        self.documents.append(document)
        return True

    def record_error(self, url: str, error: str) -> None:
        self.errors.append(CrawlError(url=url, error=error))

    def result(self) -> CrawlResult:
        return CrawlResult(
            documents=tuple(self.documents),
            errors=tuple(self.errors),
            visited=tuple(self.frontier.visited),
        )


class MunicipalCrawler:
    """
    Frontier-driven crawler for a municipal website.

    Pages are processed one at a time: the frontier is reshuffled by each
    page's discoveries before the next URL is chosen.
    """

    def __init__(
        self,
        base_url: str | None = None,
        page_budget: int | None = None,
        rate_limit: float | None = None,
        size_limit_kb: int | None = None,
        client: httpx.AsyncClient | None = None,
        storage: DocumentStorage | None = None,
    ):
        """
        Initialize the crawler.

        Args:
            base_url: Site root; defaults to ``MUNICIPAL_WEBSITE_URL``
            page_budget: Maximum number of URLs dequeued per crawl
            rate_limit: Seconds to wait between requests
            size_limit_kb: Declared PDF sizes above this are not fetched
            client: Shared HTTP client; one is created per crawl if omitted
            storage: Where PDFs fetched during the crawl are written
        """
        settings = get_settings()

        self.base_url = (base_url or settings.municipal_website_url).rstrip("/")
        self.page_budget = settings.crawl_page_budget if page_budget is None else page_budget
        self.rate_limit = settings.scraper_rate_limit_seconds if rate_limit is None else rate_limit
        self.size_limit_kb = (
            settings.download_size_limit_kb if size_limit_kb is None else size_limit_kb
        )
        self.storage = storage or DocumentStorage()
        self._client = client

    async def crawl(self, seed_urls: list[str] | None = None) -> CrawlResult:
        """
        Crawl the site.

        Args:
            seed_urls: Absolute URLs or site-relative paths to start from

        Returns:
            CrawlResult with discovered documents and per-URL errors
        """
        seeds = [resolve_seed(s, self.base_url) for s in (seed_urls or DEFAULT_SEED_PATHS)]
        state = CrawlState(frontier=Frontier(seeds))

        logger.info(f"Starting crawl of {self.base_url} (budget {self.page_budget} pages)")

        if self._client is not None:
            await self._run(Fetcher(self._client), state)
        else:
            async with create_client() as client:
                await self._run(Fetcher(client), state)

        result = state.result()
        logger.info(
            f"Crawl complete. Visited {len(result.visited)} pages, "
            f"found {len(result.documents)} documents, {len(result.errors)} errors."
        )
        return result

    async def _run(self, fetcher: Fetcher, state: CrawlState) -> None:
        frontier = state.frontier
        while frontier and frontier.visited_count < self.page_budget:
            url = frontier.pop()
            if url is None:
                break

            logger.info(f"Crawling {url}")
            try:
                response = await fetcher.fetch(url)
                source = classify(url, response)
                self._dispatch(source, state)
            except FetchError as e:
                logger.warning(f"Fetch failed for {url}: {e}", extra={"url": url})
                state.record_error(url, str(e))
            except (ScraperError, OSError) as e:
                logger.error(f"Error processing {url}: {e}", extra={"url": url})
                state.record_error(url, str(e))
            except Exception as e:
                logger.error(f"Unexpected error for {url}: {e}", extra={"url": url})
                state.record_error(url, f"Unexpected error: {e}")

            if self.rate_limit:
                await asyncio.sleep(self.rate_limit)

        if frontier:
            logger.info(f"Page budget reached with {len(frontier)} URLs still queued")

    def _dispatch(self, source: DocumentSource, state: CrawlState) -> None:
        if isinstance(source, HtmlSource):
            self._handle_html(source, state)
        elif isinstance(source, PdfSource):
            self._handle_pdf(source, state)
        elif isinstance(source, SitemapSource):
            expand_sitemap(source.xml, state.frontier, self.base_url)
        elif isinstance(source, UnsupportedSource):
            logger.info(
                f"Skipping unsupported content type: {source.content_type or 'unknown'} at {source.url}"
            )

    def _handle_html(self, source: HtmlSource, state: CrawlState) -> None:
        page = extract_links(source.html, source.url, self.base_url)

        for document in page.documents:
            if not state.add_document(document):
                continue
            if document.file_size_kb and document.file_size_kb > self.size_limit_kb:
                logger.info(
                    f"Skipping large file ({document.file_size_kb} KB): {document.title}"
                )
                document.skipped = True
                document.skip_reason = "File too large"
                continue
            state.frontier.push_back(document.url)

        for link in page.page_links:
            state.frontier.push(link)

        if page.page_document is not None:
            state.add_document(page.page_document)

        logger.debug(
            f"{source.url}: {len(page.documents)} documents, {len(page.page_links)} links"
        )

    def _handle_pdf(self, source: PdfSource, state: CrawlState) -> None:
        document = state.get_document(source.url)
        if document is not None and document.local_path:
            return

        if document is None:
            document = DocumentDescriptor(
                title=url_basename(source.url),
                url=source.url,
                document_type=classify_document_type(source.url),
                file_type=FileType.PDF,
            )
            state.add_document(document)

        document.local_path = str(self.storage.save(document, source.data))
        logger.info(f"Saved {source.url} to {document.local_path}")

    async def crawl_library(self) -> CrawlResult:
        """
        Collect PDF entries from the document library and its category pages.

        The main library page must load; category page failures are recorded
        and skipped.
        """
        library_url = resolve_seed(LIBRARY_PATH, self.base_url)
        pages = [library_url] + [resolve_seed(p, self.base_url) for p in LIBRARY_CATEGORY_PATHS]
        state = CrawlState(frontier=Frontier(pages))

        logger.info(f"Crawling document library: {library_url}")

        if self._client is not None:
            await self._run_library(Fetcher(self._client), library_url, state)
        else:
            async with create_client() as client:
                await self._run_library(Fetcher(client), library_url, state)

        logger.info(f"Found {len(state.documents)} PDF documents")
        return state.result()

    async def _run_library(self, fetcher: Fetcher, library_url: str, state: CrawlState) -> None:
        while state.frontier:
            url = state.frontier.pop()
            if url is None:
                break

            try:
                response = await fetcher.fetch(url)
                documents = extract_library_documents(parse_html(response.text), url)
            except ScraperError as e:
                logger.error(f"Error crawling library page {url}: {e}", extra={"url": url})
                state.record_error(url, str(e))
                if url == library_url:
                    return
                continue
            except Exception as e:
                logger.error(f"Unexpected error for library page {url}: {e}", extra={"url": url})
                state.record_error(url, f"Unexpected error: {e}")
                if url == library_url:
                    return
                continue

            for document in documents:
                state.add_document(document)
