"""Exceptions raised by the scraper components."""


class ScraperError(Exception):
    """Base class for crawl and processing failures."""


class FetchError(ScraperError):
    """A transport failure: non-2xx response or network error."""

    def __init__(self, url: str, message: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class DocumentParseError(ScraperError):
    """Malformed HTML, XML, or PDF content."""
