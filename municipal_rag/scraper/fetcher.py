"""
Single-request HTTP fetcher.

Performs one GET and reports the content type. Retries are left to callers.
"""

from __future__ import annotations

from dataclasses import dataclass

import httpx

from municipal_rag.config.logging import get_logger
from municipal_rag.config.settings import get_settings
from municipal_rag.scraper.errors import FetchError

logger = get_logger("scraper.fetcher")


@dataclass
class FetchResponse:
    """Body and headers of a successful fetch."""

    url: str
    status_code: int
    content_type: str
    content: bytes

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


def create_client(transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """Build the shared HTTP client with the configured timeout and user agent."""
    settings = get_settings()
    return httpx.AsyncClient(
        timeout=settings.scraper_timeout_seconds,
        follow_redirects=True,
        headers={"User-Agent": settings.scraper_user_agent},
        transport=transport,
    )


class Fetcher:
    """Wraps an ``httpx.AsyncClient`` and normalizes failures to ``FetchError``."""

    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def fetch(self, url: str) -> FetchResponse:
        """
        GET a URL.

        Raises:
            FetchError: on a non-2xx status, a malformed URL, or any network failure
        """
        try:
            response = await self.client.get(url)
        except httpx.RequestError as e:
            raise FetchError(url, f"Request error: {e}") from e
        except httpx.InvalidURL as e:
            raise FetchError(url, f"Invalid URL: {e}") from e

        if not response.is_success:
            raise FetchError(
                url,
                f"HTTP error {response.status_code}: {response.reason_phrase}",
                status_code=response.status_code,
            )

        content_type = response.headers.get("content-type", "")
        logger.debug(f"Fetched {url} ({response.status_code}, {content_type or 'no type'})")

        return FetchResponse(
            url=str(response.url),
            status_code=response.status_code,
            content_type=content_type,
            content=response.content,
        )
