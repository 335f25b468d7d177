"""
Pytest configuration and fixtures.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool

from municipal_rag.config.settings import Settings, get_settings
from municipal_rag.db.repositories.vector import VectorMatch, cosine_similarity

# Test database URL (SQLite for testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BASE_URL = "https://town.example.ca"

Routes = dict[str, tuple[int, str, bytes | str]]


@pytest.fixture
def test_settings(tmp_path) -> Settings:
    """Create test settings."""
    return Settings(
        environment="development",
        debug=True,
        database_url=TEST_DATABASE_URL,
        llm_provider="openai",
        openai_api_key="test-key",
        municipal_website_url=BASE_URL,
        data_dir=tmp_path / "data",
        download_dir=tmp_path / "downloads",
        download_batch_delay_seconds=0.0,
        vectorize_batch_delay_seconds=0.0,
        embedding_dimensions=4,
    )


@pytest.fixture
def mock_settings(monkeypatch, tmp_path):
    """Point the cached settings at test values via the environment."""
    env = {
        "MUNICIPAL_WEBSITE_URL": BASE_URL,
        "DATA_DIR": str(tmp_path / "data"),
        "DOWNLOAD_DIR": str(tmp_path / "downloads"),
        "DOWNLOAD_BATCH_DELAY_SECONDS": "0",
        "VECTORIZE_BATCH_DELAY_SECONDS": "0",
        "SCRAPER_RATE_LIMIT_SECONDS": "0",
        "EMBEDDING_DIMENSIONS": "4",
        "DATABASE_URL": TEST_DATABASE_URL,
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)

    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


def make_transport(routes: Routes, calls: list[str] | None = None) -> httpx.MockTransport:
    """
    Serve fixed responses by URL; anything else is a 404.

    Args:
        routes: URL -> (status, content type, body)
        calls: Optional list that records every requested URL
    """

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        if url not in routes:
            return httpx.Response(404, text="Not Found")
        status, content_type, body = routes[url]
        content = body.encode() if isinstance(body, str) else body
        return httpx.Response(status, headers={"content-type": content_type}, content=content)

    return httpx.MockTransport(handler)


@pytest.fixture
def mock_client() -> Callable[..., httpx.AsyncClient]:
    """Build an AsyncClient backed by a route table."""

    def build(routes: Routes, calls: list[str] | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=make_transport(routes, calls), follow_redirects=True)

    return build


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """In-memory SQLite engine shared across sessions."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    yield engine
    await engine.dispose()


@pytest.fixture
def mock_llm() -> MagicMock:
    """Create a mock LLM."""
    mock = MagicMock()
    mock.ainvoke = AsyncMock(
        return_value=MagicMock(content="Dogs must be leashed in parks.")
    )
    return mock


@pytest.fixture
def mock_embeddings() -> MagicMock:
    """Create mock embeddings."""
    mock = MagicMock()
    mock.aembed_query = AsyncMock(return_value=[0.1, 0.2, 0.3, 0.4])
    return mock


@pytest.fixture
def sample_html() -> str:
    """A municipal page with navigation, links, and PDF documents."""
    return f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <title>Bylaws - Town of Example</title>
    </head>
    <body>
        <header>
            <nav>
                <a href="/EN/main/town/council.html">Council</a>
                <a href="/EN/main/parks.html">Parks</a>
            </nav>
        </header>
        <main>
            <h1>Bylaws</h1>
            <p>Bylaws adopted by Council are listed below.</p>
            <ul>
                <li><a href="/assets/bylaws/zoning-bylaw-900.pdf">Zoning Bylaw No. 900 (2019) [PDF - 850 KB]</a></li>
                <li><a href="{BASE_URL}/assets/finance/budget-2024.pdf#page=2">2024 Budget [PDF - 30000 KB]</a></li>
                <li><a href="/EN/main/town/bylaws-all.html#top">Back to top</a></li>
                <li><a href="https://external.example.com/page.html">External</a></li>
                <li><a href="mailto:clerk@town.example.ca">Email the clerk</a></li>
                <li><a href="javascript:void(0)">Print</a></li>
            </ul>
        </main>
        <footer>Footer content</footer>
    </body>
    </html>
    """


@pytest.fixture
def library_html() -> str:
    """Document library listing with categories and declared sizes."""
    return """
    <html>
    <head><title>Documents</title></head>
    <body>
        <div class="document-section">
            <ul>
                <li>
                    <span class="document"><a href="/assets/docs/tree-policy.pdf">Tree Protection Policy [PDF - 120 KB]</a></span>
                    <span class="category"><a href="/EN/main/town/documents/policies.html">Policies</a></span>
                </li>
                <li>
                    <span class="document"><a href="/assets/docs/ocp-2020.pdf">Official Community Plan 2020 [PDF - 4200 KB]</a></span>
                    <span class="category"><a href="/EN/main/town/documents/reportsplans.html">Reports, Maps &amp; Plans</a></span>
                </li>
                <li>
                    <span class="document"><a href="/EN/main/town/documents/not-a-pdf.html">Not a PDF</a></span>
                </li>
            </ul>
        </div>
    </body>
    </html>
    """


@pytest.fixture
def sample_sitemap() -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
    <urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
        <url>
            <loc>{BASE_URL}/EN/main/town/a.html</loc>
            <lastmod>2024-01-27T11:05:03.823-05:00</lastmod>
            <priority>0.8</priority>
        </url>
        <url>
            <loc>{BASE_URL}/EN/main/town/b.html</loc>
        </url>
        <url>
            <loc>https://elsewhere.example.com/c.html</loc>
        </url>
    </urlset>
    """


@pytest.fixture
def sample_sitemap_index() -> str:
    return f"""<?xml version="1.0" encoding="UTF-8"?>
    <sitemapindex xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
        <sitemap><loc>{BASE_URL}/pages-sitemap.xml</loc></sitemap>
        <sitemap><loc>{BASE_URL}/news-sitemap.xml</loc></sitemap>
    </sitemapindex>
    """


@pytest.fixture
def bylaw_text() -> str:
    """Plain text of a short bylaw with explicit section headings."""
    return (
        "TOWN OF EXAMPLE\n"
        "Animal Control Bylaw No. 1050, 2021\n"
        "Adopted March 3, 2021. Last amended June 15, 2023.\n\n"
        "SECTION 1 Definitions\n"
        "In this bylaw, dog means any animal of the canine species, and owner "
        "includes any person who keeps or harbours a dog within the municipality.\n\n"
        "SECTION 2 Leash Requirements\n"
        "No owner shall permit a dog to be in a park, trail, or other public place "
        "unless the dog is held on a leash not exceeding two metres in length.\n\n"
        "SECTION 3 Penalties\n"
        "Every person who contravenes this bylaw commits an offence and is liable "
        "to a fine not exceeding two thousand dollars for each violation.\n"
    )


class FakeStore:
    """In-memory vector store that can fail for chosen ids."""

    def __init__(self):
        self.rows: dict[str, tuple[list[float], dict[str, Any]]] = {}
        self.fail_ids: set[str] = set()

    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        if id in self.fail_ids:
            raise RuntimeError("store unavailable")
        self.rows[id] = (vector, metadata)

    async def query(self, vector: list[float], top_k: int = 5) -> list[VectorMatch]:
        matches = [
            VectorMatch(id=id, score=cosine_similarity(vector, v), content=m["content"], metadata=m)
            for id, (v, m) in self.rows.items()
        ]
        return sorted(matches, key=lambda m: m.score, reverse=True)[:top_k]


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()
