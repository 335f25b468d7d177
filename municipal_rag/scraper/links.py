"""
HTML link extraction and document classification.

Finds same-site page links and PDF document links on a municipal page and
classifies documents by keyword heuristics.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from urllib.parse import unquote, urljoin, urlparse

from bs4 import BeautifulSoup

from municipal_rag.config.logging import get_logger
from municipal_rag.scraper.extract import extract_title, parse_html
from municipal_rag.scraper.models import DocumentDescriptor, DocumentType, FileType

logger = get_logger("scraper.links")

# Ordered: the first matching type wins
DOCUMENT_TYPE_RULES: list[tuple[DocumentType, re.Pattern[str]]] = [
    (DocumentType.BYLAW, re.compile(r"bylaw|ordinance|regulation", re.I)),
    (DocumentType.BUDGET, re.compile(r"budget|financial|fiscal", re.I)),
    (DocumentType.REPORT, re.compile(r"report|plan|strategy", re.I)),
    (DocumentType.POLICY, re.compile(r"policy", re.I)),
]

# Document library category labels
CATEGORY_TYPES: list[tuple[str, DocumentType]] = [
    ("Policies", DocumentType.POLICY),
    ("Reports, Maps & Plans", DocumentType.REPORT),
    ("Applications & Forms", DocumentType.FORM),
    ("Publications & Information", DocumentType.PUBLICATION),
]

DEPARTMENT_KEYWORDS = {
    "finance",
    "planning",
    "engineering",
    "public-works",
    "parks",
    "recreation",
    "fire",
    "police",
    "water",
    "waste",
    "transportation",
}

BYLAW_PAGE = re.compile(r"bylaw|ordinance|regulation", re.I)
BYLAW_NUMBER_IN_BODY = re.compile(r"bylaw no\.\s+\d+", re.I)
YEAR_IN_TEXT = re.compile(r"\b(?:19|20)\d{2}\b")
PDF_SIZE = re.compile(r"\[PDF\s*-\s*(\d+)\s*KB\]", re.I)
PDF_SUFFIX = re.compile(r"\s*\[PDF.*\]\s*$", re.I)

SKIP_SCHEMES = ("#", "javascript:", "mailto:", "tel:")


@dataclass
class PageLinks:
    """Everything an HTML page contributes to the crawl."""

    title: str
    page_links: list[str] = field(default_factory=list)
    documents: list[DocumentDescriptor] = field(default_factory=list)
    page_document: DocumentDescriptor | None = None


def classify_document_type(*texts: str) -> DocumentType:
    """Pick a document type from keywords in a URL and/or link text."""
    for doc_type, pattern in DOCUMENT_TYPE_RULES:
        if any(pattern.search(text) for text in texts if text):
            return doc_type
    return DocumentType.OTHER


def category_document_type(category: str) -> DocumentType:
    for label, doc_type in CATEGORY_TYPES:
        if label in category:
            return doc_type
    return DocumentType.OTHER


def detect_department(url: str) -> str | None:
    """First URL path segment naming a municipal department."""
    for part in urlparse(url).path.split("/"):
        if part.lower() in DEPARTMENT_KEYWORDS:
            return part
    return None


def is_pdf_url(url: str) -> bool:
    return urlparse(url).path.lower().endswith(".pdf")


def url_basename(url: str) -> str:
    return unquote(PurePosixPath(urlparse(url).path).name) or url


def is_same_site(url: str, base_url: str) -> bool:
    """
    Whether ``url`` lives under ``base_url``.

    Hosts are compared exactly (port included), so look-alike hosts and
    malformed ports do not count as the same site.
    """
    parsed, base = urlparse(url), urlparse(base_url)
    if parsed.scheme not in ("http", "https") or parsed.netloc.lower() != base.netloc.lower():
        return False
    base_path = base.path.rstrip("/")
    return parsed.path == base_path or parsed.path.startswith(f"{base_path}/")


def normalize_link(href: str, page_url: str) -> str | None:
    """
    Resolve a raw href against the page URL.

    Fragments are dropped; everything else is kept verbatim.
    """
    href = href.strip()
    if not href or href.startswith(SKIP_SCHEMES):
        return None

    try:
        full_url = urljoin(page_url, href)
        parsed = urlparse(full_url)
    except ValueError:
        logger.warning(f"Invalid URL found: {href}")
        return None

    if parsed.scheme not in ("http", "https"):
        return None

    return parsed._replace(fragment="").geturl()


def pdf_descriptor(url: str, link_text: str) -> DocumentDescriptor:
    """Describe a PDF discovered through a link."""
    year = YEAR_IN_TEXT.search(link_text)
    size = PDF_SIZE.search(link_text)
    title = PDF_SUFFIX.sub("", link_text).strip()
    return DocumentDescriptor(
        title=title or url_basename(url),
        url=url,
        document_type=classify_document_type(url, link_text),
        file_type=FileType.PDF,
        department=detect_department(url),
        date=year.group(0) if year else None,
        file_size_kb=int(size.group(1)) if size else None,
    )


def extract_library_documents(soup: BeautifulSoup, page_url: str) -> list[DocumentDescriptor]:
    """
    Read document-library listings.

    Entries look like ``<li><span class="document"><a>Title [PDF - 120 KB]</a>``
    followed by ``<span class="category"><a>Policies</a>``.
    """
    documents = []
    for item in soup.select(".document-section ul li"):
        link = item.select_one(".document a")
        if link is None or not link.get("href"):
            continue

        url = normalize_link(str(link["href"]), page_url)
        if url is None or not is_pdf_url(url):
            continue

        category_link = item.select_one(".category a")
        category = category_link.get_text(strip=True) if category_link else None

        link_text = link.get_text(" ", strip=True)
        document = pdf_descriptor(url, link_text)
        document.category = category or None
        if category:
            document.document_type = category_document_type(category)
        documents.append(document)

    return documents


def extract_links(html: str, page_url: str, base_url: str) -> PageLinks:
    """
    Extract page links and PDF documents from an HTML page.

    Args:
        html: Page markup
        page_url: URL the page was fetched from
        base_url: Site root; only links under it are followed

    Returns:
        PageLinks with de-duplicated links in document order
    """
    soup = parse_html(html)
    title = extract_title(soup)
    result = PageLinks(title=title)

    seen_docs: set[str] = set()
    for document in extract_library_documents(soup, page_url):
        if document.url not in seen_docs:
            seen_docs.add(document.url)
            result.documents.append(document)

    seen_links: set[str] = set()
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if isinstance(href, list):
            href = href[0]

        url = normalize_link(href, page_url)
        if url is None:
            continue

        if is_pdf_url(url) and url not in seen_docs:
            seen_docs.add(url)
            result.documents.append(pdf_descriptor(url, anchor.get_text(" ", strip=True)))
            continue

        if is_same_site(url, base_url) and url not in seen_links and not is_pdf_url(url):
            seen_links.add(url)
            result.page_links.append(url)

    body = soup.body.get_text(" ") if soup.body else ""
    if (
        BYLAW_PAGE.search(page_url)
        or BYLAW_PAGE.search(title)
        or BYLAW_NUMBER_IN_BODY.search(body)
    ):
        result.page_document = DocumentDescriptor(
            title=title,
            url=page_url,
            document_type=DocumentType.BYLAW,
            file_type=FileType.HTML,
            department=detect_department(page_url),
            content=html,
        )

    return result
