"""
Text extraction from fetched documents.

HTML is reduced to its main content area; PDFs are read through their text
layer with pdfplumber.
"""

from __future__ import annotations

import io
import re
from pathlib import Path

import pdfplumber
from bs4 import BeautifulSoup, NavigableString, Tag

from municipal_rag.scraper.errors import DocumentParseError

# Selectors for main content on municipal sites, most specific first
CONTENT_SELECTORS = [
    "main",
    "#content",
    ".content",
    "article",
    ".main-content",
]

# Elements to remove from content
REMOVE_SELECTORS = [
    "script",
    "style",
    "noscript",
    "nav",
    "header",
    "footer",
    ".navigation",
    ".menu",
    ".sidebar",
    ".breadcrumb",
]

BLOCK_ELEMENTS = {
    "p",
    "div",
    "section",
    "article",
    "h1",
    "h2",
    "h3",
    "h4",
    "h5",
    "h6",
    "li",
    "tr",
    "br",
    "table",
}

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]
SECTION_BODY_TAGS = ["p", "li", "table"]


def parse_html(html: str) -> BeautifulSoup:
    """Parse HTML with lxml, rejecting input with no markup at all."""
    if not html or not html.strip():
        raise DocumentParseError("Empty HTML document")
    return BeautifulSoup(html, "lxml")


def clean_text(text: str) -> str:
    """Collapse runs of spaces and blank lines."""
    text = re.sub(r"[ \t\xa0]+", " ", text)
    text = re.sub(r" *\n *", "\n", text)
    text = re.sub(r"\n\s*\n+", "\n\n", text)
    return text.strip()


def extract_title(soup: BeautifulSoup) -> str:
    """The ``<title>`` text, falling back to the first ``<h1>``."""
    title_tag = soup.select_one("title")
    if title_tag and title_tag.get_text(strip=True):
        return clean_text(title_tag.get_text())

    h1 = soup.select_one("h1")
    if h1:
        return clean_text(h1.get_text())

    return "Untitled"


def main_content(soup: BeautifulSoup) -> Tag | BeautifulSoup:
    """Strip page chrome and return the main content element."""
    for selector in REMOVE_SELECTORS:
        for element in soup.select(selector):
            element.decompose()

    for selector in CONTENT_SELECTORS:
        element = soup.select_one(selector)
        if element:
            return element

    return soup.body or soup


def _text_with_structure(element: Tag | NavigableString) -> str:
    """Extract text, putting block elements on their own lines."""
    if isinstance(element, NavigableString):
        return str(element)

    parts = []
    for child in element.children:
        if isinstance(child, NavigableString):
            parts.append(str(child))
        elif isinstance(child, Tag):
            child_text = _text_with_structure(child)
            if child.name in BLOCK_ELEMENTS:
                parts.append(f"\n\n{child_text}\n\n")
            else:
                parts.append(child_text)
    return "".join(parts)


def html_to_text(html: str) -> str:
    """Convert an HTML page to plain text, paragraphs separated by blank lines."""
    soup = parse_html(html)
    return clean_text(_text_with_structure(main_content(soup)))


def html_sections(html: str) -> list[tuple[str | None, str]]:
    """
    Split an HTML page into ``(heading, text)`` sections.

    Each heading starts a new section; paragraphs, list items, and tables
    accumulate under the most recent heading. Returns an empty list when the
    page has no headings.
    """
    soup = parse_html(html)
    content = main_content(soup)

    if content.find(HEADING_TAGS) is None:
        return []

    sections: list[tuple[str | None, str]] = []
    heading: str | None = None
    parts: list[str] = []

    for element in content.find_all(HEADING_TAGS + SECTION_BODY_TAGS):
        # Nested matches (a <p> inside an <li>) are covered by their ancestor
        if element.find_parent(SECTION_BODY_TAGS):
            continue

        text = clean_text(element.get_text(" "))
        if element.name in HEADING_TAGS:
            if parts:
                sections.append((heading, "\n\n".join(parts)))
            heading = text or None
            parts = [text] if text else []
        elif text:
            parts.append(text)

    if parts:
        sections.append((heading, "\n\n".join(parts)))

    return sections


def pdf_to_text(source: str | Path | bytes) -> str:
    """
    Extract the text layer of a PDF, one blank line between pages.

    Args:
        source: A file path or the raw PDF bytes

    Raises:
        FileNotFoundError: if a path does not exist
        DocumentParseError: on invalid or corrupt PDFs
    """
    if isinstance(source, bytes):
        handle = io.BytesIO(source)
        name = "<bytes>"
    else:
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"PDF not found: {path}")
        handle = path
        name = str(path)

    try:
        with pdfplumber.open(handle) as pdf:
            pages = [page.extract_text() or "" for page in pdf.pages]
    except Exception as e:
        raise DocumentParseError(f"Could not parse PDF {name}: {e}") from e

    return "\n\n".join(page.strip() for page in pages if page.strip())
