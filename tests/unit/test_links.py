"""
Tests for link extraction and document classification.
"""

import pytest

from municipal_rag.scraper.errors import DocumentParseError
from municipal_rag.scraper.links import (
    classify_document_type,
    detect_department,
    extract_library_documents,
    extract_links,
    is_same_site,
    normalize_link,
    pdf_descriptor,
)
from municipal_rag.scraper.extract import parse_html
from municipal_rag.scraper.models import DocumentType, FileType

BASE_URL = "https://town.example.ca"
PAGE_URL = f"{BASE_URL}/EN/main/town/bylaws-all.html"


class TestNormalizeLink:
    """Test href normalization."""

    def test_relative(self):
        assert normalize_link("/a/b.html", PAGE_URL) == f"{BASE_URL}/a/b.html"

    def test_fragment_dropped(self):
        assert normalize_link("/a/b.html#part-2", PAGE_URL) == f"{BASE_URL}/a/b.html"

    def test_query_kept(self):
        assert normalize_link("/search?q=dogs", PAGE_URL) == f"{BASE_URL}/search?q=dogs"

    @pytest.mark.parametrize(
        "href",
        ["#top", "javascript:void(0)", "mailto:clerk@town.example.ca", "tel:5551234", "", "ftp://x/y"],
    )
    def test_skipped(self, href: str):
        assert normalize_link(href, PAGE_URL) is None


class TestSameSite:
    """Test the same-site check used for page links and sitemaps."""

    def test_same_host(self):
        assert is_same_site(f"{BASE_URL}/a.html", BASE_URL)
        assert is_same_site("http://TOWN.example.ca/a.html", BASE_URL)

    @pytest.mark.parametrize(
        "url",
        [
            "https://town.example.ca.evil.com/a.html",
            "https://town.example.caa/a.html",
            "https://town.example.ca:abc/a.html",
            "https://town.example.ca:8443/a.html",
            "ftp://town.example.ca/a.html",
        ],
    )
    def test_other_hosts(self, url: str):
        assert not is_same_site(url, BASE_URL)

    def test_base_path(self):
        base = f"{BASE_URL}/EN"
        assert is_same_site(f"{BASE_URL}/EN/main.html", base)
        assert is_same_site(f"{BASE_URL}/EN", base)
        assert not is_same_site(f"{BASE_URL}/ENGLISH/main.html", base)


class TestClassification:
    """Test keyword-based classification."""

    def test_bylaw_first(self):
        assert classify_document_type("bylaw-budget.pdf") == DocumentType.BYLAW

    def test_budget(self):
        assert classify_document_type("https://x/2024-financial-plan.pdf") == DocumentType.BUDGET

    def test_report(self):
        assert classify_document_type("", "Climate Action Strategy") == DocumentType.REPORT

    def test_other(self):
        assert classify_document_type("https://x/minutes.pdf", "Minutes") == DocumentType.OTHER

    def test_department(self):
        assert detect_department(f"{BASE_URL}/finance/reports/q1.pdf") == "finance"
        assert detect_department(f"{BASE_URL}/EN/main/town.html") is None

    def test_pdf_descriptor(self):
        document = pdf_descriptor(
            f"{BASE_URL}/docs/tree.pdf", "Tree Protection Bylaw 2018 [PDF - 312 KB]"
        )
        assert document.title == "Tree Protection Bylaw 2018"
        assert document.file_size_kb == 312
        assert document.date == "2018"
        assert document.document_type == DocumentType.BYLAW
        assert document.file_type == FileType.PDF


class TestExtractLinks:
    """Test page link and document extraction."""

    def test_documents(self, sample_html: str):
        """Test PDF links become descriptors with declared sizes."""
        page = extract_links(sample_html, PAGE_URL, BASE_URL)

        urls = [d.url for d in page.documents]
        assert urls == [
            f"{BASE_URL}/assets/bylaws/zoning-bylaw-900.pdf",
            f"{BASE_URL}/assets/finance/budget-2024.pdf",
        ]

        zoning, budget = page.documents
        assert zoning.title == "Zoning Bylaw No. 900 (2019)"
        assert zoning.file_size_kb == 850
        assert zoning.document_type == DocumentType.BYLAW
        assert budget.document_type == DocumentType.BUDGET
        assert budget.department == "finance"

    def test_page_links(self, sample_html: str):
        """Test only same-site, non-PDF links are followed."""
        page = extract_links(sample_html, PAGE_URL, BASE_URL)

        assert f"{BASE_URL}/EN/main/town/council.html" in page.page_links
        assert f"{BASE_URL}/EN/main/parks.html" in page.page_links
        assert not any("external.example.com" in link for link in page.page_links)
        assert not any(link.endswith(".pdf") for link in page.page_links)
        assert len(page.page_links) == len(set(page.page_links))

    def test_bylaw_page_document(self, sample_html: str):
        """Test a bylaw page is itself recorded as an HTML document."""
        page = extract_links(sample_html, PAGE_URL, BASE_URL)

        assert page.page_document is not None
        assert page.page_document.file_type == FileType.HTML
        assert page.page_document.document_type == DocumentType.BYLAW
        assert page.page_document.title == "Bylaws - Town of Example"
        assert page.page_document.content == sample_html

    def test_plain_page_no_document(self):
        """Test ordinary pages do not produce a page document."""
        html = "<html><head><title>Events</title></head><body><p>Fair on Sunday</p></body></html>"
        page = extract_links(html, f"{BASE_URL}/events.html", BASE_URL)
        assert page.page_document is None
        assert page.documents == []

    def test_bylaw_number_in_body(self):
        """Test a body mention of a bylaw number marks the page."""
        html = "<html><head><title>Trees</title></head><body><p>See Bylaw No. 1100.</p></body></html>"
        page = extract_links(html, f"{BASE_URL}/trees.html", BASE_URL)
        assert page.page_document is not None

    def test_empty_html(self):
        """Test empty markup is a parse error."""
        with pytest.raises(DocumentParseError):
            extract_links("", PAGE_URL, BASE_URL)

    def test_library_entries(self, library_html: str):
        """Test document library listings carry category and type."""
        library_url = f"{BASE_URL}/EN/main/town/documents.html"
        page = extract_links(library_html, library_url, BASE_URL)

        policy, plan = page.documents
        assert policy.title == "Tree Protection Policy"
        assert policy.category == "Policies"
        assert policy.document_type == DocumentType.POLICY
        assert policy.file_size_kb == 120
        assert plan.category == "Reports, Maps & Plans"
        assert plan.document_type == DocumentType.REPORT
        assert plan.date == "2020"


class TestLibraryDocuments:
    """Test document library parsing directly."""

    def test_non_pdf_entries_skipped(self, library_html: str):
        soup = parse_html(library_html)
        documents = extract_library_documents(soup, f"{BASE_URL}/EN/main/town/documents.html")
        assert len(documents) == 2
        assert all(d.url.endswith(".pdf") for d in documents)
