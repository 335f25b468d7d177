"""
Content classification.

Turns a fetched response into a ``DocumentSource`` variant carrying only the
fields its handler needs.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from municipal_rag.scraper.fetcher import FetchResponse

XML_CONTENT_TYPES = ("application/xml", "text/xml")


@dataclass(frozen=True)
class HtmlSource:
    url: str
    html: str


@dataclass(frozen=True)
class PdfSource:
    url: str
    data: bytes


@dataclass(frozen=True)
class SitemapSource:
    url: str
    xml: str


@dataclass(frozen=True)
class UnsupportedSource:
    url: str
    content_type: str


DocumentSource = Union[HtmlSource, PdfSource, SitemapSource, UnsupportedSource]


def is_sitemap_url(url: str) -> bool:
    return url.lower().endswith("sitemap.xml")


def classify(url: str, response: FetchResponse) -> DocumentSource:
    """
    Route a response by content type, then by URL suffix.

    The ``sitemap.xml`` suffix only applies to responses that are neither
    HTML nor PDF.
    """
    content_type = response.content_type.lower()

    if "text/html" in content_type:
        return HtmlSource(url=url, html=response.text)
    if "application/pdf" in content_type:
        return PdfSource(url=url, data=response.content)
    if is_sitemap_url(url) or any(t in content_type for t in XML_CONTENT_TYPES):
        return SitemapSource(url=url, xml=response.text)
    return UnsupportedSource(url=url, content_type=response.content_type)
