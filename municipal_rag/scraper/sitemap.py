"""
Sitemap expansion.

Parses XML sitemaps and sitemap indexes into frontier URLs.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime

from municipal_rag.config.logging import get_logger
from municipal_rag.scraper.errors import DocumentParseError
from municipal_rag.scraper.frontier import Frontier
from municipal_rag.scraper.links import is_same_site

logger = get_logger("scraper.sitemap")


@dataclass
class SitemapURL:
    """Represents a URL from a sitemap."""

    loc: str
    lastmod: datetime | None = None
    changefreq: str | None = None
    priority: float | None = None


@dataclass
class Sitemap:
    """Parsed sitemap: page entries and nested sitemap references."""

    urls: list[SitemapURL] = field(default_factory=list)
    sitemaps: list[str] = field(default_factory=list)


def _local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on tags."""
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str | None:
    for child in element:
        if _local_name(child.tag) == name and child.text:
            return child.text.strip()
    return None


def parse_datetime(date_str: str | None) -> datetime | None:
    """Parse a W3C datetime as used in ``<lastmod>``."""
    if not date_str:
        return None

    # 2024-01-27T11:05:03.823-05:00 -> 2024-01-27T11:05:03-0500
    date_str = re.sub(r"\.\d+", "", date_str)
    date_str = re.sub(r"([+-]\d{2}):(\d{2})$", r"\1\2", date_str)
    date_str = date_str.replace("Z", "+0000")

    for fmt in (
        "%Y-%m-%dT%H:%M:%S%z",
        "%Y-%m-%dT%H:%M:%S",
        "%Y-%m-%dT%H:%M%z",
        "%Y-%m-%d",
    ):
        try:
            return datetime.strptime(date_str, fmt)
        except ValueError:
            continue
    return None


def _parse_priority(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None


def parse_sitemap(xml_content: str) -> Sitemap:
    """
    Parse a ``<urlset>`` or ``<sitemapindex>`` document.

    Namespaced and namespace-free sitemaps are both accepted.

    Raises:
        DocumentParseError: if the XML is malformed
    """
    try:
        root = ET.fromstring(xml_content.strip())
    except ET.ParseError as e:
        raise DocumentParseError(f"Malformed sitemap XML: {e}") from e

    sitemap = Sitemap()
    for element in root.iter():
        name = _local_name(element.tag)
        if name == "url":
            loc = _child_text(element, "loc")
            if not loc:
                continue
            sitemap.urls.append(
                SitemapURL(
                    loc=loc,
                    lastmod=parse_datetime(_child_text(element, "lastmod")),
                    changefreq=_child_text(element, "changefreq"),
                    priority=_parse_priority(_child_text(element, "priority")),
                )
            )
        elif name == "sitemap":
            loc = _child_text(element, "loc")
            if loc:
                sitemap.sitemaps.append(loc)

    return sitemap


def expand_sitemap(xml_content: str, frontier: Frontier, base_url: str) -> int:
    """
    Push sitemap entries onto the front of the frontier.

    Page URLs outside ``base_url`` are ignored; nested sitemaps are always
    followed and end up ahead of the page URLs.

    Returns:
        Number of URLs added
    """
    sitemap = parse_sitemap(xml_content)

    page_urls = [u.loc for u in sitemap.urls if is_same_site(u.loc, base_url)]
    added = frontier.push_many_front(page_urls)
    added += frontier.push_many_front(sitemap.sitemaps)

    logger.info(
        f"Sitemap listed {len(sitemap.urls)} URLs and {len(sitemap.sitemaps)} "
        f"sitemaps; {added} added to frontier"
    )
    return added
