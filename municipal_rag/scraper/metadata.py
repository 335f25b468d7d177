"""
Pattern-based metadata extraction for municipal documents.

Each field is an ordered list of ``(pattern, extractor)`` rules; the first rule
that matches decides the value. Tags are accumulated from every topic that
matches, so their evaluation order does not matter.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field

Extractor = Callable[[re.Match[str]], str]
Rule = tuple[re.Pattern[str], Extractor]

MONTHS = (
    "January|February|March|April|May|June|July|August|"
    "September|October|November|December"
)
LONG_DATE = rf"(?:{MONTHS})\s+\d{{1,2}},?\s+\d{{4}}"
YEAR = r"\b(?:19|20)\d{2}\b"


def group(n: int = 1) -> Extractor:
    return lambda match: match.group(n).strip()


def first_match(text: str, rules: Iterable[Rule]) -> str | None:
    """Return the value extracted by the first matching rule, if any."""
    for pattern, extract in rules:
        match = pattern.search(text)
        if match:
            return extract(match)
    return None


DATE_RULES: list[Rule] = [
    (re.compile(rf"(?:Dated|Date):\s*({LONG_DATE})", re.I), group()),
    (re.compile(rf"\b({LONG_DATE})\b", re.I), group()),
    (re.compile(r"\b(\d{1,2}/\d{1,2}/\d{4})\b"), group()),
    (re.compile(r"\b(\d{4}-\d{2}-\d{2})\b"), group()),
    (re.compile(rf"({YEAR})"), group()),
]

AMENDED_RULES: list[Rule] = [
    (re.compile(rf"amended\s+on\s+({LONG_DATE})", re.I), group()),
    (re.compile(rf"last\s+amended\s+({LONG_DATE})", re.I), group()),
    (re.compile(rf"amended\s+({LONG_DATE})", re.I), group()),
    (re.compile(rf"revised\s+({LONG_DATE})", re.I), group()),
]

BYLAW_NUMBER = r"(\d+-\d+|\d+)"

IDENTIFIER_RULES: list[Rule] = [
    (re.compile(rf"bylaw\s+no\.\s*{BYLAW_NUMBER}", re.I), group()),
    (re.compile(rf"bylaw\s+number\s+{BYLAW_NUMBER}", re.I), group()),
    (re.compile(rf"bylaw\s+{BYLAW_NUMBER}", re.I), group()),
]

TOPIC_KEYWORDS: dict[str, re.Pattern[str]] = {
    topic: re.compile(pattern)
    for topic, pattern in {
        "zoning": r"zoning|land use|property|development|building height|setback|residential zone|commercial zone|industrial zone",
        "utilities": r"utilities|water|sewer|electricity|gas|waste|garbage|recycling",
        "traffic": r"traffic|parking|vehicle|road|street|highway|speed limit",
        "noise": r"noise|quiet|sound|decibel|disturbance",
        "animals": r"animal|pet|dog|cat|livestock|leash",
        "business": r"business|license|permit|commercial|retail|restaurant|store",
        "parks": r"park|recreation|playground|trail|green space",
        "environmental": r"environment|pollution|emission|conservation|sustainable",
        "fees": r"fee|rate|charge|payment|cost|price",
        "enforcement": r"enforce|penalty|fine|violation|comply|compliance",
        "financial": r"financial|budget|fiscal|tax|revenue|expenditure",
        "planning": r"planning|development|official community plan|ocp|land use",
        "housing": r"housing|residential|dwelling|apartment|townhouse|affordable",
        "transportation": r"transportation|transit|bus|cycling|pedestrian|active transportation",
        "climate": r"climate|greenhouse gas|emission|carbon|sustainability",
        "accessibility": r"accessibility|disability|barrier|inclusive",
    }.items()
}

YEAR_PATTERN = re.compile(YEAR)
MAX_YEAR_TAGS = 2


@dataclass(frozen=True)
class DocumentHints:
    """Document-level facts that feed tag derivation."""

    document_type: str | None = None
    category: str | None = None


@dataclass
class ExtractedMetadata:
    date: str | None = None
    last_amended: str | None = None
    identifying_number: str | None = None
    tags: set[str] = field(default_factory=set)


def slugify_category(category: str) -> str:
    """``"Reports, Maps & Plans"`` -> ``"reports-maps-and-plans"``."""
    slug = category.lower().replace("&", "and")
    slug = re.sub(r"[^a-z0-9\s]", "", slug).strip()
    return re.sub(r"\s+", "-", slug)


def topic_tags(text: str, topics: dict[str, re.Pattern[str]] = TOPIC_KEYWORDS) -> set[str]:
    lowered = text.lower()
    return {topic for topic, pattern in topics.items() if pattern.search(lowered)}


def year_tags(text: str, limit: int = MAX_YEAR_TAGS) -> set[str]:
    """Tag the most recent distinct years mentioned in the text."""
    years = sorted(set(YEAR_PATTERN.findall(text)), reverse=True)[:limit]
    return {f"year-{year}" for year in years}


def extract_tags(text: str, hints: DocumentHints | None = None) -> set[str]:
    tags = topic_tags(text) | year_tags(text)
    if hints:
        if hints.document_type:
            tags.add(hints.document_type)
        if hints.category:
            slug = slugify_category(hints.category)
            if slug:
                tags.add(slug)
    return tags


def extract_metadata(text: str, hints: DocumentHints | None = None) -> ExtractedMetadata:
    """Derive date, amendment date, bylaw number, and topical tags from text."""
    return ExtractedMetadata(
        date=first_match(text, DATE_RULES),
        last_amended=first_match(text, AMENDED_RULES),
        identifying_number=first_match(text, IDENTIFIER_RULES),
        tags=extract_tags(text, hints),
    )
