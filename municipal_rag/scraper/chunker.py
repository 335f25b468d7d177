"""
Section-aware chunking for municipal documents.

Raw document text is split by a cascade of structural heading patterns, falling
back to paragraph accumulation when no pattern finds a usable structure.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass

from municipal_rag.config.settings import get_settings
from municipal_rag.scraper.metadata import DocumentHints, extract_metadata, topic_tags
from municipal_rag.scraper.models import Chunk, ChunkMetadata, DocumentDescriptor

Pattern = tuple[str, re.Pattern[str]]

# Tried in order of specificity; the first one producing two usable sections wins
SECTION_PATTERNS: list[Pattern] = [
    (
        "explicit",
        re.compile(
            r"^[ \t]*(?:SECTION|Section|PART|Part|ARTICLE|Article)\s+(?:\d+|[IVXLC]+)\b",
            re.M,
        ),
    ),
    ("dotted", re.compile(r"^[ \t]*\d+\.\d+\s+[A-Z]", re.M)),
    ("numbered", re.compile(r"^[ \t]*\d+\.\s+[A-Z]", re.M)),
    ("all_caps", re.compile(r"^[ \t]*[A-Z][A-Z0-9 ,&'()/-]{2,59}[ \t]*$", re.M)),
    ("title_colon", re.compile(r"^[ \t]*[A-Z][a-z][^\n:]{0,78}:[ \t]*$", re.M)),
]

PARAGRAPH_BREAK = re.compile(r"\n\s*\n")

# Last-resort separators for a single paragraph longer than the maximum
HARD_SEPARATORS = ["\n", ". ", "; ", ", ", " "]


@dataclass(frozen=True)
class Segment:
    """One section of a document and its title."""

    text: str
    title: str


def section_title(text: str, index: int) -> str:
    """First non-empty line of a section, else ``Section {index}``."""
    for line in text.splitlines():
        if line.strip():
            return line.strip()
    return f"Section {index}"


class SectionChunker:
    """
    Splits raw document text into bounded, semantically coherent sections.

    Every emitted section is at most ``max_chunk_size`` characters and at
    least ``min_chunk_size``, except a final remainder and short pieces that
    fit next to neither neighbour. Segmenting an emitted section again
    returns it unchanged.
    """

    def __init__(
        self,
        max_chunk_size: int | None = None,
        min_chunk_size: int | None = None,
    ):
        settings = get_settings()

        self.max_chunk_size = settings.chunk_max_size if max_chunk_size is None else max_chunk_size
        self.min_chunk_size = settings.chunk_min_size if min_chunk_size is None else min_chunk_size

        if self.min_chunk_size > self.max_chunk_size:
            raise ValueError("min_chunk_size cannot exceed max_chunk_size")

    # ------------------------------------------------------------------
    # Cascade
    # ------------------------------------------------------------------

    def segment(self, text: str) -> list[Segment]:
        """
        Split text into titled sections.

        Returns an empty list only for blank input.
        """
        if not text or not text.strip():
            return []

        text = text.strip()
        pieces = self._fold_short(self._segment_text(text, SECTION_PATTERNS)) or [text]

        return [
            Segment(text=piece, title=section_title(piece, i))
            for i, piece in enumerate(pieces, start=1)
        ]

    def _segment_text(self, text: str, patterns: list[Pattern]) -> list[str]:
        """Split by the first usable pattern, then bound each section by the lower ones."""
        split = self._split_structural(text, patterns)
        if split is None:
            if len(text) <= self.max_chunk_size:
                return [text]
            return self._accumulate_paragraphs(text)

        sections, level = split
        lower = patterns[level + 1 :]

        pieces: list[str] = []
        for section in sections:
            if len(section) <= self.max_chunk_size:
                pieces.append(section)
            else:
                pieces.extend(self._segment_text(section, lower))
        return pieces

    def _split_structural(
        self, text: str, patterns: list[Pattern]
    ) -> tuple[list[str], int] | None:
        """
        Find the heading level that structures ``text``.

        Returns the sections and the index of the pattern that produced them,
        or None when no pattern applies. A heading that opens the text or
        occurs only once makes the whole text a single section at that level.
        """
        for level, (_, pattern) in enumerate(patterns):
            starts = [m.start() for m in pattern.finditer(text)]
            if not starts:
                continue

            opens_text = starts[0] == 0
            single_heading = len(starts) == 1

            # Preamble before the first heading belongs to the first section
            starts[0] = 0
            bounds = starts + [len(text)]
            candidates = [
                text[bounds[i] : bounds[i + 1]].strip() for i in range(len(starts))
            ]

            sections = self._merge_short(candidates)
            if len(sections) >= 2:
                return sections, level
            if opens_text or single_heading:
                return [text], level
        return None

    def _merge_short(self, candidates: list[str]) -> list[str]:
        """
        Fold candidates below the minimum into the following section.

        A short trailing candidate is folded into the preceding one instead.
        """
        sections: list[str] = []
        carry = ""
        for candidate in candidates:
            if not candidate:
                continue
            merged = f"{carry}\n\n{candidate}" if carry else candidate
            if len(merged) < self.min_chunk_size:
                carry = merged
                continue
            sections.append(merged)
            carry = ""

        if carry:
            if sections:
                sections[-1] = f"{sections[-1]}\n\n{carry}"
            else:
                sections.append(carry)
        return sections

    # ------------------------------------------------------------------
    # Size bounds
    # ------------------------------------------------------------------

    def _accumulate_paragraphs(self, text: str) -> list[str]:
        """
        Greedily pack blank-line separated paragraphs up to the maximum size.

        Buffers below the minimum are carried into the next buffer rather
        than emitted; when the next paragraph does not fit, the buffer is
        topped up with the head of that paragraph.
        """
        paragraphs: deque[str] = deque()
        for paragraph in PARAGRAPH_BREAK.split(text):
            paragraph = paragraph.strip()
            if not paragraph:
                continue
            if len(paragraph) > self.max_chunk_size:
                paragraphs.extend(self._hard_split(paragraph, HARD_SEPARATORS))
            else:
                paragraphs.append(paragraph)

        sections: list[str] = []
        buffer = ""
        while paragraphs:
            paragraph = paragraphs.popleft()
            if not buffer:
                buffer = paragraph
                continue
            if len(buffer) + len(paragraph) + 2 <= self.max_chunk_size:
                buffer = f"{buffer}\n\n{paragraph}"
                continue
            if len(buffer) >= self.min_chunk_size:
                sections.append(buffer)
                buffer = paragraph
                continue

            room = self.max_chunk_size - len(buffer) - 2
            if room <= 0:
                sections.append(buffer)
                buffer = paragraph
                continue

            head, tail = self._cut(paragraph, room, self.min_chunk_size - len(buffer) - 2)
            sections.append(f"{buffer}\n\n{head}")
            buffer = ""
            if tail:
                paragraphs.appendleft(tail)

        if buffer:
            sections.append(buffer)
        return sections

    def _cut(self, text: str, room: int, least: int) -> tuple[str, str]:
        """
        Split ``text`` so the head fits in ``room`` characters.

        The coarsest separator leaving a head of at least ``least`` characters
        is used; without one the text is cut at ``room``.
        """
        for separator in HARD_SEPARATORS:
            pos = text.rfind(separator, 0, room)
            if pos <= 0:
                continue
            head = text[:pos] + separator.rstrip()
            if len(head) >= least:
                return head.rstrip(), text[pos + len(separator) :].lstrip()
        return text[:room], text[room:].lstrip()

    def _hard_split(self, text: str, separators: list[str]) -> list[str]:
        """Recursively split an oversized paragraph on progressively finer separators."""
        if len(text) <= self.max_chunk_size:
            return [text]
        if not separators:
            return [
                text[i : i + self.max_chunk_size]
                for i in range(0, len(text), self.max_chunk_size)
            ]

        separator, rest = separators[0], separators[1:]
        pieces = [p for p in text.split(separator) if p.strip()]
        if len(pieces) <= 1:
            return self._hard_split(text, rest)

        chunks: list[str] = []
        current = ""
        for piece in pieces:
            candidate = f"{current}{separator}{piece}" if current else piece
            if len(candidate) <= self.max_chunk_size:
                current = candidate
                continue
            if current:
                chunks.append(current)
            if len(piece) > self.max_chunk_size:
                chunks.extend(self._hard_split(piece, rest))
                current = ""
            else:
                current = piece
        if current:
            chunks.append(current)
        return [c.strip() for c in chunks if c.strip()]

    def _fold_short(self, pieces: list[str]) -> list[str]:
        """
        Fold pieces below the minimum into a neighbour that has room.

        The preceding piece is preferred; a short piece that fits next to
        neither neighbour is kept as is.
        """
        folded: list[str] = []
        pending = ""
        for piece in pieces:
            if pending:
                merged = f"{pending}\n\n{piece}"
                if len(merged) <= self.max_chunk_size:
                    piece = merged
                else:
                    folded.append(pending)
                pending = ""

            if len(piece) >= self.min_chunk_size:
                folded.append(piece)
            elif folded and len(folded[-1]) + len(piece) + 2 <= self.max_chunk_size:
                folded[-1] = f"{folded[-1]}\n\n{piece}"
            else:
                pending = piece

        if pending:
            folded.append(pending)
        return folded

    # ------------------------------------------------------------------
    # Pre-split sections
    # ------------------------------------------------------------------

    def segment_sections(self, sections: list[tuple[str | None, str]]) -> list[Segment]:
        """
        Bound pre-split ``(heading, text)`` sections, e.g. from HTML headings.

        Short sections fold into their successor; long ones are split by
        paragraph and keep the heading as their title.
        """
        merged: list[tuple[str | None, str]] = []
        carry_heading: str | None = None
        carry = ""
        for heading, body in sections:
            body = body.strip()
            if not body:
                continue
            text = f"{carry}\n\n{body}" if carry else body
            title = carry_heading if carry else heading
            if len(text) < self.min_chunk_size:
                carry, carry_heading = text, title
                continue
            merged.append((title, text))
            carry, carry_heading = "", None

        if carry:
            if merged:
                title, text = merged[-1]
                merged[-1] = (title, f"{text}\n\n{carry}")
            else:
                merged.append((carry_heading, carry))

        segments: list[Segment] = []
        for heading, text in merged:
            pieces = (
                self._fold_short(self._accumulate_paragraphs(text))
                if len(text) > self.max_chunk_size
                else [text]
            )
            for piece in pieces:
                index = len(segments) + 1
                segments.append(Segment(text=piece, title=heading or section_title(piece, index)))
        return segments


class ContentChunker:
    """
    Turns a document's text into ``Chunk`` records with provenance metadata.

    Document-level metadata (dates, bylaw number, year and hint tags) is
    extracted once from the full text; each chunk adds the topic tags of its
    own section.
    """

    def __init__(
        self,
        max_chunk_size: int | None = None,
        min_chunk_size: int | None = None,
    ):
        self.segmenter = SectionChunker(
            max_chunk_size=max_chunk_size,
            min_chunk_size=min_chunk_size,
        )

    def chunk_document(
        self,
        text: str,
        document: DocumentDescriptor,
        sections: list[tuple[str | None, str]] | None = None,
    ) -> list[Chunk]:
        """
        Chunk a document.

        Args:
            text: Full extracted text of the document
            document: The descriptor the text came from
            sections: Optional pre-split ``(heading, text)`` pairs

        Returns:
            Chunks in document order
        """
        segments = (
            self.segmenter.segment_sections(sections)
            if sections
            else self.segmenter.segment(text)
        )
        if not segments:
            return []

        hints = DocumentHints(
            document_type=document.document_type.value,
            category=document.category,
        )
        doc_meta = extract_metadata(text, hints)

        chunks = []
        for index, segment in enumerate(segments, start=1):
            metadata = ChunkMetadata(
                title=document.title,
                section=segment.title,
                section_index=index,
            )
            metadata.date = document.date or doc_meta.date or "Unknown"
            metadata.last_amended = doc_meta.last_amended
            metadata.identifying_number = doc_meta.identifying_number
            metadata.tags = doc_meta.tags | topic_tags(segment.text)
            metadata.url = document.url
            metadata.department = document.department
            metadata.document_type = document.document_type
            metadata.file_type = document.file_type
            metadata.category = document.category

            chunks.append(Chunk(content=segment.text, metadata=metadata))

        return chunks
