"""
Records shared by the crawl, download, and segmentation stages.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any


def new_id() -> str:
    """Generate an opaque identifier for documents and chunks."""
    return str(uuid.uuid4())


class DocumentType(str, Enum):
    """Kind of municipal document."""

    BYLAW = "bylaw"
    BUDGET = "budget"
    REPORT = "report"
    POLICY = "policy"
    FORM = "form"
    PUBLICATION = "publication"
    OTHER = "other"


class FileType(str, Enum):
    """Storage format of a document."""

    PDF = "pdf"
    HTML = "html"
    DOC = "doc"
    OTHER = "other"


@dataclass
class DocumentDescriptor:
    """A discovered source document, before and after download."""

    title: str
    url: str
    document_type: DocumentType = DocumentType.OTHER
    file_type: FileType = FileType.OTHER
    department: str | None = None
    date: str | None = None
    category: str | None = None
    file_size_kb: int | None = None
    local_path: str | None = None
    content: str | None = None
    skipped: bool = False
    skip_reason: str | None = None
    error: str | None = None
    id: str = field(default_factory=new_id)

    def to_dict(self, include_content: bool = False) -> dict[str, Any]:
        """Serialize to a JSON-safe dict."""
        data = asdict(self)
        data["document_type"] = self.document_type.value
        data["file_type"] = self.file_type.value
        if not include_content:
            data.pop("content")
        return data


@dataclass
class CrawlError:
    """A per-URL failure recorded during crawling or downloading."""

    url: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "error": self.error}


@dataclass(frozen=True)
class CrawlResult:
    """Outcome of one crawl invocation."""

    documents: tuple[DocumentDescriptor, ...] = ()
    errors: tuple[CrawlError, ...] = ()
    visited: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents": [doc.to_dict() for doc in self.documents],
            "errors": [err.to_dict() for err in self.errors],
        }


@dataclass
class ChunkMetadata:
    """
    Provenance attached to every chunk.

    Fields are assigned explicitly; bump ``SCHEMA_VERSION`` when adding one.
    """

    SCHEMA_VERSION = 1

    title: str
    section: str
    section_index: int
    date: str = "Unknown"
    last_amended: str | None = None
    identifying_number: str | None = None
    tags: set[str] = field(default_factory=set)
    url: str | None = None
    department: str | None = None
    document_type: DocumentType | None = None
    file_type: FileType | None = None
    category: str | None = None

    def __post_init__(self) -> None:
        if self.section_index < 1:
            raise ValueError(f"section_index must be >= 1, got {self.section_index}")

    def to_dict(self) -> dict[str, Any]:
        """Flatten to primitive values for JSON files and vector metadata."""
        data: dict[str, Any] = {
            "schema_version": self.SCHEMA_VERSION,
            "title": self.title,
            "section": self.section,
            "section_index": self.section_index,
            "date": self.date,
            "tags": sorted(self.tags),
        }
        optional = {
            "last_amended": self.last_amended,
            "identifying_number": self.identifying_number,
            "url": self.url,
            "department": self.department,
            "document_type": self.document_type.value if self.document_type else None,
            "file_type": self.file_type.value if self.file_type else None,
            "category": self.category,
        }
        data.update({k: v for k, v in optional.items() if v is not None})
        return data


@dataclass
class Chunk:
    """A bounded, independently retrievable text segment."""

    content: str
    metadata: ChunkMetadata
    id: str = field(default_factory=new_id)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "content": self.content, "metadata": self.metadata.to_dict()}
