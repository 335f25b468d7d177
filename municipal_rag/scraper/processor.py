"""
Document processing: extracted text to chunks.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from municipal_rag.config.logging import get_logger
from municipal_rag.scraper.chunker import ContentChunker
from municipal_rag.scraper.errors import DocumentParseError
from municipal_rag.scraper.extract import html_sections, html_to_text, pdf_to_text
from municipal_rag.scraper.models import Chunk, DocumentDescriptor, FileType

logger = get_logger("scraper.processor")


@dataclass
class ProcessingError:
    """A document that could not be turned into chunks."""

    id: str
    title: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "title": self.title, "error": self.error}


@dataclass
class ProcessResult:
    chunks: list[Chunk] = field(default_factory=list)
    errors: list[ProcessingError] = field(default_factory=list)
    skipped: int = 0


class DocumentProcessor:
    """Extracts text from downloaded PDFs and HTML pages and chunks it."""

    def __init__(self, chunker: ContentChunker | None = None):
        self.chunker = chunker or ContentChunker()

    def is_processable(self, document: DocumentDescriptor) -> bool:
        if document.skipped or document.error:
            return False
        if document.file_type is FileType.HTML:
            return bool(document.content)
        return bool(document.local_path)

    def process_document(self, document: DocumentDescriptor) -> list[Chunk]:
        """
        Chunk one document.

        Raises:
            DocumentParseError: if the content cannot be parsed
            FileNotFoundError: if a downloaded file has disappeared
        """
        if document.file_type is FileType.HTML:
            sections = html_sections(document.content or "")
            text = (
                "\n\n".join(body for _, body in sections)
                if sections
                else html_to_text(document.content or "")
            )
            return self.chunker.chunk_document(text, document, sections=sections or None)

        text = pdf_to_text(document.local_path)
        if not text.strip():
            raise DocumentParseError("No extractable text (scanned or empty PDF)")
        return self.chunker.chunk_document(text, document)

    def process(self, documents: list[DocumentDescriptor]) -> ProcessResult:
        """
        Chunk every processable document.

        Documents that were skipped, failed to download, or carry no content
        are passed over; parse failures are recorded per document.
        """
        result = ProcessResult()
        logger.info(f"Processing {len(documents)} documents...")

        for document in documents:
            if not self.is_processable(document):
                result.skipped += 1
                continue

            logger.info(f"Processing document: {document.title}")
            try:
                chunks = self.process_document(document)
            except (DocumentParseError, OSError) as e:
                logger.error(
                    f"Error processing document {document.title}: {e}",
                    extra={"url": document.url},
                )
                result.errors.append(
                    ProcessingError(id=document.id, title=document.title, error=str(e))
                )
                continue

            result.chunks.extend(chunks)

        logger.info(f"Processing complete. Created {len(result.chunks)} chunks.")
        return result
