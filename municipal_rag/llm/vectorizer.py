"""
Chunk vectorization: embed chunks and upsert them into the vector store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from langchain_core.embeddings import Embeddings

from municipal_rag.config.logging import get_logger
from municipal_rag.config.settings import get_settings
from municipal_rag.db.repositories.vector import VectorMatch, VectorStore
from municipal_rag.scraper.models import Chunk

logger = get_logger("llm.vectorizer")

# Chunk text stored alongside the vector is cut to this many characters
STORED_CONTENT_LIMIT = 1000


@dataclass
class VectorizeResult:
    success_count: int = 0
    errors: list[dict[str, str]] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {"success_count": self.success_count, "errors": self.errors}


def vector_metadata(chunk: Chunk) -> dict[str, Any]:
    """Chunk metadata plus a truncated copy of its text."""
    content = chunk.content[:STORED_CONTENT_LIMIT]
    if len(chunk.content) > STORED_CONTENT_LIMIT:
        content += "..."
    metadata = chunk.metadata.to_dict()
    metadata["content"] = content
    metadata["chunk_id"] = chunk.id
    return metadata


class Vectorizer:
    """
    Embeds chunks in bounded batches.

    An embedding failure degrades to a zero vector; an upsert failure is
    recorded for that chunk. Neither stops the batch.
    """

    def __init__(
        self,
        embeddings: Embeddings,
        store: VectorStore,
        batch_size: int | None = None,
        batch_delay: float | None = None,
        dimensions: int | None = None,
    ):
        settings = get_settings()

        self.embeddings = embeddings
        self.store = store
        self.batch_size = settings.vectorize_batch_size if batch_size is None else batch_size
        self.batch_delay = (
            settings.vectorize_batch_delay_seconds if batch_delay is None else batch_delay
        )
        self.dimensions = settings.embedding_dimensions if dimensions is None else dimensions

    async def embed(self, text: str) -> list[float]:
        try:
            return await self.embeddings.aembed_query(text)
        except Exception as e:
            logger.error(f"Error generating embedding, using zero vector: {e}")
            return [0.0] * self.dimensions

    async def _vectorize_one(self, chunk: Chunk, result: VectorizeResult) -> None:
        vector = await self.embed(chunk.content)
        try:
            await self.store.upsert(chunk.id, vector, vector_metadata(chunk))
        except Exception as e:
            logger.error(f"Error vectorizing chunk {chunk.id}: {e}", extra={"document_id": chunk.id})
            result.errors.append({"id": chunk.id, "error": str(e)})
            return
        result.success_count += 1

    async def vectorize(self, chunks: list[Chunk]) -> VectorizeResult:
        result = VectorizeResult()
        total_batches = (len(chunks) + self.batch_size - 1) // self.batch_size

        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start : start + self.batch_size]
            batch_number = start // self.batch_size + 1
            logger.info(
                f"Processing batch {batch_number} of {total_batches}",
                extra={"batch": batch_number},
            )

            await asyncio.gather(*(self._vectorize_one(chunk, result) for chunk in batch))

            if start + self.batch_size < len(chunks) and self.batch_delay:
                await asyncio.sleep(self.batch_delay)

        logger.info(
            f"Vectorization complete: {result.success_count} stored, "
            f"{result.failure_count} failed"
        )
        return result

    async def query(self, query: str, top_k: int | None = None) -> list[VectorMatch]:
        """Embed a query and return the nearest stored chunks."""
        vector = await self.embed(query)
        if top_k is None:
            top_k = get_settings().retrieval_top_k
        return await self.store.query(vector, top_k)
