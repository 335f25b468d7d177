"""
SQLAlchemy models for the chunk vector store.
"""

from datetime import datetime, timezone
from typing import Any

from pgvector.sqlalchemy import Vector
from sqlalchemy import JSON, Column, DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from municipal_rag.config.settings import get_settings

# Define types that fall back to generic types for non-Postgres (e.g. SQLite tests)
JSONVal = JSON().with_variant(JSONB, "postgresql")
VectorVal = JSON().with_variant(Vector(get_settings().embedding_dimensions), "postgresql")


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def utcnow() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


class ChunkVector(Base):
    """
    An embedded document chunk.

    The id is the chunk id assigned at segmentation time, so re-ingesting the
    same chunk overwrites its row.
    """

    __tablename__ = "chunk_vectors"
    __table_args__ = (
        Index(
            "idx_chunk_vectors_embedding",
            "embedding",
            postgresql_using="hnsw",
            postgresql_ops={"embedding": "vector_cosine_ops"},
        ),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    embedding = Column(VectorVal)
    url: Mapped[str | None] = mapped_column(String(2048), index=True)
    metadata_: Mapped[dict[str, Any]] = mapped_column("metadata", JSONVal, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<ChunkVector(id={self.id}, url={(self.url or '')[:50]})>"
