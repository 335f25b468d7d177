"""Repository layer."""

from municipal_rag.db.repositories.vector import PgVectorStore, VectorMatch, VectorStore

__all__ = ["PgVectorStore", "VectorMatch", "VectorStore"]
