"""
Vector store for embedded chunks.
"""

from __future__ import annotations

import asyncio
import math
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from municipal_rag.config.logging import get_logger
from municipal_rag.db.connection import get_engine, get_session_factory, init_db
from municipal_rag.db.models import ChunkVector

logger = get_logger("db.vector")


@dataclass
class VectorMatch:
    """A stored chunk and its cosine similarity to the query."""

    id: str
    score: float
    content: str
    metadata: dict[str, Any]


class VectorStore(Protocol):
    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None: ...

    async def query(self, vector: list[float], top_k: int = 5) -> list[VectorMatch]: ...


def cosine_similarity(a: list[float], b: list[float]) -> float:
    dot = sum(x * y for x, y in zip(a, b))
    norm = math.sqrt(sum(x * x for x in a)) * math.sqrt(sum(y * y for y in b))
    return dot / norm if norm else 0.0


class PgVectorStore:
    """
    Chunk vectors in PostgreSQL/pgvector.

    Tables are created on first use. Other dialects (SQLite in tests) store
    vectors as JSON and rank in Python.
    """

    def __init__(
        self,
        engine: AsyncEngine | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self._engine = engine
        self._session_factory = session_factory
        self._ready = False
        self._lock = asyncio.Lock()

    @property
    def engine(self) -> AsyncEngine:
        return self._engine or get_engine()

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            if self._engine is None:
                self._session_factory = get_session_factory()
            else:
                self._session_factory = async_sessionmaker(
                    self._engine, class_=AsyncSession, expire_on_commit=False
                )
        return self._session_factory

    async def _ensure_ready(self) -> None:
        async with self._lock:
            if not self._ready:
                logger.info("Creating vector store tables if absent")
                await init_db(self.engine)
                self._ready = True

    async def upsert(self, id: str, vector: list[float], metadata: dict[str, Any]) -> None:
        await self._ensure_ready()

        row = ChunkVector(
            id=id,
            content=metadata.get("content", ""),
            embedding=list(vector),
            url=metadata.get("url"),
            metadata_=metadata,
        )
        async with self.session_factory() as session:
            await session.merge(row)
            await session.commit()

    async def query(self, vector: list[float], top_k: int = 5) -> list[VectorMatch]:
        await self._ensure_ready()

        async with self.session_factory() as session:
            if self.engine.dialect.name == "postgresql":
                return await self._query_pgvector(session, vector, top_k)
            return await self._query_scan(session, vector, top_k)

    async def _query_pgvector(
        self, session: AsyncSession, vector: list[float], top_k: int
    ) -> list[VectorMatch]:
        # pgvector: <=> is cosine distance
        embedding_str = "[" + ",".join(map(str, vector)) + "]"
        query = text("""
            SELECT id, content, metadata,
                   1 - (embedding <=> CAST(:embedding AS vector)) AS similarity
            FROM chunk_vectors
            ORDER BY embedding <=> CAST(:embedding AS vector)
            LIMIT :k
        """).bindparams(embedding=embedding_str, k=top_k)

        result = await session.execute(query)
        return [
            VectorMatch(
                id=row.id,
                score=float(row.similarity),
                content=row.content,
                metadata=row.metadata or {},
            )
            for row in result.fetchall()
        ]

    async def _query_scan(
        self, session: AsyncSession, vector: list[float], top_k: int
    ) -> list[VectorMatch]:
        result = await session.execute(select(ChunkVector))
        matches = [
            VectorMatch(
                id=row.id,
                score=cosine_similarity(vector, row.embedding or []),
                content=row.content,
                metadata=row.metadata_ or {},
            )
            for row in result.scalars().all()
        ]
        matches.sort(key=lambda m: m.score, reverse=True)
        return matches[:top_k]

    async def count(self) -> int:
        await self._ensure_ready()
        async with self.session_factory() as session:
            result = await session.execute(text("SELECT COUNT(*) FROM chunk_vectors"))
            return result.scalar() or 0
