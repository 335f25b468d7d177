"""Vector store persistence."""

from municipal_rag.db.connection import close_db, get_engine, get_session_factory, init_db
from municipal_rag.db.models import ChunkVector

__all__ = [
    "get_engine",
    "get_session_factory",
    "init_db",
    "close_db",
    "ChunkVector",
]
