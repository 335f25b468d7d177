#!/usr/bin/env python
"""
Vector store initialization script.

Enables pgvector and creates the chunk vector table.

Usage:
    python scripts/init_db.py
"""

import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()


def mask_url(db_url: str) -> str:
    if "@" not in db_url:
        return db_url
    credentials, host = db_url.split("@", 1)
    return credentials.rsplit(":", 1)[0] + ":****@" + host


async def init_database() -> bool:
    """Create the extension and tables, then report the row count."""
    from municipal_rag.config.settings import get_settings
    from municipal_rag.db.connection import close_db, init_db
    from municipal_rag.db.repositories.vector import PgVectorStore

    settings = get_settings()

    print("=" * 60)
    print("Vector Store Initialization")
    print("=" * 60)
    print(f"\nConnecting to: {mask_url(settings.database_url)}")

    try:
        await init_db()
        print("[OK] Schema created")

        count = await PgVectorStore().count()
        print(f"[OK] chunk_vectors holds {count} rows")
    except Exception as e:
        print(f"\n[FAIL] Initialization failed: {e}")
        print("\nTroubleshooting:")
        print("  1. Check your DATABASE_URL in .env")
        print("  2. Ensure the database server is running")
        print("  3. CREATE EXTENSION vector may need a superuser")
        return False
    finally:
        await close_db()

    print("\n" + "=" * 60)
    print("[SUCCESS] Initialization complete!")
    print("=" * 60)
    return True


if __name__ == "__main__":
    sys.exit(0 if asyncio.run(init_database()) else 1)
