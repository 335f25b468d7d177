#!/usr/bin/env python
"""
Ask a question against the ingested bylaw chunks.

Embeds the question, retrieves the nearest chunks from pgvector, and prints
the model's answer with its citations.

Usage:
    python scripts/ask.py "Do dogs need to be on a leash in parks?"
    python scripts/ask.py --top-k 3 "When was the zoning bylaw last amended?"
"""

import argparse
import asyncio
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv

load_dotenv()


async def ask(question: str, top_k: int | None) -> int:
    from municipal_rag.db.connection import close_db
    from municipal_rag.db.repositories.vector import PgVectorStore
    from municipal_rag.llm.factory import EmbeddingFactory
    from municipal_rag.llm.generator import ResponseGenerator
    from municipal_rag.llm.vectorizer import Vectorizer

    vectorizer = Vectorizer(EmbeddingFactory.create_embeddings(), PgVectorStore())

    try:
        matches = await vectorizer.query(question, top_k)
    finally:
        await close_db()

    print("=" * 60)
    print(f"Retrieved {len(matches)} chunks")
    print("=" * 60)
    for i, match in enumerate(matches, 1):
        print(f"  {i}. [{match.score:.3f}] {match.metadata.get('title')} - {match.metadata.get('section')}")

    response = await ResponseGenerator().generate(question, matches)

    print("\n" + "-" * 60)
    print(response.text)
    print("-" * 60)

    if response.citations:
        print("\nCitations:")
        for i, citation in enumerate(response.citations, 1):
            print(f"  [{i}] {citation.source}, {citation.section}")
            print(f"      \"{citation.text}\"")

    if response.error:
        print(f"\n[FAIL] {response.error}")
        return 1
    return 0


def main():
    parser = argparse.ArgumentParser(description="Ask a question about municipal bylaws")
    parser.add_argument("question", type=str, help="Question to answer")
    parser.add_argument("--top-k", type=int, help="Number of chunks to retrieve")
    args = parser.parse_args()

    from municipal_rag.config.logging import setup_logging

    setup_logging()
    sys.exit(asyncio.run(ask(args.question, args.top_k)))


if __name__ == "__main__":
    main()
