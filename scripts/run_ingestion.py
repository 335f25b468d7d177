#!/usr/bin/env python
"""
Manual script to crawl a municipal website and ingest its documents.

Usage:
    python scripts/run_ingestion.py
    python scripts/run_ingestion.py --base-url https://www.viewroyal.ca --max-pages 20
    python scripts/run_ingestion.py --seed /EN/main/town/bylaws-all.html --skip-vectorize
    python scripts/run_ingestion.py --library
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

load_dotenv()

from municipal_rag.config.logging import get_logger, setup_logging
from municipal_rag.config.settings import get_settings
from municipal_rag.scraper.crawler import DEFAULT_SEED_PATHS, MunicipalCrawler, resolve_seed
from municipal_rag.scraper.ingestion import IngestionPipeline

logger = get_logger("scripts.ingestion")


def build_vectorizer():
    """Embeddings from the configured provider, stored in pgvector."""
    from municipal_rag.db.repositories.vector import PgVectorStore
    from municipal_rag.llm.factory import EmbeddingFactory
    from municipal_rag.llm.vectorizer import Vectorizer

    return Vectorizer(EmbeddingFactory.create_embeddings(), PgVectorStore())


async def crawl_only(args: argparse.Namespace) -> None:
    """Crawl without downloading or storing anything."""
    crawler = MunicipalCrawler(
        base_url=args.base_url,
        page_budget=args.max_pages,
        size_limit_kb=args.size_limit_kb,
    )
    result = await (crawler.crawl_library() if args.library else crawler.crawl(args.seed))

    print("\n" + "=" * 60)
    print("DRY RUN - documents that would be downloaded:")
    print("=" * 60)
    for document in result.documents:
        marker = "-" if document.skipped else "•"
        print(f"  {marker} [{document.document_type.value}] {document.title}")
        print(f"    {document.url}")
    print(f"\nPages visited: {len(result.visited)}")
    print(f"Documents:     {len(result.documents)}")
    print(f"Errors:        {len(result.errors)}")
    print("=" * 60)


async def run_ingestion(args: argparse.Namespace) -> None:
    """Run the ingestion pipeline."""
    vectorizer = None if args.skip_vectorize else build_vectorizer()

    pipeline = IngestionPipeline(
        base_url=args.base_url,
        seed_urls=args.seed,
        page_budget=args.max_pages,
        size_limit_kb=args.size_limit_kb,
        library=args.library,
        vectorizer=vectorizer,
    )
    stats = await pipeline.run()

    if vectorizer is not None:
        from municipal_rag.db.connection import close_db

        await close_db()

    print("\n" + "=" * 60)
    print("INGESTION COMPLETE")
    print("=" * 60)
    print(f"Pages visited:      {stats.pages_visited}")
    print(f"Documents found:    {stats.documents_found}")
    print(f"Crawl errors:       {stats.crawl_errors}")
    print(f"Downloaded:         {stats.downloaded}")
    print(f"Skipped:            {stats.skipped}")
    print(f"Download errors:    {stats.download_errors}")
    print(f"Chunks:             {stats.total_chunks}")
    print(f"Processing errors:  {stats.processing_errors}")
    if vectorizer is not None:
        print(f"Vectorized:         {stats.vectorized}")
        print(f"Vectorize errors:   {stats.vectorize_errors}")
    print("=" * 60)

    if stats.artifacts:
        print("\nArtifacts:")
        for path in stats.artifacts:
            print(f"  {path}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Municipal document crawler and ingestion tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Crawl the default bylaw and document pages, then chunk and vectorize
  python scripts/run_ingestion.py

  # Crawl a small budget without touching the vector store
  python scripts/run_ingestion.py --max-pages 10 --skip-vectorize

  # Start from specific pages
  python scripts/run_ingestion.py --seed /EN/main/town/bylaws-all.html --seed /EN/main/town/budget.html

  # Only collect the document library PDFs
  python scripts/run_ingestion.py --library

  # Show what would be downloaded
  python scripts/run_ingestion.py --dry-run
        """,
    )

    source_group = parser.add_argument_group("Crawl")
    source_group.add_argument(
        "--base-url",
        type=str,
        help="Site root (default: MUNICIPAL_WEBSITE_URL)",
    )
    source_group.add_argument(
        "--seed",
        type=str,
        action="append",
        help="Seed URL or site-relative path; repeat for several",
    )
    source_group.add_argument(
        "--max-pages",
        type=int,
        help="Maximum number of pages to crawl",
    )
    source_group.add_argument(
        "--size-limit-kb",
        type=int,
        help="Skip documents declared larger than this",
    )
    source_group.add_argument(
        "--library",
        action="store_true",
        help="Collect PDFs from the document library pages only",
    )

    op_group = parser.add_argument_group("Operations")
    op_group.add_argument(
        "--skip-vectorize",
        action="store_true",
        help="Stop after chunking; don't embed or store",
    )
    op_group.add_argument(
        "--dry-run",
        action="store_true",
        help="Crawl and list documents; don't download or store",
    )
    op_group.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Verbose output",
    )

    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else None)

    if args.seed:
        base_url = (args.base_url or get_settings().municipal_website_url).rstrip("/")
        logger.info(f"Seeds: {[resolve_seed(s, base_url) for s in args.seed]}")
    else:
        logger.info(f"Using {len(DEFAULT_SEED_PATHS)} default seed pages")

    if args.dry_run:
        asyncio.run(crawl_only(args))
    else:
        asyncio.run(run_ingestion(args))


if __name__ == "__main__":
    main()
