"""Manual crawl runner for testing and debugging site parsers.

Runs the full pipeline (fetch, parse, enrich, upsert) for one or more
sites and prints what was found. With --dry-run results go to an
in-memory store and nothing is written to the database.

Usage:
    python scripts/run_crawl.py --site ippodo
    python scripts/run_crawl.py --site poppatea --site yoshien --limit 5
    python scripts/run_crawl.py --site horiishichimeien --dry-run
    python scripts/run_crawl.py --all --dry-run
"""

import asyncio
import argparse
import sys
import os

# Add backend to path so we can import zenradar modules
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from zenradar.config import settings
from zenradar.core.logging import configure_logging
from zenradar.db.session import async_session_factory, init_db
from zenradar.db.store import InMemoryDocumentStore, SqlAlchemyDocumentStore
from zenradar.scrapers.coordinator import CrawlCoordinator
from zenradar.scrapers.scraper_service import CrawlerService
from zenradar.scrapers.utils.fetcher import HttpDocumentFetcher
from zenradar.scrapers.utils.rate_limiter import DomainRateLimiter
from zenradar.services.product_store import ChangeDetectingStore
from zenradar.sites import load_sites


async def run_crawl(site_ids, limit: int = None, dry_run: bool = False) -> int:
    """Crawl the given sites and display the results.

    Args:
        site_ids: Site ids to crawl, every configured site when empty
        limit: Maximum number of products processed per site
        dry_run: Use an in-memory store instead of the database

    Returns:
        Process exit code
    """
    sites = load_sites(settings.SITES_FILE)

    unknown = [site_id for site_id in site_ids if site_id not in sites]
    if unknown:
        print(f"\nError: unknown site(s): {', '.join(unknown)}")
        print("\nAvailable sites:")
        for site_id in sites:
            print(f"   - {site_id}")
        return 2

    print(f"\n{'='*70}")
    print(f"  Crawling {', '.join(site_ids) if site_ids else 'all sites'}")
    print(f"{'='*70}")
    if limit:
        print(f"  Limit per site: {limit}")
    print(f"  Store: {'memory (dry run)' if dry_run else settings.DATABASE_URL}")
    print(f"{'='*70}\n")

    if dry_run:
        store = InMemoryDocumentStore()
    else:
        await init_db()
        store = SqlAlchemyDocumentStore(async_session_factory)

    async with HttpDocumentFetcher(rate_limiter=DomainRateLimiter()) as fetcher:
        service = CrawlerService(ChangeDetectingStore(store), fetcher)
        summary = await CrawlCoordinator(service, sites).run(site_ids, limit=limit)

    for site_id, result in summary.sites.items():
        print(f"[{site_id}] {result.products_found} products, "
              f"{result.stock_updates} updates, {result.duration:.1f}s")
        if dry_run:
            for product_id in result.product_ids:
                row = store.products[product_id]
                stock = "in stock" if row["is_in_stock"] else "out of stock"
                print(f"    {row['name'][:50]:<50} {row['price'] or '-':>10}  {stock}")
        print()

    for error in summary.errors:
        print(f"[{error['site']}] FAILED: {error['error']}")

    print(f"{'='*70}")
    print("  Summary")
    print(f"{'='*70}")
    print(f"  Sites processed: {summary.sites_processed}")
    print(f"  Total products:  {summary.total_products}")
    print(f"  Stock updates:   {summary.stock_updates}")
    print(f"  Errors:          {len(summary.errors)}")
    print(f"  Duration:        {summary.duration:.1f}s")
    print(f"{'='*70}\n")

    return 1 if summary.errors else 0


def main():
    """Parse arguments and run the crawl."""
    parser = argparse.ArgumentParser(
        description="Run the crawler for one or more sites",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/run_crawl.py --site ippodo
  python scripts/run_crawl.py --site poppatea --limit 5 --dry-run
  python scripts/run_crawl.py --all
        """,
    )

    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument(
        "--site",
        action="append",
        help="Site id (e.g., 'ippodo', 'poppatea'); repeat for several sites",
    )
    target.add_argument(
        "--all",
        action="store_true",
        help="Crawl every configured site",
    )

    parser.add_argument(
        "--limit",
        type=int,
        help="Maximum number of products processed per site",
    )

    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep results in memory instead of writing to the database",
    )

    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level (default: LOG_LEVEL setting)",
    )

    args = parser.parse_args()
    configure_logging(level=args.log_level)

    site_ids = [] if args.all else args.site
    sys.exit(asyncio.run(run_crawl(site_ids, args.limit, args.dry_run)))


if __name__ == "__main__":
    main()
