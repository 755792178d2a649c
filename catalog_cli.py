#!/usr/bin/env python3
"""Book Catalog CLI - build catalog entries from ratings."""
import argparse
import asyncio
import sys
import json
from tabulate import tabulate
from book_catalog.client import BookInfoClient
from book_catalog.async_client import AsyncBookInfoClient
from book_catalog.breaker import CircuitBreaker
from book_catalog.errors import BookInfoError
from book_catalog.lookup import CatalogLookup, AsyncCatalogLookup
from book_catalog.parse import parse_ratings, ratings_from_records
from book_catalog.config import Config
import logging

logger = logging.getLogger(__name__)


def setup_logging(config: Config):
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


def load_ratings(args):
    """Ratings from positional BOOK_ID:RATING tokens and/or a JSON file."""
    ratings = parse_ratings(args.ratings)
    if args.file:
        with open(args.file, encoding='utf-8') as f:
            ratings.extend(ratings_from_records(json.load(f)))
    return ratings


async def lookup_async(args, config: Config):
    """Look up catalog entries concurrently."""
    ratings = load_ratings(args)
    breaker = CircuitBreaker.from_config(config)

    async with AsyncBookInfoClient.from_config(config, max_concurrent=args.parallel) as client:
        logger.info(f"Looking up {len(ratings)} ratings ({args.parallel} in parallel)")
        catalog = await AsyncCatalogLookup(client, breaker).get_catalog(ratings)

    display_catalog(catalog, args.format)
    logger.info(f"Breaker: {breaker.snapshot()}")


def lookup_sync(args, config: Config):
    """Look up catalog entries one by one."""
    ratings = load_ratings(args)
    breaker = CircuitBreaker.from_config(config)

    with BookInfoClient.from_config(config) as client:
        catalog = CatalogLookup(client, breaker).get_catalog(ratings)

    display_catalog(catalog, args.format)
    logger.info(f"Breaker: {breaker.snapshot()}")


def fetch_book(args, config: Config) -> int:
    """Fetch one raw book without fallback; non-zero exit on failure."""
    with BookInfoClient.from_config(config) as client:
        try:
            book = client.get_book(args.book_id)
        except BookInfoError as e:
            logger.error(f"❌ Could not fetch book {args.book_id}: {e}")
            return 1

    print(json.dumps({"bookId": args.book_id, "name": book.name, "description": book.description}, indent=2))
    return 0


def display_catalog(catalog, format_type: str):
    """Display catalog entries in specified format."""
    if format_type == "table":
        headers = ["Name", "Description", "Rating"]
        rows = [
            [
                item.name[:50] + "..." if len(item.name) > 50 else item.name,
                item.description[:60] + "..." if len(item.description) > 60 else item.description,
                item.rating
            ]
            for item in catalog
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([item.to_dict() for item in catalog], indent=2))

    elif format_type == "compact":
        for i, item in enumerate(catalog, 1):
            print(f"{i}. {item.name} - {item.rating}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Book Catalog - merge book-info metadata with ratings",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Look up two rated books
  %(prog)s lookup 42:5 99:3

  # Ratings from a JSON file, looked up in parallel
  %(prog)s lookup --file ratings.json --async --parallel 10 --format json

  # Fetch raw book metadata
  %(prog)s book 42
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    lookup_parser = subparsers.add_parser("lookup", help="Build catalog entries from ratings")
    lookup_parser.add_argument("ratings", nargs="*", help="BOOK_ID:RATING pairs")
    lookup_parser.add_argument("--file", help='JSON list of {"bookId": ..., "rating": ...} records')
    lookup_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
    lookup_parser.add_argument("--parallel", type=int, default=None, help="Concurrent requests (default: MAX_CONCURRENT)")
    lookup_parser.add_argument("--async", dest="use_async", action="store_true", help="Use async client")

    book_parser = subparsers.add_parser("book", help="Fetch raw book metadata")
    book_parser.add_argument("book_id", help="Book identifier")

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.command == "lookup" and not args.ratings and not args.file:
        parser.error("lookup needs BOOK_ID:RATING pairs or --file")

    config = Config()
    setup_logging(config)

    try:
        if args.command == "lookup":
            if args.use_async:
                args.parallel = args.parallel or config.MAX_CONCURRENT
                asyncio.run(lookup_async(args, config))
            else:
                lookup_sync(args, config)

        elif args.command == "book":
            sys.exit(fetch_book(args, config))

    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except ValueError as e:
        logger.error(f"❌ {e}")
        sys.exit(2)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
