"""Catalog lookups: combine remote book metadata with a user's rating."""
import asyncio
import logging
from typing import Iterable, List, Optional

from book_catalog.async_client import AsyncBookInfoClient
from book_catalog.breaker import CircuitBreaker, call_with_fallback, acall_with_fallback
from book_catalog.client import BookInfoClient
from book_catalog.models import Catalog, Rating

logger = logging.getLogger(__name__)

# Placeholder served when book metadata is unavailable. Kept verbatim.
FALLBACK_NAME = "Book name not"
FALLBACK_DESCRIPTION = ""


def fallback_catalog_item(rating: Rating) -> Catalog:
    """Degraded catalog entry that still carries the caller's rating."""
    return Catalog(FALLBACK_NAME, FALLBACK_DESCRIPTION, rating.rating)


class CatalogLookup:
    """Builds catalog entries from ratings via the book-info service."""

    def __init__(self, client: BookInfoClient, breaker: Optional[CircuitBreaker] = None):
        self.client = client
        self.breaker = breaker or CircuitBreaker()

    def get_catalog_item(self, rating: Rating) -> Catalog:
        """
        Fetch the rated book and merge it with the rating.

        Never raises: any failure, including an open circuit, yields
        the fallback entry.
        """
        return call_with_fallback(
            self._fetch_catalog_item,
            self.get_fallback_catalog_item,
            self.breaker,
            rating,
        )

    def get_fallback_catalog_item(self, rating: Rating) -> Catalog:
        return fallback_catalog_item(rating)

    def get_catalog(self, ratings: Iterable[Rating]) -> List[Catalog]:
        """Catalog entries for a user's ratings, in input order."""
        return [self.get_catalog_item(rating) for rating in ratings]

    def _fetch_catalog_item(self, rating: Rating) -> Catalog:
        book = self.client.get_book(rating.book_id)
        return Catalog.from_book(book, rating)


class AsyncCatalogLookup:
    """Async counterpart of ``CatalogLookup`` for concurrent batch lookups."""

    def __init__(self, client: AsyncBookInfoClient, breaker: Optional[CircuitBreaker] = None):
        self.client = client
        self.breaker = breaker or CircuitBreaker()

    async def get_catalog_item(self, rating: Rating) -> Catalog:
        return await acall_with_fallback(
            self._fetch_catalog_item,
            fallback_catalog_item,
            self.breaker,
            rating,
        )

    async def get_catalog(self, ratings: Iterable[Rating]) -> List[Catalog]:
        """
        Look up all ratings concurrently.

        Concurrency is bounded by the client's semaphore; results keep
        the order of ``ratings``.
        """
        tasks = [self.get_catalog_item(rating) for rating in ratings]
        results = await asyncio.gather(*tasks)
        logger.info(f"Built {len(results)} catalog entries")
        return list(results)

    async def _fetch_catalog_item(self, rating: Rating) -> Catalog:
        book = await self.client.get_book(rating.book_id)
        return Catalog.from_book(book, rating)
