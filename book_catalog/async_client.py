"""Async HTTP client for parallel book lookups."""
import asyncio
import httpx
from typing import Optional
import logging

from book_catalog.errors import (
    BookInfoConnectionError,
    BookInfoStatusError,
    BookPayloadError,
)
from book_catalog.models import Book
from book_catalog.parse import parse_book

logger = logging.getLogger(__name__)


class AsyncBookInfoClient:
    """Async client for the book-info service."""

    BASE_URL = "http://book-info-service"
    BOOKS_PATH = "/books/"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 1.0,
        max_concurrent: int = 5,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize async client.

        Args:
            base_url: Scheme and host of the book-info service
            timeout: Request timeout
            max_concurrent: Maximum concurrent requests
            transport: Optional httpx transport (e.g. MockTransport in tests)
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.semaphore = asyncio.Semaphore(max_concurrent)

        self.client = httpx.AsyncClient(timeout=timeout, transport=transport, follow_redirects=True)

    @classmethod
    def from_config(cls, config, max_concurrent: Optional[int] = None) -> "AsyncBookInfoClient":
        return cls(
            base_url=config.BOOK_INFO_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT,
            max_concurrent=max_concurrent or config.MAX_CONCURRENT,
        )

    def book_url(self, book_id: str) -> str:
        return self.base_url + self.BOOKS_PATH + str(book_id)

    async def get_book(self, book_id: str) -> Book:
        """
        Fetch a book by id asynchronously.

        Raises:
            BookInfoError: On network failure, bad status or bad payload
        """
        url = self.book_url(book_id)

        # Use semaphore to limit concurrency
        async with self.semaphore:
            try:
                logger.info(f"Async request: {url}")
                response = await self.client.get(url)
            except httpx.TimeoutException as e:
                raise BookInfoConnectionError(f"Timeout: {e}", book_id) from e
            except httpx.HTTPError as e:
                raise BookInfoConnectionError(str(e), book_id) from e

        if not response.is_success:
            logger.warning(f"Status {response.status_code} for book {book_id}")
            raise BookInfoStatusError(response.status_code, book_id, response.text)

        try:
            payload = response.json()
        except ValueError as e:
            raise BookPayloadError(f"Invalid JSON body: {e}", book_id) from e
        return parse_book(payload, book_id)

    async def close(self):
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
