"""HTTP client for the book-info service with timeouts, retries and backoff."""
import time
import random
import requests
from typing import Optional
import logging

from book_catalog.errors import (
    BookInfoError,
    BookInfoConnectionError,
    BookInfoStatusError,
    BookPayloadError,
)
from book_catalog.models import Book
from book_catalog.parse import parse_book

logger = logging.getLogger(__name__)


class BookInfoClient:
    """Client for GET /books/{id} on the book-info service."""

    BASE_URL = "http://book-info-service"
    BOOKS_PATH = "/books/"

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: float = 1.0,
        max_retries: int = 1,
        base_backoff: float = 0.5,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize book-info client.

        Args:
            base_url: Scheme and host of the book-info service
            timeout: Request timeout in seconds
            max_retries: Total attempts per lookup (1 means no retry)
            base_backoff: Base delay for exponential backoff
            session: Optional pre-configured session
        """
        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_backoff = base_backoff

        # Create session for connection pooling
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config) -> "BookInfoClient":
        return cls(
            base_url=config.BOOK_INFO_BASE_URL,
            timeout=config.DEFAULT_TIMEOUT,
            max_retries=config.DEFAULT_MAX_RETRIES,
            base_backoff=config.DEFAULT_BACKOFF,
        )

    def book_url(self, book_id: str) -> str:
        """Build the lookup URL. The id is appended verbatim, without escaping."""
        return self.base_url + self.BOOKS_PATH + str(book_id)

    def get_book(self, book_id: str) -> Book:
        """
        Fetch a book by id.

        Args:
            book_id: Book identifier

        Returns:
            Parsed Book

        Raises:
            BookInfoError: When every attempt failed
        """
        url = self.book_url(book_id)
        last_error: Optional[BookInfoError] = None

        for attempt in range(self.max_retries):
            try:
                logger.info(f"Request attempt {attempt + 1}/{self.max_retries}: {url}")
                response = self.session.get(url, timeout=self.timeout)
            except requests.exceptions.Timeout as e:
                logger.warning(f"Timeout on attempt {attempt + 1}: {url}")
                last_error = BookInfoConnectionError(f"Timeout: {e}", book_id)
            except requests.exceptions.RequestException as e:
                logger.warning(f"Connection error on attempt {attempt + 1}: {e}")
                last_error = BookInfoConnectionError(str(e), book_id)
            else:
                if 200 <= response.status_code < 300:
                    return self._parse_response(response, book_id)

                last_error = BookInfoStatusError(response.status_code, book_id, response.text)
                if not last_error.retryable:
                    # Client error or unfollowed redirect - don't retry
                    logger.error(f"Non-retryable status ({response.status_code}) for book {book_id}")
                    raise last_error
                logger.warning(f"Retryable status ({response.status_code}) on attempt {attempt + 1}")

            if attempt < self.max_retries - 1:
                self._backoff(attempt)

        logger.error(f"All {self.max_retries} attempts failed for book {book_id}")
        raise last_error

    def _parse_response(self, response: requests.Response, book_id: str) -> Book:
        try:
            payload = response.json()
        except ValueError as e:
            raise BookPayloadError(f"Invalid JSON body: {e}", book_id) from e
        return parse_book(payload, book_id)

    def _backoff(self, attempt: int):
        """
        Sleep with exponential backoff and jitter.

        Args:
            attempt: Current attempt number (0-indexed)
        """
        delay = self.base_backoff * (2 ** attempt)
        jitter = random.uniform(0, delay)
        total_delay = delay + jitter

        logger.info(f"Backing off for {total_delay:.2f} seconds")
        time.sleep(total_delay)

    def close(self):
        """Close the session."""
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
