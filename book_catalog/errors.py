"""Errors raised while fetching book metadata."""
from typing import Optional


class BookInfoError(Exception):
    """Base class for book-info lookup failures."""

    def __init__(self, message: str, book_id: Optional[str] = None):
        super().__init__(message)
        self.book_id = book_id


class BookInfoConnectionError(BookInfoError):
    """Network failure or timeout talking to the book-info service."""


class BookInfoStatusError(BookInfoError):
    """Book-info service answered with a non-success status."""

    def __init__(self, status_code: int, book_id: Optional[str] = None, body: str = ""):
        super().__init__(f"Unexpected status {status_code}", book_id)
        self.status_code = status_code
        self.body = body

    @property
    def retryable(self) -> bool:
        return self.status_code == 429 or self.status_code >= 500


class BookPayloadError(BookInfoError):
    """Response body could not be turned into a Book."""


class CircuitOpenError(BookInfoError):
    """Call short-circuited because the breaker is open."""
