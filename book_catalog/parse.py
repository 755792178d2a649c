"""Parse book-info responses and rating arguments."""
from typing import Dict, Any, List, Optional
from book_catalog.models import Book, Rating, Score
from book_catalog.errors import BookPayloadError


def parse_book(payload: Any, book_id: Optional[str] = None) -> Book:
    """
    Parse a book-info JSON payload.

    Args:
        payload: Decoded JSON body from GET /books/{id}
        book_id: Identifier the payload was requested with

    Returns:
        Book object

    Raises:
        BookPayloadError: If the payload is not Book-shaped
    """
    if not isinstance(payload, dict):
        raise BookPayloadError(
            f"Expected a JSON object, got {type(payload).__name__}", book_id
        )

    name = payload.get("name")
    if not isinstance(name, str):
        raise BookPayloadError("Missing or non-string 'name'", book_id)

    # Description may be absent or null
    description = payload.get("description")
    if description is None:
        description = ""
    elif not isinstance(description, str):
        raise BookPayloadError("Non-string 'description'", book_id)

    return Book(name=name, description=description, book_id=book_id)


def parse_score(raw: str) -> Score:
    """Turn a score string into an int or float when it looks numeric."""
    raw = raw.strip()
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        return raw


def parse_rating(token: str) -> Rating:
    """
    Parse a ``BOOK_ID:RATING`` token.

    The split happens on the last colon so book ids may contain colons.

    Raises:
        ValueError: If the token has no colon or an empty part
    """
    book_id, sep, score = token.rpartition(":")
    if not sep or not book_id or not score.strip():
        raise ValueError(f"Expected BOOK_ID:RATING, got {token!r}")
    return Rating(book_id=book_id, rating=parse_score(score))


def parse_ratings(tokens: List[str]) -> List[Rating]:
    """Parse a list of ``BOOK_ID:RATING`` tokens."""
    return [parse_rating(token) for token in tokens]


def ratings_from_records(records: List[Dict[str, Any]]) -> List[Rating]:
    """
    Build ratings from JSON records such as ``{"bookId": "42", "rating": 5}``.

    Both ``bookId`` and ``book_id`` keys are accepted.
    """
    if not isinstance(records, list):
        raise ValueError(f"Expected a JSON list of rating records, got {type(records).__name__}")

    ratings = []
    for record in records:
        if not isinstance(record, dict):
            raise ValueError(f"Rating record must be a JSON object: {record!r}")
        book_id = record.get("bookId", record.get("book_id"))
        if book_id is None or "rating" not in record:
            raise ValueError(f"Rating record needs bookId and rating: {record!r}")
        ratings.append(Rating(book_id=str(book_id), rating=record["rating"]))
    return ratings
