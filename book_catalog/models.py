"""Data models for ratings, books and catalog entries."""
from dataclasses import dataclass, asdict
from typing import Optional, Union, Dict, Any

Score = Union[int, float, str]


@dataclass(frozen=True)
class Rating:
    """A user's score for a single book."""
    book_id: str
    rating: Score


@dataclass
class Book:
    """Book metadata as served by the book-info service."""
    name: str
    description: str
    book_id: Optional[str] = None


@dataclass
class Catalog:
    """Catalog entry combining book metadata with a rating."""
    name: str
    description: str
    rating: Score

    @classmethod
    def from_book(cls, book: Book, rating: Rating) -> "Catalog":
        return cls(book.name, book.description, rating.rating)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
