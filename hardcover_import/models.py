"""Data models for Hardcover GraphQL responses."""
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any


@dataclass
class BookMapping:
    """External identifiers attached to a book."""
    isbn_13: Optional[str] = None
    isbn_10: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BookMapping":
        return cls(isbn_13=data.get("isbn_13"), isbn_10=data.get("isbn_10"))


@dataclass
class Book:
    """A book as returned inside a user_books row."""
    id: int
    title: str
    release_year: Optional[int] = None
    mappings: List[BookMapping] = field(default_factory=list)

    @property
    def first_mapping(self) -> Optional[BookMapping]:
        """Only the first mapping is used for identifiers."""
        return self.mappings[0] if self.mappings else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Book":
        return cls(
            id=data.get("id") or 0,
            title=data.get("title") or "",
            release_year=data.get("release_year"),
            mappings=[
                BookMapping.from_dict(m)
                for m in (data.get("book_mappings") or [])
                if m is not None
            ]
        )


@dataclass
class Read:
    """One read-through of a book. Either timestamp may be missing."""
    started_at: Optional[str] = None
    finished_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Read":
        return cls(started_at=data.get("started_at"), finished_at=data.get("finished_at"))


@dataclass
class UserBook:
    """
    One row of the user_books table.

    Reads are ordered most recently finished first, as requested by the
    read-books query.
    """
    id: int
    book: Optional[Book] = None
    rating: Optional[float] = None
    inserted_at: Optional[str] = None
    reads: List[Read] = field(default_factory=list)

    @property
    def latest_read(self) -> Optional[Read]:
        return self.reads[0] if self.reads else None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserBook":
        book = data.get("book")
        rating = data.get("rating")
        return cls(
            id=data.get("id") or 0,
            book=Book.from_dict(book) if book else None,
            rating=float(rating) if rating is not None else None,
            inserted_at=data.get("inserted_at"),
            reads=[
                Read.from_dict(r)
                for r in (data.get("user_book_reads") or [])
                if r is not None
            ]
        )


@dataclass
class MeUser:
    """Authenticated user returned by the identity query."""
    id: int
    username: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeUser":
        return cls(id=data.get("id") or 0, username=data.get("username") or "")


def parse_user_books(data: Optional[Dict[str, Any]]) -> List[UserBook]:
    """
    Decode the ``data`` object of a user_books query.

    Args:
        data: The GraphQL ``data`` payload (may be None)

    Returns:
        List of UserBook rows (empty if none were returned)
    """
    if not data:
        return []
    return [UserBook.from_dict(row) for row in (data.get("user_books") or []) if row is not None]


def parse_me(data: Optional[Dict[str, Any]]) -> List[MeUser]:
    """Decode the ``data`` object of the identity query."""
    if not data:
        return []
    return [MeUser.from_dict(u) for u in (data.get("me") or []) if u is not None]
