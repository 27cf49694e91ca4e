"""Canonical import records handed to the host application.

The three record kinds are independent types; callers branch on the
concrete type rather than relying on a shared base class.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, Union

MEDIA_TYPE_BOOK = "book"


def _common_dict(record) -> Dict[str, Any]:
    return {
        "external_id": record.external_id,
        "identifiers": dict(record.identifiers),
        "media_type": record.media_type,
        "title": record.title,
        "year": record.year,
    }


@dataclass(frozen=True)
class WatchEvent:
    """A finished read of a book."""
    external_id: str
    identifiers: Dict[str, str]
    title: str
    year: Optional[int]
    watched_at: datetime
    progress_percent: float = 100.0
    media_type: str = field(default=MEDIA_TYPE_BOOK)

    def to_dict(self) -> Dict[str, Any]:
        data = _common_dict(self)
        data["watched_at"] = self.watched_at.isoformat()
        data["progress_percent"] = self.progress_percent
        return data


@dataclass(frozen=True)
class Rating:
    """A rating on the host's 1-10 scale."""
    external_id: str
    identifiers: Dict[str, str]
    title: str
    year: Optional[int]
    rating: int
    rated_at: datetime
    media_type: str = field(default=MEDIA_TYPE_BOOK)

    def to_dict(self) -> Dict[str, Any]:
        data = _common_dict(self)
        data["rating"] = self.rating
        data["rated_at"] = self.rated_at.isoformat()
        return data


@dataclass(frozen=True)
class WatchlistEntry:
    """A book the user wants to read."""
    external_id: str
    identifiers: Dict[str, str]
    title: str
    year: Optional[int]
    added_at: datetime
    media_type: str = field(default=MEDIA_TYPE_BOOK)

    def to_dict(self) -> Dict[str, Any]:
        data = _common_dict(self)
        data["added_at"] = self.added_at.isoformat()
        return data


CanonicalRecord = Union[WatchEvent, Rating, WatchlistEntry]
