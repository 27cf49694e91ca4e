"""Normalize Hardcover user_books rows into canonical import records."""
import logging
import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional

from hardcover_import.clock import Clock, system_clock
from hardcover_import.models import Book, UserBook
from hardcover_import.records import WatchEvent, Rating, WatchlistEntry

logger = logging.getLogger(__name__)

PROVIDER_KEY = "hardcover"
MIN_RATING = 1
MAX_RATING = 10

_FRACTION = re.compile(r"\.(\d+)")
_OFFSET = re.compile(r"([+-])(\d{2}):?(\d{2})?$")


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from the API.

    Values without an offset (including plain dates) are taken as UTC.

    Args:
        value: Timestamp string or None

    Returns:
        Timezone-aware datetime, or None if missing or unparsable
    """
    if not value or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    # Postgres trims trailing zeros; older fromisoformat wants 6 digits and +HH:MM
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    if "T" in text or " " in text:
        text = _OFFSET.sub(lambda m: f"{m.group(1)}{m.group(2)}:{m.group(3) or '00'}", text)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.debug(f"Ignoring unparsable timestamp: {value!r}")
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_rating_scale(rating: float) -> int:
    """
    Convert a 0.5-5 star rating to the 1-10 scale.

    Doubles the rating, rounds halves away from zero, then clamps.
    """
    doubled = (Decimal(str(rating)) * 2).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return max(MIN_RATING, min(MAX_RATING, int(doubled)))


def external_id(book: Book) -> str:
    """
    Build the connector-namespaced id for a book.

    Args:
        book: Decoded book

    Returns:
        String of the form "hardcover:<book id>"
    """
    return f"{PROVIDER_KEY}:{book.id}"


def build_identifiers(book: Book) -> Dict[str, str]:
    """
    Build the identifier map for a book.

    The native id is only included when positive. ISBNs come from the
    first mapping; later mappings are ignored.

    Args:
        book: Decoded book

    Returns:
        Mapping of identifier scheme to value
    """
    ids: Dict[str, str] = {}
    if book.id > 0:
        ids[PROVIDER_KEY] = str(book.id)

    mapping = book.first_mapping
    if mapping is not None:
        if mapping.isbn_13 is not None:
            ids["isbn13"] = mapping.isbn_13
        if mapping.isbn_10 is not None:
            ids["isbn"] = mapping.isbn_10

    return ids


def to_watch_event(row: UserBook, clock: Clock = system_clock) -> Optional[WatchEvent]:
    """
    Convert a read book into a WatchEvent.

    The watch date is the latest read's finish time; inserted_at is
    not consulted for watch events.

    Args:
        row: Decoded user_books row
        clock: Source of the fallback instant

    Returns:
        WatchEvent, or None if the row has no book
    """
    book = row.book
    if book is None:
        logger.debug(f"Skipping user_book {row.id}: no book")
        return None

    latest = row.latest_read
    watched_at = parse_timestamp(latest.finished_at if latest else None) or clock()

    return WatchEvent(
        external_id=external_id(book),
        identifiers=build_identifiers(book),
        title=book.title,
        year=book.release_year,
        watched_at=watched_at,
        progress_percent=100.0
    )


def to_rating(row: UserBook, clock: Clock = system_clock) -> Optional[Rating]:
    """
    Convert a rated book into a Rating.

    Args:
        row: Decoded user_books row
        clock: Source of the fallback instant

    Returns:
        Rating, or None if the row has no book or no rating
    """
    book = row.book
    if book is None or row.rating is None:
        logger.debug(f"Skipping user_book {row.id}: missing book or rating")
        return None

    return Rating(
        external_id=external_id(book),
        identifiers=build_identifiers(book),
        title=book.title,
        year=book.release_year,
        rating=to_rating_scale(row.rating),
        rated_at=parse_timestamp(row.inserted_at) or clock()
    )


def to_watchlist_entry(row: UserBook, clock: Clock = system_clock) -> Optional[WatchlistEntry]:
    """Convert a want-to-read book into a WatchlistEntry (None if no book)."""
    book = row.book
    if book is None:
        logger.debug(f"Skipping user_book {row.id}: no book")
        return None

    return WatchlistEntry(
        external_id=external_id(book),
        identifiers=build_identifiers(book),
        title=book.title,
        year=book.release_year,
        added_at=parse_timestamp(row.inserted_at) or clock()
    )


def parse_watch_history(
    rows: List[UserBook],
    since: Optional[datetime] = None,
    clock: Clock = system_clock
) -> List[WatchEvent]:
    """
    Normalize read books, keeping events at or after ``since``.

    Args:
        rows: Decoded user_books rows
        since: Inclusive lower bound on watched_at (optional)
        clock: Source of the fallback instant

    Returns:
        WatchEvents in source order
    """
    if since is not None and since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)

    events = []

    for row in rows:
        event = to_watch_event(row, clock)
        if event is None:
            continue
        if since is not None and event.watched_at < since:
            continue
        events.append(event)

    return events


def parse_ratings(rows: List[UserBook], clock: Clock = system_clock) -> List[Rating]:
    """
    Normalize rated books, skipping rows without a book or rating.

    Args:
        rows: Decoded user_books rows
        clock: Source of the fallback instant

    Returns:
        Ratings in source order
    """
    ratings = []
    for row in rows:
        rating = to_rating(row, clock)
        if rating:
            ratings.append(rating)
    return ratings


def parse_watchlist(rows: List[UserBook], clock: Clock = system_clock) -> List[WatchlistEntry]:
    """
    Normalize want-to-read books, skipping rows without a book.

    Args:
        rows: Decoded user_books rows
        clock: Source of the fallback instant

    Returns:
        WatchlistEntries in source order
    """
    entries = []
    for row in rows:
        entry = to_watchlist_entry(row, clock)
        if entry:
            entries.append(entry)
    return entries
