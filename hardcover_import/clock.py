"""Clock used wherever a record falls back to the current instant."""
from datetime import datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current UTC instant."""
    return datetime.now(timezone.utc)


def fixed_clock(instant: datetime) -> Clock:
    """
    Build a clock that always returns the same instant.

    Args:
        instant: Timezone-aware datetime to return

    Returns:
        Zero-argument callable
    """
    if instant.tzinfo is None:
        raise ValueError("fixed_clock requires a timezone-aware datetime")
    return lambda: instant
