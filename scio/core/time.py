"""Clock helpers.

Every engine operation takes a ``clock`` callable instead of reading the
wall clock itself, so that request handlers share one time source and tests
can pin "now" to a fixed instant.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency returning the server clock."""
    return utcnow


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from SQLite."""

    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def to_ms(value: Optional[datetime]) -> Optional[int]:
    """Epoch milliseconds for a stored timestamp."""

    if value is None:
        return None
    return int(as_utc(value).timestamp() * 1000)


def from_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


__all__ = ["Clock", "as_utc", "from_ms", "get_clock", "to_ms", "utcnow"]
