"""
layercache - TTL Normalization

Converts caller-facing TTLs into absolute expiry instants (epoch seconds).

- None            -> None (never expires)
- seconds > 0     -> now + seconds
- seconds <= 0    -> None (never expires, not an immediate expiry)
- timedelta       -> now + timedelta
"""

import time
from datetime import timedelta

from ..errors import InvalidTTLError

TTL = int | float | timedelta | None


def normalize_ttl(ttl: TTL, now: float | None = None) -> float | None:
    """
    Convert a relative TTL into an absolute expiry instant.

    Args:
        ttl: Relative lifetime (seconds or timedelta), or None
        now: Reference instant (defaults to time.time())

    Returns:
        Expiry as epoch seconds, or None when the entry never expires

    Raises:
        InvalidTTLError: If ttl has an unsupported type
    """
    if ttl is None:
        return None

    if now is None:
        now = time.time()

    if isinstance(ttl, timedelta):
        return now + ttl.total_seconds()

    # bool is an int subclass but never a meaningful lifetime
    if isinstance(ttl, bool) or not isinstance(ttl, int | float):
        raise InvalidTTLError(ttl)

    if ttl > 0:
        return now + ttl

    return None


def is_expired(expires_at: float | None, now: float | None = None) -> bool:
    """Check whether an expiry instant has passed."""
    if expires_at is None:
        return False
    if now is None:
        now = time.time()
    return expires_at <= now


def remaining_seconds(expires_at: float | None, now: float | None = None) -> float | None:
    """
    Remaining lifetime of an entry.

    Returns:
        Seconds left (never negative), or None when the entry never expires
    """
    if expires_at is None:
        return None
    if now is None:
        now = time.time()
    return max(0.0, expires_at - now)
