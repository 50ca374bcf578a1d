"""Expiry and usage-limit checks shared by files and pastes."""

import enum
from datetime import datetime, timezone

UNLIMITED = -1


class Access(enum.Enum):
    OK = "ok"
    EXPIRED = "expired"
    LIMIT_EXCEEDED = "limit_exceeded"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; everything we store is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_expired(now: datetime, expires_at: datetime) -> bool:
    return now > expires_at


def is_exhausted(counter: int, max_limit: int) -> bool:
    return max_limit > 0 and counter >= max_limit


def check_access(now: datetime, expires_at: datetime, counter: int, max_limit: int) -> Access:
    """Decide whether an entity may be served.

    Expiry is checked first, so an entity that is both expired and exhausted
    reports ``Access.EXPIRED``. Any ``max_limit <= 0`` means unlimited.
    """
    if is_expired(now, expires_at):
        return Access.EXPIRED
    if is_exhausted(counter, max_limit):
        return Access.LIMIT_EXCEEDED
    return Access.OK
