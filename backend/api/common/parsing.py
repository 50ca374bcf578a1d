"""Parsing of human-friendly TTL and size strings."""

import logging
import re
from datetime import timedelta

logger = logging.getLogger(__name__)

_DURATION_UNITS = {
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}

_SIZE_MULTIPLIERS = {
    "B": 1,
    "KB": 1024,
    "MB": 1024**2,
    "GB": 1024**3,
    "TB": 1024**4,
}


def parse_duration(value: str | None) -> timedelta | None:
    """Parse strings like '90s', '30m', '2h', '3d', '1w'. Returns None if unparseable."""
    if not value:
        return None

    match = re.match(r"^(\d+)([smhdw])$", value.strip().lower())
    if not match:
        return None

    amount = int(match.group(1))
    if amount == 0:
        return None
    return timedelta(**{_DURATION_UNITS[match.group(2)]: amount})


def parse_size(value: str | None) -> int:
    """Parse strings like '100MB', '1GB' into bytes. Returns 0 if unparseable."""
    if not value:
        return 0

    match = re.match(r"^(\d+(?:\.\d+)?)\s*(B|KB|MB|GB|TB)$", value.strip().upper())
    if not match:
        return 0

    return int(float(match.group(1)) * _SIZE_MULTIPLIERS[match.group(2)])


def resolve_ttl(requested: str | None, default_expiry: str, max_expiry: str) -> timedelta:
    """TTL for a new upload: the requested one, else the default, capped at the maximum."""
    ttl = parse_duration(requested)
    if ttl is None:
        if requested:
            logger.debug("Invalid TTL %r, using default %s", requested, default_expiry)
        ttl = parse_duration(default_expiry) or timedelta(hours=24)

    max_ttl = parse_duration(max_expiry)
    if max_ttl and ttl > max_ttl:
        ttl = max_ttl
    return ttl
