"""Short URL-safe identifiers for shared content and blob keys."""

import secrets
import time

ID_LENGTH = 11


def new_token(length: int = ID_LENGTH) -> str:
    """Random token of exactly ``length`` characters from ``[A-Za-z0-9_-]``."""
    if length <= 0:
        raise ValueError("length must be positive")
    # token_urlsafe(n) yields ~1.3 chars per byte, always at least n chars
    return secrets.token_urlsafe(length)[:length]


def new_storage_key() -> str:
    return f"{int(time.time())}-{new_token()}"
