"""Best-effort language detection for pastes submitted without one."""

from pygments.lexers import guess_lexer
from pygments.util import ClassNotFound

UNKNOWN_LANGUAGE = "unknown"


def detect_language(content: str) -> str:
    """Short language tag for ``content``, e.g. ``"python"`` or ``"text"``.

    Returns ``UNKNOWN_LANGUAGE`` when no lexer claims the content.
    """
    try:
        lexer = guess_lexer(content)
    except ClassNotFound:
        return UNKNOWN_LANGUAGE
    if lexer.aliases:
        return lexer.aliases[0]
    return lexer.name.lower()
