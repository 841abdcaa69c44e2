"""Free-text cleanup for stored notes and outgoing kitchen messages."""

import re
from typing import Optional

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")
_ANGLE_BRACKETS = re.compile(r"[<>]")

# Markup-significant characters only; "&" is left alone so notes read as typed
_STORAGE_ESCAPES = str.maketrans({
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
})


def sanitize_for_storage(text: Optional[str]) -> Optional[str]:
    """
    Escape markup characters in customer text before it is stored.

    Returns None for missing or blank input so empty notes are not persisted.
    """
    if text is None:
        return None
    cleaned = text.strip().translate(_STORAGE_ESCAPES)
    return cleaned or None


def sanitize_for_message(text: Optional[str], max_length: int) -> str:
    """Strip control characters and angle brackets, collapse to one line, truncate."""
    if not text:
        return ""
    cleaned = _CONTROL_CHARS.sub("", text)
    cleaned = _ANGLE_BRACKETS.sub("", cleaned)
    cleaned = " ".join(cleaned.split())
    if len(cleaned) > max_length:
        cleaned = cleaned[: max_length - 1].rstrip() + "…"
    return cleaned
