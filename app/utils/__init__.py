"""Small shared helpers."""

from app.utils.text import sanitize_for_message, sanitize_for_storage

__all__ = ["sanitize_for_message", "sanitize_for_storage"]
