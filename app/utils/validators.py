"""Deterministic validators and sanitizers used by services and rendering."""

from __future__ import annotations

import re

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def sanitize_text(value: str | None, max_len: int = 20000) -> str:
    """Sanitize free-form content before persistence/display."""
    if value is None:
        return ""
    cleaned = str(value).replace("\x00", "").strip()
    cleaned = cleaned[:max_len]
    return cleaned


def normalize_email(value: str | None) -> str | None:
    """Trim and lowercase an address; None when it is not a plausible email."""
    cleaned = sanitize_text(value, 320).lower()
    if not cleaned or not EMAIL_RE.match(cleaned):
        return None
    return cleaned
