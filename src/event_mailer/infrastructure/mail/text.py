from __future__ import annotations

from datetime import date


def capitalize_words(value: str | None) -> str:
    """Title-case each word, including both halves of hyphenated names.

    >>> capitalize_words("  mARIA  de la-cruz ")
    'Maria De La-Cruz'
    """
    if not value:
        return ""
    words = []
    for word in value.split():
        parts = [part[:1].upper() + part[1:].lower() for part in word.split("-")]
        words.append("-".join(parts))
    return " ".join(words)


def format_event_date(start: date | None, end: date | None = None) -> str:
    """Human readable date or date range: ``March 3–5, 2025``."""
    if start is None:
        return ""
    end = end or start

    if start == end:
        return f"{start:%B} {start.day}, {start.year}"
    if (start.year, start.month) == (end.year, end.month):
        return f"{start:%B} {start.day}–{end.day}, {end.year}"
    if start.year == end.year:
        return f"{start:%B} {start.day}–{end:%B} {end.day}, {end.year}"
    return f"{start:%B} {start.day}, {start.year} – {end:%B} {end.day}, {end.year}"


def attachment_name(value: str) -> str:
    return "_".join(value.split())
