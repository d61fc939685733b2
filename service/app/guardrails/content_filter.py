"""Structural content filter: detect markdown-style formatting.

Chat input is plain prose only. Formatted messages are rejected outright
rather than cleaned, so this module only answers "is there markup?".
"""

from __future__ import annotations

from app.guardrails.rules import MARKUP_PATTERNS


def find_markup(text: str) -> str | None:
    """Return the name of the first matching pattern class, or None."""
    for name, pattern in MARKUP_PATTERNS:
        if pattern.search(text):
            return name
    return None


def contains_markup(text: str) -> bool:
    return find_markup(text) is not None
