"""Length and emptiness validation for chat messages.

Returns a ValidationResult instead of raising so the same check can run in
the client guard (inline alert) and the API (400 response).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from app.errors import RejectionReason


@dataclass(frozen=True)
class Accepted:
    """Message passed every check; ``text`` is what gets stored and forwarded."""

    text: str


@dataclass(frozen=True)
class Rejected:
    """Message refused at one stage. ``retry_after`` is only set for rate limits."""

    reason: RejectionReason
    retry_after: float | None = None


ValidationResult = Union[Accepted, Rejected]


def validate_length(text: str, max_length: int) -> ValidationResult:
    """Trim ``text`` and check it is non-empty and at most ``max_length`` chars.

    Returns Accepted with the trimmed text on success.
    """
    stripped = text.strip()

    if not stripped:
        return Rejected(RejectionReason.EMPTY_INPUT)

    if len(stripped) > max_length:
        return Rejected(RejectionReason.TOO_LONG)

    return Accepted(stripped)
