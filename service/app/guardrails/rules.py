"""Rule set shared by the client guard and the API.

Both sides read limits, formatting patterns, and user-facing messages from
here so a message the client accepts is one the server accepts too.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from app.errors import RejectionReason

MAX_MESSAGE_LENGTH = 120
COOLDOWN_SECONDS = 3.0
RATE_LIMIT_PER_WINDOW = 10
RATE_LIMIT_WINDOW_SECONDS = 60.0

# (name, pattern) in evaluation order. Line-anchored classes use MULTILINE so
# a marker on any line counts, not just the first.
MARKUP_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("bold", re.compile(r"\*\*.*?\*\*")),
    ("italic_asterisk", re.compile(r"\*.*?\*")),
    ("italic_underscore", re.compile(r"_.*?_")),
    ("link", re.compile(r"\[.*?\]\(.*?\)")),
    ("code", re.compile(r"`.*?`")),
    ("strikethrough", re.compile(r"~~.*?~~")),
    ("heading", re.compile(r"^#{1,6}\s", re.MULTILINE)),
    ("bullet_asterisk", re.compile(r"^\*\s", re.MULTILINE)),
    ("bullet_dash", re.compile(r"^-\s", re.MULTILINE)),
    ("numbered_list", re.compile(r"^\d+\.\s", re.MULTILINE)),
    ("blockquote", re.compile(r"^>\s", re.MULTILINE)),
]


@dataclass(frozen=True)
class ChatRules:
    """Limits applied to every chat message."""

    max_length: int = MAX_MESSAGE_LENGTH
    cooldown_seconds: float = COOLDOWN_SECONDS

    def message_for(self, reason: RejectionReason) -> str:
        """User-facing text for a rejection reason."""
        if reason is RejectionReason.TOO_LONG:
            return f"Message must be between 1 and {self.max_length} characters"
        return _MESSAGES[reason]


DEFAULT_RULES = ChatRules()

_MESSAGES: dict[RejectionReason, str] = {
    RejectionReason.SERVICE_OFFLINE: "Chat is currently offline. Please try again later.",
    RejectionReason.COOLDOWN_ACTIVE: "Please wait a few seconds before sending another message.",
    RejectionReason.EMPTY_INPUT: "Message is required",
    RejectionReason.DISALLOWED_FORMATTING: (
        "Markdown formatting is not allowed. Please use plain text only."
    ),
    RejectionReason.RATE_LIMITED: (
        "Too many messages sent. Please wait a moment before trying again."
    ),
    RejectionReason.VALIDATION_FAILURE: "Invalid request body.",
}
