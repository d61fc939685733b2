"""Per-session chat state: transcript, cooldown, and service flags."""

from __future__ import annotations

import datetime
import time
from dataclasses import dataclass, field
from enum import Enum

from app.guardrails.rate_limit import Clock, Cooldown
from app.guardrails.rules import COOLDOWN_SECONDS


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


def _now_hhmm() -> str:
    return datetime.datetime.now().strftime("%H:%M")


@dataclass(frozen=True)
class ChatMessage:
    """One transcript entry. ``text`` is already sanitized when constructed."""

    text: str
    sender: Sender
    timestamp: str = field(default_factory=_now_hhmm)


@dataclass
class SessionState:
    """State owned by a single chat session; never shared between sessions.

    Only the admission pipeline and relay response handling mutate it.
    """

    cooldown: Cooldown
    transcript: list[ChatMessage] = field(default_factory=list)
    online: bool = True
    typing: bool = False

    @classmethod
    def new(
        cls, cooldown_seconds: float = COOLDOWN_SECONDS, clock: Clock = time.monotonic
    ) -> "SessionState":
        return cls(cooldown=Cooldown(cooldown_seconds, clock=clock))

    def append(self, message: ChatMessage) -> None:
        self.transcript.append(message)

    @property
    def cooldown_active(self) -> bool:
        return self.cooldown.active

    @property
    def last_message(self) -> ChatMessage | None:
        return self.transcript[-1] if self.transcript else None
