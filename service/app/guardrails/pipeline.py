"""Admission pipeline: the fixed sequence of checks a chat message must pass.

Stage order (first failure wins):
  1. service online         -> ServiceOffline        (client only)
  2. cooldown               -> CooldownActive        (client only)
  3. non-empty              -> EmptyInput
  4. length                 -> TooLong
  5. no markdown formatting -> DisallowedFormatting
  6. sanitize               (always succeeds)
  7. rate window            -> RateLimited           (server only)

Side effects (transcript append, cooldown, rate counters) happen only once
a message is fully admitted.
"""

from __future__ import annotations

import logging

from app.chat.session import ChatMessage, Sender, SessionState
from app.errors import RejectionReason
from app.guardrails.content_filter import find_markup
from app.guardrails.input_validator import Accepted, Rejected, ValidationResult, validate_length
from app.guardrails.rate_limit import SlidingWindowLimiter
from app.guardrails.rules import DEFAULT_RULES, ChatRules
from app.guardrails.sanitizer import sanitize

logger = logging.getLogger(__name__)


class AdmissionPipeline:
    """Runs the admission stages for the client guard or the API."""

    def __init__(
        self,
        rules: ChatRules = DEFAULT_RULES,
        limiter: SlidingWindowLimiter | None = None,
    ) -> None:
        self.rules = rules
        self.limiter = limiter

    def check_message(self, raw: str) -> ValidationResult:
        """Stages 3-6. Pure: no counters, no transcript."""
        result = validate_length(raw, self.rules.max_length)
        if isinstance(result, Rejected):
            return result

        pattern = find_markup(result.text)
        if pattern is not None:
            logger.debug("Rejected message with %s formatting", pattern)
            return Rejected(RejectionReason.DISALLOWED_FORMATTING)

        cleaned = sanitize(result.text).strip()
        if not cleaned:
            # Nothing but markup
            return Rejected(RejectionReason.EMPTY_INPUT)

        # Stripping tags can expose formatting, e.g. "#<b></b> heading"
        pattern = find_markup(cleaned)
        if pattern is not None:
            logger.debug("Rejected message with %s formatting after sanitizing", pattern)
            return Rejected(RejectionReason.DISALLOWED_FORMATTING)
        return Accepted(cleaned)

    def admit_client(self, session: SessionState, raw: str) -> ValidationResult:
        """Client guard. On admission, stores the user message and starts the cooldown."""
        if not session.online:
            return Rejected(RejectionReason.SERVICE_OFFLINE)

        if session.cooldown.active:
            return Rejected(
                RejectionReason.COOLDOWN_ACTIVE,
                retry_after=session.cooldown.remaining,
            )

        result = self.check_message(raw)
        if isinstance(result, Rejected):
            return result

        session.append(ChatMessage(text=result.text, sender=Sender.USER))
        session.cooldown.activate()
        return result

    def admit_server(self, raw: str, source: str) -> ValidationResult:
        """API guard. Only fully admitted requests count against the window."""
        result = self.check_message(raw)
        if isinstance(result, Rejected) or self.limiter is None:
            return result

        decision = self.limiter.admit(source)
        if not decision.allowed:
            logger.info("Rate limit hit for %s (retry in %.1fs)", source, decision.retry_after)
            return Rejected(RejectionReason.RATE_LIMITED, retry_after=decision.retry_after)
        return result
