"""Upstream relay: forward an admitted message to the completion provider.

Builds the prompt (persona preamble + prior turns + new message), awaits the
chat model under a hard timeout, and sanitizes the reply before it can become
part of a transcript.

Two entry points:
  - complete(): raises UpstreamError subclasses so the API can pick a status
  - relay(): never raises for provider trouble; returns a fallback bot
    message so a user message is never left unanswered
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Sequence

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from app.chat.session import ChatMessage, Sender
from app.errors import (
    CONNECTIVITY_FALLBACK_MESSAGE,
    UpstreamAuthFailure,
    UpstreamError,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from app.guardrails.sanitizer import sanitize

logger = logging.getLogger(__name__)


@dataclass
class RelayReply:
    """Sanitized provider reply."""

    text: str
    conversation_id: str | None
    model: str
    latency_ms: float


class UpstreamRelay:
    """Wraps a LangChain chat model with the persona and error mapping."""

    def __init__(
        self,
        llm: BaseChatModel,
        model_name: str,
        preamble: str,
        timeout_seconds: float = 30.0,
    ) -> None:
        self._llm = llm
        self._model_name = model_name
        self._preamble = preamble
        self._timeout = timeout_seconds

    @property
    def model_name(self) -> str:
        return self._model_name

    def _build_messages(
        self, message: str, history: Sequence[ChatMessage]
    ) -> list[BaseMessage]:
        messages: list[BaseMessage] = [SystemMessage(content=self._preamble)]
        for turn in history:
            if turn.sender is Sender.USER:
                messages.append(HumanMessage(content=turn.text))
            else:
                messages.append(AIMessage(content=turn.text))
        messages.append(HumanMessage(content=message))
        return messages

    async def complete(
        self, message: str, history: Sequence[ChatMessage] = ()
    ) -> RelayReply:
        """Ask the provider for a reply. Raises UpstreamError on failure."""
        start = time.monotonic()
        messages = self._build_messages(message, history)

        try:
            response = await asyncio.wait_for(
                self._llm.ainvoke(messages), timeout=self._timeout
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            error = classify_upstream_error(exc)
            if isinstance(error, UpstreamAuthFailure):
                logger.error("Upstream provider rejected credentials (model=%s)", self._model_name)
            else:
                logger.warning(
                    "Upstream call failed (model=%s): %s: %s",
                    self._model_name,
                    type(exc).__name__,
                    exc,
                )
            raise error from exc

        text = sanitize(_reply_text(response)).strip()
        if not text:
            raise UpstreamUnavailable("provider returned an empty or malformed reply")

        latency_ms = (time.monotonic() - start) * 1000
        logger.info(
            "Upstream reply in %.0fms (model=%s, history=%d)",
            latency_ms,
            self._model_name,
            len(history),
        )
        return RelayReply(
            text=text,
            conversation_id=getattr(response, "id", None) or None,
            model=self._model_name,
            latency_ms=latency_ms,
        )

    async def relay(
        self, message: str, history: Sequence[ChatMessage] = ()
    ) -> ChatMessage:
        """Like complete() but always yields a bot message."""
        try:
            reply = await self.complete(message, history)
        except UpstreamRateLimited as exc:
            return ChatMessage(text=exc.public_message, sender=Sender.BOT)
        except UpstreamError:
            return ChatMessage(text=CONNECTIVITY_FALLBACK_MESSAGE, sender=Sender.BOT)
        return ChatMessage(text=reply.text, sender=Sender.BOT)


def _reply_text(response: Any) -> str:
    """Pull plain text out of a chat model response; '' if it has none."""
    content = getattr(response, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and isinstance(block.get("text"), str):
                parts.append(block["text"])
        return "".join(parts)
    return ""


def _status_code(exc: BaseException) -> int | None:
    for candidate in (
        getattr(exc, "status_code", None),
        getattr(exc, "code", None),
        getattr(getattr(exc, "response", None), "status_code", None),
    ):
        if isinstance(candidate, int) and not isinstance(candidate, bool):
            return candidate
    return None


def _advisory(exc: BaseException) -> str | None:
    """Provider-supplied rate-limit text, if the error carries any."""
    body = getattr(exc, "body", None)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            body = error
        message = body.get("message")
        if isinstance(message, str):
            body = message
    if isinstance(body, str) and body.strip():
        return sanitize(body).strip() or None
    return None


def classify_upstream_error(exc: BaseException) -> UpstreamError:
    """Map a provider/client exception onto the upstream error taxonomy."""
    if isinstance(exc, UpstreamError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return UpstreamUnavailable(f"provider unreachable: {type(exc).__name__}")

    status = _status_code(exc)
    if status in (401, 403):
        return UpstreamAuthFailure(f"provider returned {status}")
    if status == 429:
        return UpstreamRateLimited(f"provider returned {status}", advisory=_advisory(exc))
    return UpstreamUnavailable(f"provider error: {type(exc).__name__}")
