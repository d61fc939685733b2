"""Chat client: the client-side guard plus an HTTP relay to the proxy.

Runs the same admission rules as the API before any network call, so
rejections show up instantly. The server remains the authority; nothing
here is a security boundary.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from app.chat.session import ChatMessage, Sender, SessionState
from app.errors import CONNECTIVITY_FALLBACK_MESSAGE, RejectionReason
from app.guardrails.input_validator import Rejected, ValidationResult
from app.guardrails.pipeline import AdmissionPipeline
from app.guardrails.rules import DEFAULT_RULES, ChatRules
from app.guardrails.sanitizer import sanitize

logger = logging.getLogger(__name__)

DEFAULT_REPLY = "Sorry, I couldn't process that."

_HISTORY_ROLES = {Sender.USER: "USER", Sender.BOT: "CHATBOT"}


class ChatClient:
    """One visitor's chat session against a running proxy.

    Usage::

        async with ChatClient("http://localhost:3000") as client:
            await client.check_health()
            result = await client.send("Hello there")
    """

    def __init__(
        self,
        base_url: str,
        *,
        rules: ChatRules = DEFAULT_RULES,
        session: SessionState | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        send_history: bool = True,
    ) -> None:
        self.rules = rules
        self.session = session or SessionState.new(rules.cooldown_seconds)
        self.send_history = send_history
        self._pipeline = AdmissionPipeline(rules=rules)
        self._owns_http = http_client is None
        self._http = http_client or httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def check_health(self) -> bool:
        """Probe ``/health`` and record the result as the session's online flag."""
        try:
            response = await self._http.get("/health")
            self.session.online = response.is_success
        except httpx.HTTPError as exc:
            logger.warning("Chat backend is offline: %s", exc)
            self.session.online = False
        return self.session.online

    async def send(self, text: str) -> ValidationResult:
        """Admit ``text`` locally, then relay it and append the bot's answer.

        Rejections return immediately without touching the network or the
        transcript.
        """
        history = list(self.session.transcript)
        result = self._pipeline.admit_client(self.session, text)
        if isinstance(result, Rejected):
            logger.debug("Message rejected locally: %s", result.reason.value)
            return result

        self.session.typing = True
        try:
            reply = await self.relay(result.text, history)
        finally:
            self.session.typing = False

        self.session.append(reply)
        return result

    def rejection_message(self, rejected: Rejected) -> str:
        """Inline alert text for a local rejection."""
        return self.rules.message_for(rejected.reason)

    async def relay(self, message: str, history: list[ChatMessage]) -> ChatMessage:
        """POST to ``/api/chat``. Never raises; failures become bot messages."""
        payload: dict[str, Any] = {"message": message}
        if self.send_history and history:
            payload["conversationHistory"] = [
                {"role": _HISTORY_ROLES[turn.sender], "message": turn.text}
                for turn in history
            ]

        try:
            response = await self._http.post("/api/chat", json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Chat request failed: %s", exc)
            return _bot(CONNECTIVITY_FALLBACK_MESSAGE)

        if not isinstance(data, dict):
            return _bot(CONNECTIVITY_FALLBACK_MESSAGE)

        if response.status_code == 429:
            error = data.get("error")
            if not isinstance(error, str) or not sanitize(error).strip():
                error = self.rules.message_for(RejectionReason.RATE_LIMITED)
            return _bot(error)

        if response.is_server_error:
            # Upstream timeouts and provider outages surface as 5xx
            logger.warning("Chat backend returned %d", response.status_code)
            return _bot(CONNECTIVITY_FALLBACK_MESSAGE)

        if response.is_client_error:
            error = data.get("error")
            return _bot(error if isinstance(error, str) else DEFAULT_REPLY)

        reply = data.get("reply")
        if not isinstance(reply, str):
            reply = DEFAULT_REPLY
        return _bot(reply)


def _bot(text: str) -> ChatMessage:
    cleaned = sanitize(text).strip()
    return ChatMessage(text=cleaned or DEFAULT_REPLY, sender=Sender.BOT)
