"""Chat endpoint: admit a visitor message and relay it to the provider.

Flow:
  1. Admission pipeline (empty, length, formatting, sanitize, rate window)
  2. Upstream relay with the sanitized message and prior turns
  3. Map the outcome onto 200 / 400 / 429 / 500
"""

from __future__ import annotations

import logging
import math
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from app.chat.session import ChatMessage, Sender
from app.errors import RejectionReason, UpstreamError
from app.guardrails.input_validator import Rejected
from app.guardrails.pipeline import AdmissionPipeline
from app.guardrails.sanitizer import sanitize
from app.llm.relay import UpstreamRelay
from app.observability.logger import log_chat

logger = logging.getLogger(__name__)

router = APIRouter()

_USER_ROLES = {"user", "human"}
_BOT_ROLES = {"chatbot", "assistant", "bot", "ai"}


class HistoryItem(BaseModel):
    role: str
    message: str = Field(validation_alias=AliasChoices("message", "content", "text"))


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    conversation_history: list[HistoryItem] | None = Field(
        default=None, alias="conversationHistory"
    )


class ChatResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    reply: str
    conversation_id: str | None = Field(default=None, alias="conversationId")


def _source_id(request: Request, trust_forwarded_for: bool) -> str:
    """Network origin used to key the rate window."""
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return request.client.host if request.client else "unknown"


def _history(items: list[HistoryItem] | None, limit: int) -> list[ChatMessage]:
    """Convert client-supplied turns into sanitized transcript messages.

    Unknown roles (system prompts included) are dropped; only the most
    recent ``limit`` turns are kept.
    """
    turns: list[ChatMessage] = []
    for item in items or []:
        role = item.role.strip().lower()
        if role in _USER_ROLES:
            sender = Sender.USER
        elif role in _BOT_ROLES:
            sender = Sender.BOT
        else:
            continue
        text = sanitize(item.message).strip()
        if text:
            turns.append(ChatMessage(text=text, sender=sender))
    if limit <= 0:
        return []
    return turns[-limit:]


def _rejection_response(pipeline: AdmissionPipeline, rejected: Rejected) -> JSONResponse:
    message = pipeline.rules.message_for(rejected.reason)

    if rejected.reason is RejectionReason.RATE_LIMITED:
        retry_after = max(1, math.ceil(rejected.retry_after or 0))
        return JSONResponse(
            status_code=429,
            content={"error": message, "retryAfter": retry_after},
            headers={"Retry-After": str(retry_after)},
        )

    return JSONResponse(
        status_code=400,
        content={
            "error": message,
            "details": [
                {
                    "reason": rejected.reason.value,
                    "msg": message,
                    "param": "message",
                    "location": "body",
                }
            ],
        },
    )


@router.post("/api/chat", response_model=None)
async def chat(body: ChatRequest, request: Request) -> JSONResponse:
    settings = request.app.state.settings
    pipeline: AdmissionPipeline = request.app.state.pipeline
    relay: UpstreamRelay | None = getattr(request.app.state, "relay", None)

    start = time.monotonic()
    source = _source_id(request, settings.trust_forwarded_for)

    result = pipeline.admit_server(body.message, source)
    if isinstance(result, Rejected):
        log_chat(
            source=source,
            status="rejected",
            reason=result.reason.value,
            latency_ms=(time.monotonic() - start) * 1000,
            message_length=len(body.message),
        )
        return _rejection_response(pipeline, result)

    history = _history(body.conversation_history, settings.max_history_messages)

    if relay is None:
        logger.error("Chat request received but no upstream relay is configured")
        log_chat(source=source, status="error", reason="NotConfigured")
        return JSONResponse(
            status_code=500,
            content={"error": "Chat service is not configured. Please try again later."},
        )

    try:
        reply = await relay.complete(result.text, history)
    except UpstreamError as exc:
        log_chat(
            source=source,
            status="error",
            reason=type(exc).__name__,
            model_used=relay.model_name,
            latency_ms=(time.monotonic() - start) * 1000,
            message_length=len(result.text),
            history_length=len(history),
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.public_message},
        )

    log_chat(
        source=source,
        model_used=reply.model,
        latency_ms=(time.monotonic() - start) * 1000,
        message_length=len(result.text),
        history_length=len(history),
    )
    return JSONResponse(
        status_code=200,
        content=ChatResponse(
            reply=reply.text, conversation_id=reply.conversation_id
        ).model_dump(by_alias=True),
    )
