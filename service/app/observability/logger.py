"""Per-request chat outcome logging.

Best-effort: a logging failure should never break a visitor's chat. Only
metadata is recorded. The message text and provider credentials never
reach the log.
"""

from __future__ import annotations

import logging
from typing import Any

logger = logging.getLogger("app.chat_events")


def log_chat(
    *,
    source: str,
    status: str = "success",
    reason: str | None = None,
    model_used: str = "",
    latency_ms: float = 0,
    message_length: int = 0,
    history_length: int = 0,
) -> None:
    """Emit one structured record for a /api/chat request."""
    try:
        event: dict[str, Any] = {
            "source": source,
            "status": status,
            "reason": reason,
            "model_used": model_used,
            "latency_ms": round(latency_ms, 1),
            "message_length": message_length,
            "history_length": history_length,
        }
        level = logging.INFO if status == "success" else logging.WARNING
        logger.log(
            level,
            "chat %s source=%s reason=%s latency_ms=%.1f",
            status,
            source,
            reason or "-",
            event["latency_ms"],
            extra={"chat_event": event},
        )
    except Exception:
        logger.exception("Failed to log chat event")
