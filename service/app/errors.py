"""Error taxonomy for the chat service.

Admission rejections are values (RejectionReason) so both the client guard
and the API can report them without raising. Upstream provider failures are
exceptions raised by the relay and mapped to HTTP responses by the router.
None of these should ever take the process down.
"""

from __future__ import annotations

from enum import Enum

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class RejectionReason(str, Enum):
    """Why the admission pipeline refused a message."""

    SERVICE_OFFLINE = "ServiceOffline"
    COOLDOWN_ACTIVE = "CooldownActive"
    EMPTY_INPUT = "EmptyInput"
    TOO_LONG = "TooLong"
    DISALLOWED_FORMATTING = "DisallowedFormatting"
    RATE_LIMITED = "RateLimited"
    VALIDATION_FAILURE = "ValidationFailure"


UPSTREAM_FAILURE_MESSAGE = "Failed to get response from AI. Please try again."
UPSTREAM_RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again later."
CONNECTIVITY_FALLBACK_MESSAGE = (
    "Sorry, I'm having trouble connecting to the server. Please try again in a moment."
)


class UpstreamError(Exception):
    """Base class for failures talking to the completion provider.

    ``public_message`` is safe to show to visitors; ``str(exc)`` may carry
    provider details and is only for server logs.
    """

    status_code: int = 500
    public_message: str = UPSTREAM_FAILURE_MESSAGE


class UpstreamUnavailable(UpstreamError):
    """Timeout, network failure, or a reply we could not interpret."""


class UpstreamAuthFailure(UpstreamError):
    """Provider rejected our credential. Never surfaced verbatim."""


class UpstreamRateLimited(UpstreamError):
    """Provider asked us to slow down."""

    status_code = 429

    def __init__(self, message: str = "", advisory: str | None = None) -> None:
        super().__init__(message or "upstream rate limited")
        self.advisory = advisory

    @property
    def public_message(self) -> str:  # type: ignore[override]
        return self.advisory or UPSTREAM_RATE_LIMIT_MESSAGE


def install_error_handlers(app: FastAPI) -> None:
    """Return malformed request bodies as 400 in the same shape as rule failures."""

    @app.exception_handler(RequestValidationError)
    async def _request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = [
            {
                "reason": RejectionReason.VALIDATION_FAILURE.value,
                "msg": err.get("msg", "Invalid value"),
                "param": ".".join(str(p) for p in err.get("loc", ()) if p != "body"),
                "location": "body",
            }
            for err in exc.errors()
        ]
        error = "Message is required" if _missing_message(details) else "Invalid request body."
        return JSONResponse(status_code=400, content={"error": error, "details": details})


def _missing_message(details: list[dict]) -> bool:
    return any(d["param"] in ("", "message") for d in details)
