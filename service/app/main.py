"""FastAPI application factory for the portfolio chat proxy.

Initializes settings, the LLM provider, the upstream relay, and the
admission pipeline on startup via the lifespan context manager, stored on
app.state so routers can access them without globals.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings
from app.errors import install_error_handlers
from app.guardrails.pipeline import AdmissionPipeline
from app.guardrails.rate_limit import SlidingWindowLimiter
from app.guardrails.rules import ChatRules
from app.llm.provider import create_provider
from app.llm.relay import UpstreamRelay
from app.routers import chat, health

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_pipeline(settings: Settings) -> AdmissionPipeline:
    limiter = SlidingWindowLimiter(
        limit=settings.rate_limit_chat_per_window,
        window_seconds=settings.rate_limit_window_seconds,
    )
    return AdmissionPipeline(
        rules=ChatRules(max_length=settings.max_message_length),
        limiter=limiter,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize shared resources on startup."""
    settings: Settings = app.state.settings
    provider = create_provider(settings)
    relay = UpstreamRelay(
        llm=provider.get_chat_model(),
        model_name=provider.get_model_name(),
        preamble=settings.persona_preamble,
        timeout_seconds=settings.upstream_timeout_seconds,
    )

    app.state.provider = provider
    app.state.relay = relay
    app.state.pipeline = build_pipeline(settings)

    logger.info(
        "Portfolio chat proxy ready (model=%s, origins=%s, limit=%d/%ss)",
        provider.get_model_name(),
        ",".join(settings.get_allowed_origins()),
        settings.rate_limit_chat_per_window,
        settings.rate_limit_window_seconds,
    )
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="Portfolio Chat Proxy",
        description="Relays portfolio visitor chat messages to an AI provider",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Requests without an Origin header (curl, server-to-server) pass through
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )
    install_error_handlers(app)

    app.include_router(health.router)
    app.include_router(chat.router)
    return app
