"""Application settings loaded from environment variables.

Uses Pydantic BaseSettings so values can come from env vars, .env files,
or defaults. All settings are validated at startup. Fail fast if the
client origin or the selected provider's credential is missing.
"""

from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_PREAMBLE = (
    "You are a friendly assistant on a personal portfolio website. Answer "
    "visitors' questions about the site owner's experience, skills, and "
    "projects concisely and in plain text. If you don't know something, "
    "suggest reaching out via the contact details on the site."
)


class Settings(BaseSettings):
    """Chat proxy configuration."""

    model_config = SettingsConfigDict(env_prefix="CHAT_", env_file=".env", extra="ignore")

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # CORS: the deployed front-end plus any extra comma-separated origins
    client_url: str
    allowed_origins: str = "http://localhost:5174,http://127.0.0.1:5174"
    # Key rate limits by the first X-Forwarded-For hop (behind a proxy only)
    trust_forwarded_for: bool = False

    # LLM provider; only Cohere is wired up today
    llm_provider: Literal["cohere"] = "cohere"

    cohere_api_key: str = ""
    cohere_model: str = "command-r"

    persona_preamble: str = _DEFAULT_PREAMBLE
    upstream_timeout_seconds: float = 30.0

    # Input validation
    max_message_length: int = 120
    max_history_messages: int = 20

    # Rate limiting (in-memory, per source identifier)
    rate_limit_chat_per_window: int = 10
    rate_limit_window_seconds: float = 60.0

    @model_validator(mode="after")
    def _validate_provider_and_limits(self) -> "Settings":
        """The selected provider needs its credential; limits must be positive."""
        if not self.client_url.strip():
            raise ValueError("client_url must not be empty.")

        if self.llm_provider == "cohere" and not self.cohere_api_key.strip():
            raise ValueError("cohere_api_key must be set when llm_provider is 'cohere'.")

        for name in (
            "max_message_length",
            "rate_limit_chat_per_window",
            "rate_limit_window_seconds",
            "upstream_timeout_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be greater than 0.")

        if self.max_history_messages < 0:
            raise ValueError("max_history_messages must not be negative.")
        return self

    def get_allowed_origins(self) -> list[str]:
        """Client URL first, then the extra origins, without duplicates."""
        origins: list[str] = []
        for origin in [self.client_url, *self.allowed_origins.split(",")]:
            origin = origin.strip().rstrip("/")
            if origin and origin not in origins:
                origins.append(origin)
        return origins
