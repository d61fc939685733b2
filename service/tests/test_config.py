"""Tests for application config validation: fail fast on invalid settings."""

import pytest
from pydantic import ValidationError

from app.config import Settings

# Base kwargs for a valid Settings instance (required fields filled in)
_BASE = dict(
    client_url="https://portfolio.example.com",
    cohere_api_key="test-key",
)


class TestRequiredSettings:
    def test_defaults(self) -> None:
        s = Settings(**_BASE)
        assert s.port == 3000
        assert s.llm_provider == "cohere"
        assert s.max_message_length == 120
        assert s.rate_limit_chat_per_window == 10
        assert s.rate_limit_window_seconds == 60

    def test_client_url_required(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("CHAT_CLIENT_URL", raising=False)
        with pytest.raises(ValidationError, match="client_url"):
            Settings(cohere_api_key="test-key")

    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("CHAT_CLIENT_URL", "https://me.github.io")
        monkeypatch.setenv("CHAT_COHERE_API_KEY", "env-key")
        monkeypatch.setenv("CHAT_PORT", "8080")
        s = Settings()
        assert s.client_url == "https://me.github.io"
        assert s.port == 8080


class TestProviderCredentials:
    def test_cohere_requires_key(self) -> None:
        with pytest.raises(ValidationError, match="cohere_api_key"):
            Settings(client_url="https://x.example", llm_provider="cohere", cohere_api_key="")

    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError, match="llm_provider"):
            Settings(**_BASE, llm_provider="nonexistent")


class TestLimitValidation:
    @pytest.mark.parametrize(
        "field",
        ["max_message_length", "rate_limit_chat_per_window", "upstream_timeout_seconds"],
    )
    def test_limits_must_be_positive(self, field: str) -> None:
        with pytest.raises(ValidationError, match=field):
            Settings(**_BASE, **{field: 0})

    def test_negative_history_rejected(self) -> None:
        with pytest.raises(ValidationError, match="max_history_messages"):
            Settings(**_BASE, max_history_messages=-1)


class TestAllowedOrigins:
    def test_client_url_first_and_deduplicated(self) -> None:
        s = Settings(
            **{**_BASE, "client_url": "https://me.github.io/"},
            allowed_origins=" http://localhost:5174 , https://me.github.io,,",
        )
        assert s.get_allowed_origins() == ["https://me.github.io", "http://localhost:5174"]
