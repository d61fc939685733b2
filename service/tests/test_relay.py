"""Tests for the upstream relay and provider error mapping."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

from app.chat.session import ChatMessage, Sender
from app.errors import (
    CONNECTIVITY_FALLBACK_MESSAGE,
    UPSTREAM_FAILURE_MESSAGE,
    UPSTREAM_RATE_LIMIT_MESSAGE,
    UpstreamAuthFailure,
    UpstreamRateLimited,
    UpstreamUnavailable,
)
from app.llm.relay import UpstreamRelay, classify_upstream_error


class ProviderError(Exception):
    """Shape shared by the openai and cohere SDK errors."""

    def __init__(self, status_code: int, body: object = None) -> None:
        super().__init__(f"status {status_code}")
        self.status_code = status_code
        self.body = body


@pytest.fixture
def mock_llm() -> MagicMock:
    llm = MagicMock()
    llm.ainvoke = AsyncMock(return_value=AIMessage(content="Woof! Happy to help.", id="run-123"))
    return llm


@pytest.fixture
def relay(mock_llm: MagicMock) -> UpstreamRelay:
    return UpstreamRelay(
        llm=mock_llm,
        model_name="test/model",
        preamble="You are a test persona.",
        timeout_seconds=1.0,
    )


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_reply(self, relay: UpstreamRelay) -> None:
        reply = await relay.complete("Hello there")
        assert reply.text == "Woof! Happy to help."
        assert reply.conversation_id == "run-123"
        assert reply.model == "test/model"

    @pytest.mark.asyncio
    async def test_prompt_includes_preamble_and_history(
        self, relay: UpstreamRelay, mock_llm: MagicMock
    ) -> None:
        history = [
            ChatMessage(text="Hi", sender=Sender.USER),
            ChatMessage(text="Hello!", sender=Sender.BOT),
        ]
        await relay.complete("What do you do?", history)

        messages = mock_llm.ainvoke.call_args[0][0]
        assert isinstance(messages[0], SystemMessage)
        assert messages[0].content == "You are a test persona."
        assert isinstance(messages[1], HumanMessage)
        assert isinstance(messages[2], AIMessage)
        assert messages[-1] == HumanMessage(content="What do you do?")

    @pytest.mark.asyncio
    async def test_reply_is_sanitized(self, relay: UpstreamRelay, mock_llm: MagicMock) -> None:
        mock_llm.ainvoke.return_value = AIMessage(
            content="<b>Hi</b><script>steal()</script> there"
        )
        reply = await relay.complete("Hello")
        assert reply.text == "Hi there"

    @pytest.mark.asyncio
    async def test_list_content_joined(self, relay: UpstreamRelay, mock_llm: MagicMock) -> None:
        mock_llm.ainvoke.return_value = AIMessage(
            content=[{"type": "text", "text": "Hello "}, "world"]
        )
        reply = await relay.complete("Hello")
        assert reply.text == "Hello world"

    @pytest.mark.asyncio
    async def test_empty_reply_is_unavailable(
        self, relay: UpstreamRelay, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.return_value = AIMessage(content="   ")
        with pytest.raises(UpstreamUnavailable):
            await relay.complete("Hello")

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self, mock_llm: MagicMock) -> None:
        async def hang(messages):
            await asyncio.sleep(10)

        mock_llm.ainvoke = hang
        relay = UpstreamRelay(mock_llm, "test/model", "persona", timeout_seconds=0.01)
        with pytest.raises(UpstreamUnavailable):
            await relay.complete("Hello")

    @pytest.mark.asyncio
    async def test_auth_failure_hides_details(
        self, relay: UpstreamRelay, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.side_effect = ProviderError(401, {"message": "invalid api key sk-123"})
        with pytest.raises(UpstreamAuthFailure) as exc_info:
            await relay.complete("Hello")
        assert exc_info.value.public_message == UPSTREAM_FAILURE_MESSAGE
        assert "sk-123" not in exc_info.value.public_message

    @pytest.mark.asyncio
    async def test_rate_limit_carries_advisory(
        self, relay: UpstreamRelay, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.side_effect = ProviderError(
            429, {"message": "Trial key limited to 10 calls per minute."}
        )
        with pytest.raises(UpstreamRateLimited) as exc_info:
            await relay.complete("Hello")
        assert exc_info.value.status_code == 429
        assert exc_info.value.public_message == "Trial key limited to 10 calls per minute."


class TestRelayFallbacks:
    @pytest.mark.asyncio
    async def test_success_returns_bot_message(self, relay: UpstreamRelay) -> None:
        message = await relay.relay("Hello there")
        assert message.sender is Sender.BOT
        assert message.text == "Woof! Happy to help."

    @pytest.mark.asyncio
    async def test_timeout_returns_connectivity_message(self, mock_llm: MagicMock) -> None:
        mock_llm.ainvoke.side_effect = asyncio.TimeoutError()
        relay = UpstreamRelay(mock_llm, "test/model", "persona")

        message = await relay.relay("Hello there")
        assert message.sender is Sender.BOT
        assert message.text == CONNECTIVITY_FALLBACK_MESSAGE

    @pytest.mark.asyncio
    async def test_rate_limit_returns_advisory(
        self, relay: UpstreamRelay, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.side_effect = ProviderError(429, "Slow down please.")
        message = await relay.relay("Hello there")
        assert message.text == "Slow down please."

    @pytest.mark.asyncio
    async def test_rate_limit_without_advisory(
        self, relay: UpstreamRelay, mock_llm: MagicMock
    ) -> None:
        mock_llm.ainvoke.side_effect = ProviderError(429)
        message = await relay.relay("Hello there")
        assert message.text == UPSTREAM_RATE_LIMIT_MESSAGE


class TestClassifyUpstreamError:
    @pytest.mark.parametrize(
        "exc, expected",
        [
            (TimeoutError(), UpstreamUnavailable),
            (ConnectionError("reset"), UpstreamUnavailable),
            (ProviderError(401), UpstreamAuthFailure),
            (ProviderError(403), UpstreamAuthFailure),
            (ProviderError(429), UpstreamRateLimited),
            (ProviderError(503), UpstreamUnavailable),
            (ValueError("bad json"), UpstreamUnavailable),
        ],
    )
    def test_mapping(self, exc: Exception, expected: type) -> None:
        assert isinstance(classify_upstream_error(exc), expected)

    def test_nested_error_body(self) -> None:
        exc = ProviderError(429, {"error": {"message": "quota exceeded"}})
        error = classify_upstream_error(exc)
        assert isinstance(error, UpstreamRateLimited)
        assert error.advisory == "quota exceeded"
