"""Shared test fixtures for the chat proxy."""

import pytest

from app.config import Settings


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Minimal settings for unit tests, no real provider calls."""
    return Settings(
        client_url="https://portfolio.example.com",
        llm_provider="cohere",
        cohere_api_key="test-key",
    )
