"""Model-agnostic LLM provider abstraction.

Adding a backend means one LLMProvider subclass plus a branch in
create_provider. Every provider returns a LangChain BaseChatModel so the
relay never needs to know which vendor answers.
"""

from abc import ABC, abstractmethod

from langchain_core.language_models import BaseChatModel

from app.config import Settings


class LLMProvider(ABC):
    """Interface that every LLM backend must implement."""

    @abstractmethod
    def get_chat_model(self) -> BaseChatModel:
        """Return a LangChain chat model ready for inference."""

    @abstractmethod
    def get_model_name(self) -> str:
        """Human-readable model identifier for logging."""


def create_provider(settings: Settings) -> LLMProvider:
    """Factory: instantiate the configured LLM provider."""
    if settings.llm_provider == "cohere":
        from app.llm.cohere import CohereProvider

        return CohereProvider(settings)

    raise ValueError(
        f"Unknown LLM provider: {settings.llm_provider!r}. "
        "Must be 'cohere'."
    )
