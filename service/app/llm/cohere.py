"""Cohere LLM provider via langchain-cohere."""

from langchain_cohere import ChatCohere
from langchain_core.language_models import BaseChatModel

from app.config import Settings
from app.llm.provider import LLMProvider


class CohereProvider(LLMProvider):
    def __init__(self, settings: Settings) -> None:
        self._model_name = settings.cohere_model
        self._api_key = settings.cohere_api_key
        self._timeout = settings.upstream_timeout_seconds

    def get_chat_model(self) -> BaseChatModel:
        return ChatCohere(
            model=self._model_name,
            cohere_api_key=self._api_key,
            timeout_seconds=self._timeout,
            temperature=0.3,
            max_tokens=512,
        )

    def get_model_name(self) -> str:
        return f"cohere/{self._model_name}"
