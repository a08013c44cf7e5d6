"""Backend adapters: one :class:`ProviderAdapter` per model vendor.

Each adapter lazily imports its LangChain integration package
(``langchain-openai``, ``langchain-anthropic``, ``langchain-google-genai``).
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel

from idea_forge.infrastructure.llm import ProviderAdapter

logger = logging.getLogger(__name__)


class OpenAIAdapter(ProviderAdapter):
    """OpenAI chat models via ``langchain_openai.ChatOpenAI``."""

    @property
    def provider_name(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o"

    def create_model(self, model_id: str, api_key: str, **kwargs: Any) -> BaseChatModel:
        from langchain_openai import ChatOpenAI

        params: dict[str, Any] = {
            "model": model_id,
            "api_key": api_key,
            "max_retries": kwargs.get("max_retries", 2),
            "timeout": kwargs.get("timeout"),
        }
        # Reasoning models (o1, o3, o4-mini...) only accept the default temperature.
        if "temperature" in kwargs and not model_id.startswith("o"):
            params["temperature"] = kwargs["temperature"]
        web_search = kwargs.get("web_search", False)
        if web_search:
            params["use_responses_api"] = True
        model = ChatOpenAI(**params)
        if web_search:
            return model.bind_tools([{"type": "web_search_preview"}])  # type: ignore[return-value]
        return model

    def supports_web_search(self) -> bool:
        return True


class AnthropicAdapter(ProviderAdapter):
    """Anthropic chat models via ``langchain_anthropic.ChatAnthropic``."""

    max_tokens = 8192

    @property
    def provider_name(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    def create_model(self, model_id: str, api_key: str, **kwargs: Any) -> BaseChatModel:
        from langchain_anthropic import ChatAnthropic

        model = ChatAnthropic(
            model=model_id,
            api_key=api_key,
            temperature=kwargs.get("temperature", 0.7),
            max_retries=kwargs.get("max_retries", 2),
            timeout=kwargs.get("timeout"),
            max_tokens=self.max_tokens,
        )
        if kwargs.get("web_search", False):
            tool = {"type": "web_search_20250305", "name": "web_search", "max_uses": 5}
            return model.bind_tools([tool])  # type: ignore[return-value]
        return model

    def supports_web_search(self) -> bool:
        return True


class GoogleAdapter(ProviderAdapter):
    """Gemini models via ``langchain_google_genai.ChatGoogleGenerativeAI``.

    Web search grounding is not wired for this backend.
    """

    @property
    def provider_name(self) -> str:
        return "google"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-pro"

    def create_model(self, model_id: str, api_key: str, **kwargs: Any) -> BaseChatModel:
        from langchain_google_genai import ChatGoogleGenerativeAI

        if kwargs.get("web_search", False):
            logger.warning("Web search requested but not supported for google; ignoring")
        return ChatGoogleGenerativeAI(
            model=model_id,
            google_api_key=api_key,
            temperature=kwargs.get("temperature", 0.7),
            max_retries=kwargs.get("max_retries", 2),
            timeout=kwargs.get("timeout"),
        )
