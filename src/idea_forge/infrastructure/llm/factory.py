"""Provider registry and per-stage producer construction.

Usage::

    factory = ProducerFactory(ProducerConfig.from_env())
    producer = factory.create_producer(StageName.CRITIC)
    text = await producer.complete(system_prompt, user_prompt)
"""

from __future__ import annotations

import logging
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.runnables import Runnable

from idea_forge.domain.enums import StageName
from idea_forge.domain.exceptions import ConfigurationError
from idea_forge.infrastructure.config import FALLBACK_ORDER, ProducerConfig
from idea_forge.infrastructure.llm import ModelSpec, ProviderAdapter
from idea_forge.infrastructure.llm.producer import Producer

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER = "openai"

MODEL_REGISTRY: dict[str, str] = {
    "o3": "openai",
    "o3-mini": "openai",
    "o4-mini": "openai",
    "gpt-4o": "openai",
    "gpt-4o-mini": "openai",
    "gpt-4.1": "openai",
    "gpt-4.1-mini": "openai",
    "claude-opus-4-20250514": "anthropic",
    "claude-sonnet-4-20250514": "anthropic",
    "claude-3-7-sonnet-latest": "anthropic",
    "claude-3-5-haiku-latest": "anthropic",
    "gemini-2.5-pro": "google",
    "gemini-2.5-flash": "google",
    "gemini-2.0-flash": "google",
}

_PREFIX_PROVIDERS = (("claude", "anthropic"), ("gemini", "google"), ("gpt", "openai"))


def parse_model_spec(spec: str) -> ModelSpec:
    """Resolve ``"provider:model"`` or a bare model id into a :class:`ModelSpec`.

    Bare ids are looked up in :data:`MODEL_REGISTRY`, then matched by
    well-known prefixes, and otherwise attributed to ``openai``.
    """
    spec = spec.strip()
    if not spec:
        raise ValueError("Model spec must not be empty")
    if ":" in spec:
        provider, _, model = spec.partition(":")
        if provider in FALLBACK_ORDER and model:
            return ModelSpec(provider, model)
    provider = MODEL_REGISTRY.get(spec)
    if provider is None:
        provider = next(
            (p for prefix, p in _PREFIX_PROVIDERS if spec.startswith(prefix)),
            DEFAULT_PROVIDER,
        )
    return ModelSpec(provider, spec)


class ProviderRegistry:
    """Adapters keyed by provider tag.

    Parameters
    ----------
    auto_discover:
        If ``True`` (default), pre-register the built-in adapters.
    """

    def __init__(self, auto_discover: bool = True) -> None:
        self._adapters: dict[str, ProviderAdapter] = {}
        if auto_discover:
            self._discover_builtin_adapters()

    def register(self, adapter: ProviderAdapter, overwrite: bool = False) -> None:
        name = adapter.provider_name
        if name in self._adapters and not overwrite:
            raise ValueError(
                f"Provider {name!r} is already registered. "
                f"Use overwrite=True to replace it."
            )
        self._adapters[name] = adapter
        logger.debug("ProviderRegistry: registered provider %r", name)

    def get(self, name: str) -> ProviderAdapter:
        adapter = self._adapters.get(name)
        if adapter is None:
            available = ", ".join(sorted(self._adapters))
            raise KeyError(f"Unknown provider {name!r}. Available providers: {available}")
        return adapter

    @property
    def registered_providers(self) -> list[str]:
        return sorted(self._adapters)

    def available_providers(self) -> dict[str, bool]:
        """Map each provider to whether its integration package imports."""
        modules = {
            "openai": "langchain_openai",
            "anthropic": "langchain_anthropic",
            "google": "langchain_google_genai",
        }
        return {
            name: self._check_availability(modules.get(name, ""))
            for name in self._adapters
        }

    @staticmethod
    def _check_availability(module: str) -> bool:
        if not module:
            return True
        try:
            __import__(module)
            return True
        except ImportError:
            return False

    def _discover_builtin_adapters(self) -> None:
        from idea_forge.infrastructure.llm.providers import (
            AnthropicAdapter,
            GoogleAdapter,
            OpenAIAdapter,
        )

        for adapter in (OpenAIAdapter(), AnthropicAdapter(), GoogleAdapter()):
            self._adapters[adapter.provider_name] = adapter

    def __contains__(self, name: object) -> bool:
        return name in self._adapters


class ProducerFactory:
    """Builds one :class:`Producer` per stage from configuration.

    The stage's configured model is the primary.  If its provider has no
    credential, the first credentialed provider's default model replaces it.
    With ``use_fallbacks`` the remaining credentialed providers are chained
    behind the primary in ``openai -> anthropic -> google`` order.
    """

    def __init__(
        self,
        config: ProducerConfig,
        registry: ProviderRegistry | None = None,
    ) -> None:
        config.require_credentials()
        self.config = config
        self.registry = registry if registry is not None else ProviderRegistry()

    def _model_kwargs(self, **extra: Any) -> dict[str, Any]:
        return {
            "temperature": self.config.temperature,
            "max_retries": self.config.max_retries,
            "timeout": self.config.timeout,
            **extra,
        }

    def create_model(self, spec: ModelSpec, web_search: bool = False) -> BaseChatModel:
        adapter = self.registry.get(spec.provider)
        api_key = self.config.api_key_for(spec.provider)
        if not api_key:
            raise ConfigurationError(
                f"No API key configured for provider {spec.provider!r}",
                setting=spec.provider,
            )
        use_search = web_search and adapter.supports_web_search()
        return adapter.create_model(spec.model, api_key, **self._model_kwargs(web_search=use_search))

    def resolve_spec(self, stage: StageName | str) -> ModelSpec:
        spec = parse_model_spec(self.config.model_for(stage))
        if self.config.api_key_for(spec.provider):
            return spec
        provider = self.config.credentialed_providers[0]
        replacement = ModelSpec(provider, self.registry.get(provider).default_model)
        logger.warning(
            "No credentials for %s (stage %s); using %s instead",
            spec.provider, stage, replacement,
        )
        return replacement

    def create_producer(self, stage: StageName | str) -> Producer:
        spec = self.resolve_spec(stage)
        web_search = self.config.enable_web_search and stage in (
            StageName.COMPETITOR, StageName.COMPETITOR.value,
        )
        primary: Runnable = self.create_model(spec, web_search=web_search)
        if self.config.use_fallbacks:
            fallbacks = [
                self.create_model(
                    ModelSpec(p, self.registry.get(p).default_model), web_search=web_search
                )
                for p in self.config.credentialed_providers
                if p != spec.provider
            ]
            if fallbacks:
                primary = primary.with_fallbacks(fallbacks)
        logger.info("Stage %s uses producer %s", stage, spec)
        return Producer(primary, name=str(spec))

    def create_stage_producers(self) -> dict[str, Producer]:
        return {
            stage.value: self.create_producer(stage)
            for stage in (
                StageName.IDEATION,
                StageName.COMPETITOR,
                StageName.CRITIC,
                StageName.DOCUMENTATION,
            )
        }
