"""Tests for the producer layer: specs, error mapping and construction."""

from __future__ import annotations

from typing import Any

import pytest
from langchain_core.language_models import BaseChatModel

from idea_forge.domain.enums import StageName
from idea_forge.domain.exceptions import ConfigurationError
from idea_forge.infrastructure.config import ProducerConfig
from idea_forge.infrastructure.llm import (
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    ModelSpec,
    Producer,
    ProducerFactory,
    ProviderAdapter,
    ProviderRegistry,
    classify_error,
    parse_model_spec,
)
from idea_forge.testing import ScriptedChatModel


class _FakeAdapter(ProviderAdapter):

    def __init__(self, name: str, search: bool = False) -> None:
        self._name = name
        self._search = search
        self.created: list[tuple[str, dict[str, Any]]] = []

    @property
    def provider_name(self) -> str:
        return self._name

    @property
    def default_model(self) -> str:
        return f"{self._name}-default"

    def create_model(self, model_id: str, api_key: str, **kwargs: Any) -> BaseChatModel:
        self.created.append((model_id, kwargs))
        return ScriptedChatModel(responses=[f"{self._name}:{model_id}"])

    def supports_web_search(self) -> bool:
        return self._search


def _registry(**adapters: _FakeAdapter) -> ProviderRegistry:
    registry = ProviderRegistry(auto_discover=False)
    for adapter in adapters.values():
        registry.register(adapter)
    return registry


class _RateLimitError(Exception):
    status_code = 429


class _ServiceUnavailable(Exception):
    status_code = 503


class TestParseModelSpec:

    @pytest.mark.parametrize("spec,expected", [
        ("anthropic:claude-x", ModelSpec("anthropic", "claude-x")),
        ("gpt-4o", ModelSpec("openai", "gpt-4o")),
        ("gemini-2.5-flash", ModelSpec("google", "gemini-2.5-flash")),
        ("claude-future", ModelSpec("anthropic", "claude-future")),
        ("mystery-model", ModelSpec("openai", "mystery-model")),
    ])
    def test_parse(self, spec, expected) -> None:
        assert parse_model_spec(spec) == expected

    def test_empty(self) -> None:
        with pytest.raises(ValueError):
            parse_model_spec("  ")

    def test_str(self) -> None:
        assert str(ModelSpec("google", "gemini")) == "google:gemini"


class TestClassifyError:

    def test_mapping(self) -> None:
        assert isinstance(classify_error(_RateLimitError()), LLMRateLimitError)
        assert isinstance(classify_error(_ServiceUnavailable()), LLMConnectionError)
        assert isinstance(classify_error(TimeoutError()), LLMConnectionError)
        assert type(classify_error(ValueError("bad"))) is LLMError

    def test_passthrough(self) -> None:
        err = LLMResponseError("empty")
        assert classify_error(err) is err


class TestProducer:

    @pytest.mark.asyncio
    async def test_complete(self) -> None:
        producer = Producer(ScriptedChatModel(responses=["hello"]))
        assert await producer.complete("system", "user") == "hello"
        [messages] = producer.model.calls
        assert [m.content for m in messages] == ["system", "user"]

    @pytest.mark.asyncio
    async def test_empty_response(self) -> None:
        with pytest.raises(LLMResponseError):
            await Producer(ScriptedChatModel(responses=["   "])).complete("s", "u")

    @pytest.mark.asyncio
    async def test_errors_are_classified(self) -> None:
        producer = Producer(ScriptedChatModel(responses=[ConnectionError("reset")]))
        with pytest.raises(LLMConnectionError):
            await producer.complete("s", "u")

    @pytest.mark.asyncio
    async def test_stream(self) -> None:
        producer = Producer(ScriptedChatModel(responses=["abcdefghij"], chunk_size=3))
        pieces = [piece async for piece in producer.stream("s", "u")]
        assert pieces == ["abc", "def", "ghi", "j"]

    @pytest.mark.asyncio
    async def test_stream_failure_mid_way(self) -> None:
        producer = Producer(ScriptedChatModel(responses=[["abc", TimeoutError("late")]]))
        pieces = []
        with pytest.raises(LLMConnectionError):
            async for piece in producer.stream("s", "u"):
                pieces.append(piece)
        assert pieces == ["abc"]


class TestProducerFactory:

    def test_requires_credentials(self) -> None:
        with pytest.raises(ConfigurationError):
            ProducerFactory(ProducerConfig(), registry=_registry())

    @pytest.mark.asyncio
    async def test_per_stage_model(self) -> None:
        openai = _FakeAdapter("openai")
        config = ProducerConfig(
            openai_api_key="k", llm_model="gpt-4o", critic_model="gpt-4o-mini",
            use_fallbacks=False,
        )
        factory = ProducerFactory(config, registry=_registry(openai=openai))
        critic = factory.create_producer(StageName.CRITIC)
        assert critic.name == "openai:gpt-4o-mini"
        assert await critic.complete("s", "u") == "openai:gpt-4o-mini"
        assert factory.create_producer(StageName.IDEATION).name == "openai:gpt-4o"

    def test_missing_credential_switches_provider(self) -> None:
        anthropic = _FakeAdapter("anthropic")
        config = ProducerConfig(anthropic_api_key="k", llm_model="gpt-4o", use_fallbacks=False)
        factory = ProducerFactory(
            config, registry=_registry(openai=_FakeAdapter("openai"), anthropic=anthropic)
        )
        assert factory.create_producer(StageName.IDEATION).name == "anthropic:anthropic-default"

    def test_fallbacks_chain_other_providers(self) -> None:
        openai, google = _FakeAdapter("openai"), _FakeAdapter("google")
        config = ProducerConfig(openai_api_key="a", google_api_key="g")
        factory = ProducerFactory(config, registry=_registry(openai=openai, google=google))
        factory.create_producer(StageName.CRITIC)
        assert [model for model, _ in google.created] == ["google-default"]

    def test_web_search_only_for_competitor(self) -> None:
        openai = _FakeAdapter("openai", search=True)
        config = ProducerConfig(openai_api_key="a", enable_web_search=True, use_fallbacks=False)
        factory = ProducerFactory(config, registry=_registry(openai=openai))
        factory.create_producer(StageName.COMPETITOR)
        factory.create_producer(StageName.CRITIC)
        assert [kwargs["web_search"] for _, kwargs in openai.created] == [True, False]

    def test_stage_producers(self) -> None:
        config = ProducerConfig(openai_api_key="a", use_fallbacks=False)
        factory = ProducerFactory(config, registry=_registry(openai=_FakeAdapter("openai")))
        assert set(factory.create_stage_producers()) == {
            "IdeationAgent", "CompetitorAgent", "CriticAgent", "DocumentationAgent",
        }


class TestProviderRegistry:

    def test_builtin_adapters(self) -> None:
        assert ProviderRegistry().registered_providers == ["anthropic", "google", "openai"]

    def test_unknown_provider(self) -> None:
        with pytest.raises(KeyError):
            ProviderRegistry(auto_discover=False).get("openai")
