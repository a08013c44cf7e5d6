"""Producer (LLM) integration layer for idea-forge.

This sub-package hides the model backends (OpenAI, Anthropic, Google)
behind one small capability interface and one call shape.

Public API
----------
ProviderAdapter
    Capability interface implemented once per backend.
ProviderRegistry
    Adapters keyed by provider tag.
ProducerFactory
    Builds a :class:`Producer` per pipeline stage from ``ProducerConfig``.
Producer
    ``complete(system, user)`` and ``stream(system, user)`` over a LangChain
    chat model.
LLMError
    Base exception for all producer failures.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from langchain_core.language_models import BaseChatModel

logger = logging.getLogger(__name__)


# =========================================================================== #
#  Exceptions                                                                  #
# =========================================================================== #

class LLMError(Exception):
    """Base exception for producer errors."""


class LLMConnectionError(LLMError):
    """Raised when the provider cannot be reached or times out."""


class LLMRateLimitError(LLMError):
    """Raised when the provider returns a rate-limit / quota error."""


class LLMResponseError(LLMError):
    """Raised when the provider returns an empty or unusable response."""


# =========================================================================== #
#  Model specs                                                                 #
# =========================================================================== #

@dataclass(frozen=True)
class ModelSpec:
    """A model id qualified by the provider that serves it."""

    provider: str
    model: str

    def __str__(self) -> str:
        return f"{self.provider}:{self.model}"


# =========================================================================== #
#  Capability interface                                                        #
# =========================================================================== #

class ProviderAdapter(ABC):
    """One backend behind the producer call shape.

    Adapters import their LangChain integration lazily so that only the
    backends actually used need to be installed.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider tag (e.g. ``"anthropic"``)."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        ...

    @abstractmethod
    def create_model(self, model_id: str, api_key: str, **kwargs: Any) -> BaseChatModel:
        """Instantiate a chat model.

        Parameters
        ----------
        model_id:
            Provider-specific model identifier.
        api_key:
            Credential for the provider.
        **kwargs:
            ``temperature``, ``max_retries``, ``timeout`` and
            ``web_search``; adapters ignore what they do not support.
        """
        ...

    def supports_web_search(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider={self.provider_name!r})"


from idea_forge.infrastructure.llm.producer import Producer, classify_error  # noqa: E402
from idea_forge.infrastructure.llm.factory import (  # noqa: E402
    MODEL_REGISTRY,
    ProducerFactory,
    ProviderRegistry,
    parse_model_spec,
)

__all__ = [
    "LLMConnectionError",
    "LLMError",
    "LLMRateLimitError",
    "LLMResponseError",
    "MODEL_REGISTRY",
    "ModelSpec",
    "Producer",
    "ProducerFactory",
    "ProviderAdapter",
    "ProviderRegistry",
    "classify_error",
    "parse_model_spec",
]
