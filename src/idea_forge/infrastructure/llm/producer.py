"""The producer call shape used by every stage.

A :class:`Producer` wraps a LangChain runnable (a chat model, possibly with
fallbacks or bound tools) and exposes two operations: ``complete`` returns a
whole text blob, ``stream`` yields text fragments as they arrive.  Provider
SDK exceptions are translated into the ``LLMError`` family.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Any

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langchain_core.runnables import Runnable

from idea_forge.infrastructure.llm import (
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
)

logger = logging.getLogger(__name__)

_TRANSIENT_STATUS = frozenset({408, 500, 502, 503, 504, 529})


def classify_error(exc: BaseException) -> LLMError:
    """Map a provider SDK exception onto the ``LLMError`` family.

    Classification uses the exception's class name and ``status_code`` so
    that no provider SDK has to be importable here.
    """
    if isinstance(exc, LLMError):
        return exc
    name = type(exc).__name__
    status = getattr(exc, "status_code", None)
    message = f"{name}: {exc}"
    if status == 429 or "RateLimit" in name or "ResourceExhausted" in name:
        return LLMRateLimitError(message)
    if (
        isinstance(exc, (ConnectionError, TimeoutError, asyncio.TimeoutError))
        or "Timeout" in name
        or "Connection" in name
        or status in _TRANSIENT_STATUS
    ):
        return LLMConnectionError(message)
    return LLMError(message)


def message_text(message: Any) -> str:
    """Return the plain text of a message or chunk.

    Content may be a string or a list of content blocks (tool-enabled and
    reasoning models); only text blocks are kept.
    """
    content = getattr(message, "content", message)
    if isinstance(content, str):
        return content
    parts: list[str] = []
    for block in content or []:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type", "text") == "text":
            parts.append(str(block.get("text", "")))
    return "".join(parts)


class Producer:
    """Unreliable free-text producer behind a uniform call shape.

    Parameters
    ----------
    model:
        Any LangChain runnable accepting a list of messages.
    name:
        Label used in log records, usually the model spec.
    """

    def __init__(self, model: Runnable, name: str = "") -> None:
        self.model = model
        self.name = name or type(model).__name__

    @staticmethod
    def _messages(system: str, user: str) -> list[BaseMessage]:
        return [SystemMessage(content=system), HumanMessage(content=user)]

    async def complete(self, system: str, user: str) -> str:
        """Return the full response text.

        Raises
        ------
        LLMError
            On provider failure or an empty response.
        """
        try:
            message = await self.model.ainvoke(self._messages(system, user))
        except Exception as exc:
            raise classify_error(exc) from exc
        text = message_text(message)
        if not text.strip():
            raise LLMResponseError(f"{self.name} returned an empty response")
        logger.debug("%s completed with %d characters", self.name, len(text))
        return text

    async def stream(self, system: str, user: str) -> AsyncIterator[str]:
        """Yield response text fragments in arrival order."""
        received = 0
        try:
            async for chunk in self.model.astream(self._messages(system, user)):
                text = message_text(chunk)
                if text:
                    received += len(text)
                    yield text
        except Exception as exc:
            raise classify_error(exc) from exc
        logger.debug("%s streamed %d characters", self.name, received)

    def __repr__(self) -> str:
        return f"Producer(name={self.name!r})"
