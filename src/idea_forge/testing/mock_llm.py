"""Scripted chat model for tests and offline runs.

``ScriptedChatModel`` is a ``BaseChatModel`` whose replies come from a fixed
script.  It supports both ``ainvoke`` and ``astream``, so it can stand in for
any provider behind a :class:`~idea_forge.infrastructure.llm.Producer`.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from langchain_core.callbacks import (
    AsyncCallbackManagerForLLMRun,
    CallbackManagerForLLMRun,
)
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from pydantic import ConfigDict


class ScriptedChatModel(BaseChatModel):
    """A chat model that replays scripted responses in order.

    Each entry of ``responses`` is one of:

    * a ``str``: returned whole by ``ainvoke``, or streamed in
      ``chunk_size``-character pieces by ``astream``;
    * an ``Exception``: raised by the call that consumes it;
    * a ``list`` of ``str`` and ``Exception`` items: streamed piece by
      piece, raising when an exception item is reached (a mid-stream
      failure).

    After exhausting the list, it cycles back to the start.  Every call's
    messages are kept in ``calls``.

    Usage::

        model = ScriptedChatModel(responses=['[{"title": "A"}]', TimeoutError()])
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    responses: list[Any] = []
    chunk_size: int = 16
    calls: list[list[BaseMessage]] = []
    _call_index: int = 0

    @property
    def _llm_type(self) -> str:
        return "scripted"

    def _next(self, messages: list[BaseMessage]) -> Any:
        self.calls.append(list(messages))
        if not self.responses:
            return ""
        resp = self.responses[self._call_index % len(self.responses)]
        self._call_index += 1
        return resp

    def _pieces(self, resp: Any) -> list[Any]:
        if isinstance(resp, list):
            return resp
        text = str(resp)
        size = max(self.chunk_size, 1)
        return [text[i:i + size] for i in range(0, len(text), size)]

    def _generate(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: CallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> ChatResult:
        resp = self._next(messages)
        if isinstance(resp, BaseException):
            raise resp
        if isinstance(resp, list):
            for piece in resp:
                if isinstance(piece, BaseException):
                    raise piece
            resp = "".join(resp)
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=str(resp)))])

    async def _astream(
        self,
        messages: list[BaseMessage],
        stop: list[str] | None = None,
        run_manager: AsyncCallbackManagerForLLMRun | None = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        resp = self._next(messages)
        if isinstance(resp, BaseException):
            raise resp
        for piece in self._pieces(resp):
            if isinstance(piece, BaseException):
                raise piece
            yield ChatGenerationChunk(message=AIMessageChunk(content=piece))

    @property
    def call_count(self) -> int:
        return len(self.calls)
