"""Cache interceptor: replay stored stage results as if run live.

On a hit the stored :class:`~idea_forge.domain.entities.StageOutput` is
returned without calling the producer, and the stage's synthetic event
sequence (start status, one progress event per idea, completion) is
published with a bounded random pause before each progress event.  On a
miss the stage runs live and its output is persisted under the stage's key.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from idea_forge.domain.entities import Idea, StageOutput
from idea_forge.domain.enums import EventType
from idea_forge.domain.events import StageEvent
from idea_forge.domain.exceptions import CacheError
from idea_forge.infrastructure.cache import FileCacheStore
from idea_forge.infrastructure.serialization import (
    stage_output_from_dict,
    stage_output_to_dict,
)
from idea_forge.services.stages import Stage, StageContext, StageRunner

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


class CacheInterceptor:
    """Wraps stage execution with a load-or-execute cache.

    Parameters
    ----------
    store:
        Where artifacts live.
    runner:
        Publishes events for both live and replayed stages.
    enabled:
        When ``False`` every call runs live and nothing is persisted.
    min_delay, max_delay:
        Bounds, in seconds, of the pause before each replayed progress event.
    """

    def __init__(
        self,
        store: FileCacheStore,
        runner: StageRunner,
        *,
        enabled: bool = True,
        min_delay: float = 0.5,
        max_delay: float = 1.0,
        rng: random.Random | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        if min_delay < 0 or max_delay < min_delay:
            raise ValueError(f"Invalid replay delay bounds: {min_delay} / {max_delay}")
        self.store = store
        self.runner = runner
        self.enabled = enabled
        self.min_delay = min_delay
        self.max_delay = max_delay
        self._rng = rng or random.Random()
        self._sleep = sleep

    def _load(self, key: str) -> StageOutput | None:
        data = self.store.load(key)
        if data is None:
            return None
        try:
            return stage_output_from_dict(data)
        except ValueError as exc:
            raise CacheError(f"Cache artifact {key} does not hold a stage output", key=key) from exc

    async def load_or_execute(
        self,
        key: str,
        fn: Callable[[], Awaitable[StageOutput]],
        replay: Callable[[StageOutput], Awaitable[None]] | None = None,
        accept: Callable[[StageOutput], bool] | None = None,
    ) -> StageOutput:
        """Return the cached output for *key* or run *fn* and store its result.

        *replay* is awaited with the cached output on a hit so the caller can
        re-publish the matching event sequence.  A cached output that *accept*
        rejects is treated as a miss.
        """
        if self.enabled:
            cached = self._load(key)
            if cached is not None and accept is not None and not accept(cached):
                logger.warning("Cached result %s does not match the current ideas; running live", key)
                cached = None
            if cached is not None:
                logger.info("Replaying cached result %s (%d ideas)", key, len(cached.ideas))
                if replay is not None:
                    await replay(cached)
                return cached
        output = await fn()
        if self.enabled:
            self.store.save(key, stage_output_to_dict(output))
        return output

    async def replay_events(self, stage: Stage, events: Sequence[StageEvent]) -> None:
        for event in events:
            if event.type is EventType.PROGRESS:
                await self._sleep(self._rng.uniform(self.min_delay, self.max_delay))
            self.runner.publish(stage, event)

    async def run_stage(
        self, stage: Stage, ideas: Sequence[Idea], context: StageContext
    ) -> StageOutput:
        """Run *stage* through the cache using its fixed cache key.

        A replay is rebuilt from the stored output alone, so it matches the
        live sequence only for runs without failures.  Error events are never
        replayed, and a refinement batch that failed live still replays one
        progress event per idea.
        """

        async def live() -> StageOutput:
            return await self.runner.drive(stage, ideas, context)

        async def replay(output: StageOutput) -> None:
            await self.replay_events(stage, stage.replay_events(output, context))

        def matches(output: StageOutput) -> bool:
            if not stage.consumes_ideas:
                return True
            return [idea.id for idea in output.ideas] == [idea.id for idea in ideas]

        return await self.load_or_execute(stage.cache_key, live, replay, matches)

    def clear(self, key: str | None = None) -> int:
        return self.store.clear(key)
