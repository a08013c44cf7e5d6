"""Repository interfaces and in-memory defaults for ideas and runs.

The pipeline calls repositories as best-effort side effects after each
stage; a ``PersistenceError`` (or any other failure) is logged by the caller
and never aborts a run.  A relational backend can implement the same
protocols.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from idea_forge.domain.entities import Idea, Run
from idea_forge.domain.enums import IdeaStage
from idea_forge.domain.exceptions import PersistenceError

logger = logging.getLogger(__name__)


class IdeaRepository(Protocol):
    def create_idea(self, run_id: str, user_id: str, idea: Idea) -> None: ...

    def update_idea_stage(self, idea_id: str, stage: IdeaStage, idea: Idea) -> None: ...

    def update_idea_document_path(self, idea_id: str, path: str) -> None: ...

    def get_idea(self, idea_id: str) -> Idea | None: ...

    def ideas_by_run(self, run_id: str) -> list[Idea]: ...

    def ideas_by_user(self, user_id: str) -> list[Idea]: ...

    def set_starred(self, idea_id: str, starred: bool) -> Idea: ...


class RunRepository(Protocol):
    def create_run(self, run: Run) -> None: ...

    def update_run_document_path(self, run_id: str, path: str) -> None: ...

    def get_run(self, run_id: str) -> Run | None: ...

    def runs_by_user(self, user_id: str) -> list[Run]: ...

    def latest_run(self, user_id: str) -> Run | None: ...


class InMemoryIdeaRepository:
    """Thread-safe dict-backed :class:`IdeaRepository`."""

    def __init__(self) -> None:
        self._ideas: dict[str, Idea] = {}
        self._stages: dict[str, IdeaStage] = {}
        self._owners: dict[str, tuple[str, str]] = {}  # idea id -> (run id, user id)
        self._lock = threading.Lock()

    def create_idea(self, run_id: str, user_id: str, idea: Idea) -> None:
        with self._lock:
            self._ideas[idea.id] = idea
            self._stages[idea.id] = IdeaStage.IDEATION
            self._owners[idea.id] = (run_id, user_id)

    def update_idea_stage(self, idea_id: str, stage: IdeaStage, idea: Idea) -> None:
        with self._lock:
            if idea_id not in self._ideas:
                raise PersistenceError(f"Idea {idea_id} does not exist", entity_id=idea_id)
            self._ideas[idea_id] = idea
            self._stages[idea_id] = stage

    def update_idea_document_path(self, idea_id: str, path: str) -> None:
        with self._lock:
            idea = self._ideas.get(idea_id)
            if idea is None:
                raise PersistenceError(f"Idea {idea_id} does not exist", entity_id=idea_id)
            self._ideas[idea_id] = idea.model_copy(update={"document_path": path})
            self._stages[idea_id] = IdeaStage.DOCUMENTED

    def get_idea(self, idea_id: str) -> Idea | None:
        with self._lock:
            return self._ideas.get(idea_id)

    def stage_of(self, idea_id: str) -> IdeaStage | None:
        with self._lock:
            return self._stages.get(idea_id)

    def ideas_by_run(self, run_id: str) -> list[Idea]:
        with self._lock:
            return [self._ideas[i] for i, (rid, _) in self._owners.items() if rid == run_id]

    def ideas_by_user(self, user_id: str) -> list[Idea]:
        with self._lock:
            return [self._ideas[i] for i, (_, uid) in self._owners.items() if uid == user_id]

    def set_starred(self, idea_id: str, starred: bool) -> Idea:
        with self._lock:
            idea = self._ideas.get(idea_id)
            if idea is None:
                raise PersistenceError(f"Idea {idea_id} does not exist", entity_id=idea_id)
            idea = idea.model_copy(update={"starred": starred})
            self._ideas[idea_id] = idea
            return idea

    def __len__(self) -> int:
        with self._lock:
            return len(self._ideas)


class InMemoryRunRepository:
    """Thread-safe dict-backed :class:`RunRepository`."""

    def __init__(self) -> None:
        self._runs: dict[str, Run] = {}
        self._lock = threading.Lock()

    def create_run(self, run: Run) -> None:
        with self._lock:
            if run.id in self._runs:
                raise PersistenceError(f"Run {run.id} already exists", entity_id=run.id)
            self._runs[run.id] = run

    def update_run_document_path(self, run_id: str, path: str) -> None:
        with self._lock:
            run = self._runs.get(run_id)
            if run is None:
                raise PersistenceError(f"Run {run_id} does not exist", entity_id=run_id)
            self._runs[run_id] = run.model_copy(update={"document_path": path})

    def get_run(self, run_id: str) -> Run | None:
        with self._lock:
            return self._runs.get(run_id)

    def runs_by_user(self, user_id: str) -> list[Run]:
        with self._lock:
            runs = [r for r in self._runs.values() if r.user_id == user_id]
        return sorted(runs, key=lambda r: r.created_at, reverse=True)

    def latest_run(self, user_id: str) -> Run | None:
        runs = self.runs_by_user(user_id)
        return runs[0] if runs else None

    def __len__(self) -> int:
        with self._lock:
            return len(self._runs)
