"""Tests for the in-memory repositories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from idea_forge.domain.entities import Run
from idea_forge.domain.enums import IdeaStage
from idea_forge.domain.exceptions import PersistenceError
from idea_forge.domain.identifiers import new_ulid
from idea_forge.infrastructure.persistence import InMemoryIdeaRepository, InMemoryRunRepository


class TestInMemoryIdeaRepository:

    def test_create_and_query(self, make_idea) -> None:
        repo = InMemoryIdeaRepository()
        a, b = make_idea(), make_idea()
        repo.create_idea("run-1", "alice", a)
        repo.create_idea("run-2", "alice", b)
        assert repo.get_idea(a.id) == a
        assert repo.ideas_by_run("run-1") == [a]
        assert repo.ideas_by_user("alice") == [a, b]
        assert repo.ideas_by_user("bob") == []
        assert len(repo) == 2

    def test_update_unknown_idea(self, make_idea) -> None:
        repo = InMemoryIdeaRepository()
        idea = make_idea()
        with pytest.raises(PersistenceError):
            repo.update_idea_stage(idea.id, IdeaStage.CRITIC, idea)
        with pytest.raises(PersistenceError):
            repo.update_idea_document_path(idea.id, "x.md")

    def test_set_starred(self, make_idea) -> None:
        repo = InMemoryIdeaRepository()
        idea = make_idea()
        repo.create_idea("run-1", "alice", idea)
        assert repo.set_starred(idea.id, True).starred is True
        assert repo.get_idea(idea.id).starred is True


class TestInMemoryRunRepository:

    def test_duplicate_run(self, run) -> None:
        repo = InMemoryRunRepository()
        repo.create_run(run)
        with pytest.raises(PersistenceError):
            repo.create_run(run)

    def test_latest_run(self, preferences) -> None:
        repo = InMemoryRunRepository()
        now = datetime.now(timezone.utc)
        older = Run(id=new_ulid(), preferences=preferences, execution_mode="classic-startup",
                    user_id="alice", created_at=now - timedelta(hours=1))
        newer = Run(id=new_ulid(), preferences=preferences, execution_mode="solopreneur",
                    user_id="alice", created_at=now)
        repo.create_run(older)
        repo.create_run(newer)
        assert repo.latest_run("alice") == newer
        assert repo.runs_by_user("alice") == [newer, older]
        assert repo.latest_run("bob") is None

    def test_update_document_path(self, run) -> None:
        repo = InMemoryRunRepository()
        with pytest.raises(PersistenceError):
            repo.update_run_document_path(run.id, "r.md")
        repo.create_run(run)
        repo.update_run_document_path(run.id, "r.md")
        assert repo.get_run(run.id).document_path == "r.md"
