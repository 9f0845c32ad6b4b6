"""
Unit tests for BoardSession.
"""

import json

import pytest

from boardsync import ops
from boardsync.errors import CycleError, NotFoundError
from boardsync.local import MemoryLocalCache, SqliteLocalCache
from boardsync.schema import migrate
from boardsync.sync import BoardSession, DebouncedWriter, SyncStatus


class NullRemote:
    async def set(self, doc):
        pass


class TestBoardSession:
    """Tests for BoardSession."""

    @pytest.fixture
    def cache(self):
        return MemoryLocalCache()

    @pytest.fixture
    def writer(self, scheduler):
        return DebouncedWriter(NullRemote(), delay=0.5, call_later=scheduler.call_later)

    @pytest.fixture
    def session(self, cache, writer):
        return BoardSession(cache=cache, writer=writer)

    def test_mutation_caches_schedules_and_emits(self, session, cache, writer):
        seen = []
        session.subscribe(seen.append)

        project = session.mutate(ops.add_project, "Roadmap")

        assert cache.read()["projects"][0]["id"] == project.id
        assert writer.pending
        assert seen == [session.state]
        assert session.status == SyncStatus.LOCAL_AHEAD
        assert session.stats["mutations"] == 1

    def test_rejected_mutation_changes_nothing(self, session, cache, writer):
        project = session.mutate(ops.add_project, "Roadmap")
        a = session.mutate(ops.add_card, project.id, "A")
        b = session.mutate(ops.add_card, project.id, "B")
        session.mutate(ops.add_dependency, project.id, a.id, b.id)
        writes_before = cache.write_count
        snapshot = session.state.to_dict()
        seen = []
        session.subscribe(seen.append)

        with pytest.raises(CycleError):
            session.mutate(ops.add_dependency, project.id, b.id, a.id)

        assert session.state.to_dict() == snapshot
        assert cache.write_count == writes_before
        assert seen == []
        assert session.stats["rejected"] == 1

    def test_not_found_propagates(self, session):
        with pytest.raises(NotFoundError):
            session.mutate(ops.rename_project, "nope", "x")

    def test_load_does_not_cache_or_schedule(self, session, cache, writer):
        session.load(migrate({"projects": [{"id": "p", "name": "P"}]}))
        assert session.state.projects[0].id == "p"
        assert cache.read() is None
        assert not writer.pending

    def test_replace_from_remote(self, session, cache, writer):
        seen = []
        session.subscribe(seen.append)
        session.replace_from_remote(migrate({"projects": [{"id": "r", "name": "R"}]}))

        assert session.status == SyncStatus.SYNCED
        assert cache.read()["projects"][0]["id"] == "r"
        assert not writer.pending
        assert len(seen) == 1

    def test_unsubscribe(self, session):
        seen = []
        unsubscribe = session.subscribe(seen.append)
        unsubscribe()
        unsubscribe()
        session.mutate(ops.add_project, "Roadmap")
        assert seen == []

    def test_failing_listener_does_not_block_others(self, session):
        seen = []

        def broken(state):
            raise RuntimeError("render failed")

        session.subscribe(broken)
        session.subscribe(seen.append)
        session.mutate(ops.add_project, "Roadmap")
        assert len(seen) == 1

    def test_export_import(self, session, writer):
        project = session.mutate(ops.add_project, "Roadmap")
        session.mutate(ops.add_card, project.id, "Ship")
        blob = session.export()
        assert json.loads(blob)["projects"][0]["name"] == "Roadmap"

        other = BoardSession(cache=MemoryLocalCache(), writer=writer)
        imported = other.import_(blob)
        assert imported.to_dict() == session.state.to_dict()
        assert other.status == SyncStatus.LOCAL_AHEAD

    def test_unwritable_cache_still_schedules_remote(self, writer, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        session = BoardSession(cache=SqliteLocalCache(blocker / "sub" / "cache.db"), writer=writer)

        project = session.mutate(ops.add_project, "Roadmap")

        assert session.state.projects == [project]
        assert writer.pending
        assert session.status == SyncStatus.LOCAL_AHEAD

    def test_works_without_cache_or_writer(self):
        session = BoardSession()
        session.mutate(ops.add_project, "Solo")
        assert len(session.state.projects) == 1
