"""
Unit tests for the remote change reconciler.

The remote is a double that captures the subscription callbacks so each
test can deliver snapshots by hand.
"""

import logging

import pytest

from boardsync import ops
from boardsync.local import MemoryLocalCache
from boardsync.model import State
from boardsync.remote import CallbackSubscription, DocumentSnapshot
from boardsync.sync import BoardSession, DebouncedWriter, RemoteReconciler, SyncStatus


class CapturingRemote:
    """Remote store double exposing the subscription callbacks."""

    def __init__(self):
        self.on_snapshot = None
        self.on_error = None
        self.subscription = None
        self.docs = []

    async def set(self, doc):
        self.docs.append(doc)

    def subscribe(self, on_snapshot, on_error=None):
        self.on_snapshot = on_snapshot
        self.on_error = on_error
        self.subscription = CallbackSubscription()
        return self.subscription


def _remote_doc(name):
    state = State()
    ops.add_project(state, name, project_id="remote-project")
    return state.to_dict()


class TestRemoteReconciler:
    """Tests for RemoteReconciler."""

    @pytest.fixture
    def remote(self):
        return CapturingRemote()

    @pytest.fixture
    def cache(self):
        return MemoryLocalCache()

    @pytest.fixture
    def writer(self, remote, scheduler):
        return DebouncedWriter(remote, delay=0.5, call_later=scheduler.call_later)

    @pytest.fixture
    def session(self, cache, writer):
        return BoardSession(cache=cache, writer=writer)

    @pytest.fixture
    def reconciler(self, remote, session, writer):
        reconciler = RemoteReconciler(remote, session, writer=writer)
        reconciler.start()
        return reconciler

    def test_start_and_stop(self, reconciler, remote):
        assert reconciler.running
        reconciler.stop()
        assert not reconciler.running
        assert not remote.subscription.active

    def test_echo_is_discarded(self, reconciler, remote, session):
        """A pending-writes snapshot never replaces local state."""
        session.mutate(ops.add_project, "Local")
        seen = []
        session.subscribe(seen.append)

        remote.on_snapshot(DocumentSnapshot(_remote_doc("Other"), has_pending_writes=True, version=1))

        assert [p.name for p in session.state.projects] == ["Local"]
        assert seen == []
        assert session.status == SyncStatus.LOCAL_AHEAD
        assert reconciler.stats["echo_count"] == 1
        assert reconciler.stats["applied_count"] == 0

    def test_remote_change_adopted(self, reconciler, remote, session, cache):
        seen = []
        session.subscribe(seen.append)

        remote.on_snapshot(DocumentSnapshot(_remote_doc("Shared"), version=4))

        assert [p.name for p in session.state.projects] == ["Shared"]
        assert cache.read()["projects"][0]["name"] == "Shared"
        assert len(seen) == 1
        assert session.status == SyncStatus.SYNCED
        assert reconciler.stats["applied_count"] == 1
        assert reconciler.stats["last_version"] == 4

    def test_remote_document_is_migrated(self, reconciler, remote, session):
        legacy = {"projects": [{"id": "p", "name": "Old", "cards": [
            {"id": "a", "title": "A", "deps": ["b"]},
            {"id": "b", "title": "B", "deps": ["a"]},
        ]}]}
        remote.on_snapshot(DocumentSnapshot(legacy, version=1))
        project = session.state.projects[0]
        assert project.find_card("a").dependencies == ["b"]
        assert project.find_card("b").dependencies == []

    @pytest.mark.asyncio
    async def test_missing_document_seeds_remote(self, reconciler, remote, session, writer):
        session.load(State(projects=[], active_project_id=None))
        ops.add_project(session.state, "Seed")

        remote.on_snapshot(DocumentSnapshot(None))

        assert writer.pending
        await writer.flush()
        assert remote.docs[0]["projects"][0]["name"] == "Seed"
        assert reconciler.stats["applied_count"] == 0

    def test_adopting_cancels_armed_write(self, reconciler, remote, session, writer, scheduler, caplog):
        session.mutate(ops.add_project, "Local")
        assert writer.pending

        with caplog.at_level(logging.WARNING, logger="boardsync.sync.reconciler"):
            remote.on_snapshot(DocumentSnapshot(_remote_doc("Newer"), version=2))

        assert not writer.pending
        assert scheduler.armed == []
        assert [p.name for p in session.state.projects] == ["Newer"]
        assert "superseded" in caplog.text

    def test_errors_logged_and_counted(self, reconciler, remote, caplog):
        with caplog.at_level(logging.WARNING, logger="boardsync.sync.reconciler"):
            remote.on_error(ConnectionError("stream reset"))
            remote.on_error(ConnectionError("stream reset"))

        assert reconciler.stats["error_count"] == 2
        assert reconciler.running
        assert "stream reset" in caplog.text

    def test_double_start_keeps_one_subscription(self, reconciler, remote):
        first = remote.subscription
        reconciler.start()
        assert remote.subscription is first
