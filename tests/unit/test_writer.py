"""
Unit tests for the debounced remote writer.

Time is driven by the ManualScheduler fixture; the writes themselves run
as tasks on the test's event loop.
"""

import asyncio
import logging

import pytest

from boardsync.errors import RemoteWriteError
from boardsync.sync import DebouncedWriter


class RecordingRemote:
    """Remote store double that records set() calls."""

    def __init__(self):
        self.docs = []
        self.fail = 0

    async def set(self, doc):
        if self.fail:
            self.fail -= 1
            raise RemoteWriteError("rejected")
        self.docs.append(doc)


async def _drain():
    for _ in range(3):
        await asyncio.sleep(0)


class TestDebouncedWriter:
    """Tests for DebouncedWriter."""

    @pytest.fixture
    def remote(self):
        return RecordingRemote()

    @pytest.fixture
    def writer(self, remote, scheduler):
        return DebouncedWriter(remote, delay=0.5, call_later=scheduler.call_later)

    @pytest.mark.asyncio
    async def test_burst_coalesces_to_last_document(self, writer, remote, scheduler):
        """Mutations at t=0, 0.1, 0.2 produce one write at t=0.7."""
        writer.schedule({"v": 1})
        scheduler.advance(0.1)
        writer.schedule({"v": 2})
        scheduler.advance(0.1)
        writer.schedule({"v": 3})

        scheduler.advance(0.49)
        await _drain()
        assert remote.docs == []
        assert writer.pending

        scheduler.advance(0.01)
        await _drain()
        assert remote.docs == [{"v": 3}]
        fired = [t for t in scheduler.timers if t.fired]
        assert len(fired) == 1
        assert fired[0].when == pytest.approx(0.7)
        assert not writer.pending

    @pytest.mark.asyncio
    async def test_only_one_timer_armed(self, writer, scheduler):
        for i in range(10):
            writer.schedule({"v": i})
            assert len(scheduler.armed) == 1
        assert writer.stats["scheduled_count"] == 10

    @pytest.mark.asyncio
    async def test_separate_bursts_write_separately(self, writer, remote, scheduler):
        writer.schedule({"v": 1})
        scheduler.advance(1.0)
        await _drain()
        writer.schedule({"v": 2})
        scheduler.advance(1.0)
        await _drain()
        assert remote.docs == [{"v": 1}, {"v": 2}]
        assert writer.stats["write_count"] == 2

    @pytest.mark.asyncio
    async def test_failure_logged_not_retried(self, writer, remote, scheduler, caplog):
        errors = []
        writer._on_error = errors.append
        remote.fail = 1

        with caplog.at_level(logging.ERROR, logger="boardsync.sync.writer"):
            writer.schedule({"v": 1})
            scheduler.advance(0.5)
            await _drain()

        assert remote.docs == []
        assert writer.stats["failure_count"] == 1
        assert writer.stats["last_error"] == "rejected"
        assert len(errors) == 1
        assert "Remote write failed" in caplog.text

        scheduler.advance(10)
        await _drain()
        assert remote.docs == []
        assert scheduler.armed == []

    @pytest.mark.asyncio
    async def test_flush_sends_immediately(self, writer, remote, scheduler):
        writer.schedule({"v": 1})
        await writer.flush()
        assert remote.docs == [{"v": 1}]
        assert not writer.pending
        scheduler.advance(1.0)
        await _drain()
        assert remote.docs == [{"v": 1}]

    @pytest.mark.asyncio
    async def test_flush_without_pending_is_noop(self, writer, remote):
        await writer.flush()
        assert remote.docs == []

    @pytest.mark.asyncio
    async def test_cancel_drops_pending(self, writer, remote, scheduler):
        writer.schedule({"v": 1})
        writer.cancel()
        scheduler.advance(1.0)
        await _drain()
        assert remote.docs == []
        assert not writer.pending

    @pytest.mark.asyncio
    async def test_default_timer_uses_running_loop(self, remote):
        writer = DebouncedWriter(remote, delay=0.01)
        writer.schedule({"v": 1})
        writer.schedule({"v": 2})
        await asyncio.sleep(0.05)
        assert remote.docs == [{"v": 2}]
        await writer.close()
