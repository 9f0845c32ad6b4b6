"""
Presence tracking for boardsync.

Presence is independent of the state document. Each client upserts a small
record {identity, scope, last_seen} into a separate collection on a fixed
heartbeat, and watches the records of its scope. A record counts as online
while its last heartbeat is within the freshness window; stale records are
hidden even if nobody deleted them (a crashed client never deletes).

Invariants:
    - visible_records() is pure: it depends only on its arguments
    - A record whose age equals the window is still visible
    - stop() deletes the own record and cancels both the heartbeat and the
      subscription; a failure in one step never skips the others
    - Heartbeat failures are logged; the heartbeat keeps running

How to change safely:
    - Keep freshness_window >= heartbeat_interval, or live clients flicker
    - The window/interval ratio is a tuning knob (see SyncSettings)
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Iterable, List, Optional

from ..remote.base import PresenceRecord, PresenceStore, Subscription

logger = logging.getLogger(__name__)

DEFAULT_HEARTBEAT = 20.0
DEFAULT_WINDOW = 60.0

PresenceListener = Callable[[List[PresenceRecord]], None]


def visible_records(
    records: Iterable[PresenceRecord],
    now: float,
    window: float = DEFAULT_WINDOW,
) -> List[PresenceRecord]:
    """Filter records to those seen within `window` seconds of `now`.

    Example:
        >>> r = PresenceRecord(identity="a", scope="w", last_seen=100.0)
        >>> [x.identity for x in visible_records([r], now=159.0, window=60.0)]
        ['a']
        >>> visible_records([r], now=161.0, window=60.0)
        []
    """
    fresh = [r for r in records if now - r.last_seen <= window]
    return sorted(fresh, key=lambda r: r.identity)


class PresenceTracker:
    """Heartbeat publisher and visible-set watcher for one client.

    Attributes:
        store: Presence collection
        identity: This client's identity (record key)
        scope: Scope to announce in and watch
        heartbeat_interval: Seconds between upserts
        freshness_window: Max record age in seconds to count as online

    Example:
        >>> async with PresenceTracker(store, "alice", "workspace_1") as tracker:
        ...     online = tracker.visible()
    """

    def __init__(
        self,
        store: PresenceStore,
        identity: str,
        scope: str,
        heartbeat_interval: float = DEFAULT_HEARTBEAT,
        freshness_window: float = DEFAULT_WINDOW,
        display_name: Optional[str] = None,
        clock: Callable[[], float] = time.time,
        on_change: Optional[PresenceListener] = None,
    ) -> None:
        if heartbeat_interval <= 0:
            raise ValueError("heartbeat_interval must be positive")
        if freshness_window < heartbeat_interval:
            raise ValueError("freshness_window must be >= heartbeat_interval")

        self.store = store
        self.identity = identity
        self.scope = scope
        self.heartbeat_interval = heartbeat_interval
        self.freshness_window = freshness_window
        self.display_name = display_name
        self.clock = clock
        self.on_change = on_change

        self._records: List[PresenceRecord] = []
        self._visible_ids: List[str] = []
        self._subscription: Optional[Subscription] = None
        self._heartbeat_task: Optional[asyncio.Task] = None
        self._beat_count = 0
        self._beat_failures = 0

    @property
    def running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    async def start(self) -> None:
        """Subscribe to the scope, announce immediately, start the heartbeat."""
        if self.running:
            logger.warning("Presence tracker already running", extra={"identity": self.identity})
            return
        self._subscription = self.store.subscribe(self.scope, self._on_records, self._on_error)
        await self._beat()
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())
        logger.info("Presence started", extra={"identity": self.identity, "scope": self.scope})

    async def stop(self) -> None:
        """Cancel the heartbeat and subscription and delete the own record."""
        try:
            task, self._heartbeat_task = self._heartbeat_task, None
            if task is not None:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        finally:
            try:
                if self._subscription is not None:
                    self._subscription.cancel()
                    self._subscription = None
            finally:
                try:
                    await self.store.delete(self.identity)
                except Exception as e:
                    logger.warning(
                        f"Failed to delete presence record: {e}",
                        extra={"identity": self.identity},
                    )
        logger.info("Presence stopped", extra={"identity": self.identity, "scope": self.scope})

    async def __aenter__(self) -> PresenceTracker:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def visible(self) -> List[PresenceRecord]:
        """Records in scope that are currently fresh (evaluated now)."""
        return visible_records(self._records, self.clock(), self.freshness_window)

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            await self._beat()
            # Records age out between notifications.
            self._refresh()

    async def _beat(self) -> None:
        record = PresenceRecord(
            identity=self.identity,
            scope=self.scope,
            last_seen=self.clock(),
            display_name=self.display_name,
        )
        try:
            await self.store.upsert(record)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._beat_failures += 1
            logger.warning(
                f"Presence heartbeat failed: {e}",
                extra={"identity": self.identity, "failures": self._beat_failures},
            )
            return
        self._beat_count += 1

    def _on_records(self, records: List[PresenceRecord]) -> None:
        self._records = list(records)
        self._refresh()

    def _on_error(self, exc: Exception) -> None:
        logger.warning(f"Presence subscription error: {exc}", extra={"scope": self.scope})

    def _refresh(self) -> None:
        visible = self.visible()
        ids = [r.identity for r in visible]
        if ids == self._visible_ids:
            return
        self._visible_ids = ids
        if self.on_change is not None:
            try:
                self.on_change(visible)
            except Exception as e:
                logger.warning(f"Presence listener failed: {e}", exc_info=True)

    @property
    def stats(self) -> dict[str, Any]:
        """Get tracker statistics."""
        return {
            "running": self.running,
            "beats": self._beat_count,
            "beat_failures": self._beat_failures,
            "visible": list(self._visible_ids),
        }
