"""
Debounced remote writer for boardsync.

Local mutations arrive in bursts (a drag sequence reorders a column many
times a second). The writer coalesces them: every schedule() re-arms one
quiet-period timer, and only when the timer fires is the latest document
sent to the remote store as a single whole-document replace.

Invariants:
    - At most one timer is armed at any time
    - A fired timer sends the document from the latest schedule() call
    - schedule() never blocks and never raises
    - A failed write is logged and counted; it is not retried and local
      state is not rolled back

How to change safely:
    - Keep the timer injectable (call_later) so tests can drive time
    - Do not add retries here; the next mutation is the retry
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, List, Optional, Set

from ..remote.base import RemoteDocumentStore

logger = logging.getLogger(__name__)

DEFAULT_DELAY = 0.5

CallLater = Callable[[float, Callable[[], None]], Any]


class DebouncedWriter:
    """Coalesces document writes behind a quiet period.

    Attributes:
        remote: Remote document store to write to
        delay: Quiet period in seconds

    Thread safety:
        Not thread-safe. All calls must come from the event loop thread.

    Example:
        >>> writer = DebouncedWriter(remote, delay=0.5)
        >>> writer.schedule(doc_v1)
        >>> writer.schedule(doc_v2)  # doc_v1 is never sent
        >>> await writer.flush()     # sends doc_v2 now
    """

    def __init__(
        self,
        remote: RemoteDocumentStore,
        delay: float = DEFAULT_DELAY,
        call_later: Optional[CallLater] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> None:
        """Initialize the writer.

        Args:
            remote: Remote document store
            delay: Quiet period in seconds
            call_later: Timer primitive (defaults to the running loop's call_later)
            on_error: Called with the exception when a write fails
        """
        self.remote = remote
        self.delay = delay
        self._call_later = call_later
        self._on_error = on_error

        self._handle: Any = None
        self._latest: Optional[Dict[str, Any]] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._scheduled_count = 0
        self._write_count = 0
        self._failure_count = 0
        self._last_error: Optional[str] = None

    @property
    def pending(self) -> bool:
        """Whether a write is armed and has not fired yet."""
        return self._handle is not None

    def schedule(self, doc: Dict[str, Any]) -> None:
        """Arm (or re-arm) the timer with the latest document."""
        self._latest = doc
        self._scheduled_count += 1
        if self._handle is not None:
            self._handle.cancel()
        call_later = self._call_later or asyncio.get_running_loop().call_later
        self._handle = call_later(self.delay, self._fire)

    def cancel(self) -> None:
        """Disarm the timer and drop the pending document."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._latest = None

    async def flush(self) -> None:
        """Send the pending document now and wait for in-flight writes."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
            doc, self._latest = self._latest, None
            if doc is not None:
                await self._write(doc)
        if self._in_flight:
            await asyncio.gather(*self._in_flight, return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        doc, self._latest = self._latest, None
        if doc is None:
            return
        task = asyncio.ensure_future(self._write(doc))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    async def _write(self, doc: Dict[str, Any]) -> None:
        try:
            await self.remote.set(doc)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._failure_count += 1
            self._last_error = str(e)
            logger.error(
                f"Remote write failed: {e}",
                extra={"failures": self._failure_count},
            )
            if self._on_error is not None:
                self._on_error(e)
            return

        self._write_count += 1
        logger.debug("Remote write completed", extra={"writes": self._write_count})

    async def close(self) -> None:
        """Disarm the timer and cancel in-flight writes."""
        self.cancel()
        tasks: List[asyncio.Task] = list(self._in_flight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    @property
    def stats(self) -> Dict[str, Any]:
        """Get writer statistics."""
        return {
            "pending": self.pending,
            "scheduled_count": self._scheduled_count,
            "write_count": self._write_count,
            "failure_count": self._failure_count,
            "last_error": self._last_error,
        }
