"""
Remote change reconciler for boardsync.

The reconciler keeps a standing subscription to the shared document and
decides what each notification means for this client:

    has_pending_writes=True   -> self-echo of a write we issued; discard
    document missing          -> remote is empty; seed it with local state
    otherwise                 -> another client wrote; migrate and adopt

Per-client state machine:

    LOCAL_AHEAD --echo--> LOCAL_AHEAD
    LOCAL_AHEAD --remote--> SYNCED
    SYNCED --local mutation--> LOCAL_AHEAD

There is no conflict state. Concurrent writers race and the remote store's
order decides the winner (last write wins).

Invariants:
    - An echo never replaces in-memory state, whatever it contains
    - A non-echo always replaces in-memory state (after migration)
    - Subscription errors are logged; the subscription is not torn down
    - Adopting a remote document drops any armed local write, so a stale
      document is never written over a newer one

How to change safely:
    - Keep _on_snapshot synchronous; it must not interleave with mutations
    - Test echo suppression with documents that differ from local state
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..model import State
from ..remote.base import DocumentSnapshot, RemoteDocumentStore, Subscription
from ..schema import migrate
from .session import BoardSession
from .writer import DebouncedWriter

logger = logging.getLogger(__name__)


class RemoteReconciler:
    """Applies remote document changes to a BoardSession.

    Thread safety:
        Designed to run on a single event loop; callbacks are dispatched
        by the store one at a time.

    Example:
        >>> reconciler = RemoteReconciler(remote, session, writer=writer)
        >>> reconciler.start()
        >>> ...
        >>> reconciler.stop()
    """

    def __init__(
        self,
        remote: RemoteDocumentStore,
        session: BoardSession,
        writer: Optional[DebouncedWriter] = None,
        migrate_fn: Callable[[Any], State] = migrate,
    ) -> None:
        """Initialize the reconciler.

        Args:
            remote: Remote document store to subscribe to
            session: Session whose state is replaced on remote changes
            writer: Writer used to seed an empty remote document
            migrate_fn: Document migrator
        """
        self.remote = remote
        self.session = session
        self.writer = writer
        self.migrate_fn = migrate_fn

        self._subscription: Optional[Subscription] = None
        self._received_count = 0
        self._echo_count = 0
        self._applied_count = 0
        self._error_count = 0
        self._last_version: Optional[int] = None

    @property
    def running(self) -> bool:
        return self._subscription is not None and self._subscription.active

    def start(self) -> None:
        """Open the standing subscription."""
        if self.running:
            logger.warning("Reconciler already running")
            return
        self._subscription = self.remote.subscribe(self._on_snapshot, self._on_error)
        logger.info("Reconciler subscribed to remote document")

    def stop(self) -> None:
        """Cancel the subscription."""
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
            logger.info("Reconciler stopped")

    def _on_snapshot(self, snapshot: DocumentSnapshot) -> None:
        self._received_count += 1

        if snapshot.has_pending_writes:
            self._echo_count += 1
            logger.debug("Discarded self-echo", extra={"version": snapshot.version})
            return

        if not snapshot.exists:
            logger.info("Remote document missing, seeding from local state")
            if self.writer is not None:
                self.writer.schedule(self.session.state.to_dict())
            return

        if self.writer is not None and self.writer.pending:
            # The armed document predates the one being adopted.
            logger.warning(
                "Unsent local changes superseded by remote document",
                extra={"version": snapshot.version},
            )
            self.writer.cancel()

        state = self.migrate_fn(snapshot.data)
        self.session.replace_from_remote(state)
        self._applied_count += 1
        self._last_version = snapshot.version
        logger.debug(
            "Adopted remote document",
            extra={"version": snapshot.version, "projects": len(state.projects)},
        )

    def _on_error(self, exc: Exception) -> None:
        self._error_count += 1
        logger.warning(
            f"Remote subscription error: {exc}",
            extra={"errors": self._error_count},
        )

    @property
    def stats(self) -> dict[str, Any]:
        """Get reconciler statistics."""
        return {
            "running": self.running,
            "received_count": self._received_count,
            "echo_count": self._echo_count,
            "applied_count": self._applied_count,
            "error_count": self._error_count,
            "last_version": self._last_version,
        }
