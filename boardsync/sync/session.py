"""
Board session: the single owner of the in-memory state.

Every local mutation and every adopted remote document goes through one
BoardSession. It writes the local cache, schedules the remote write, tracks
whether this client is ahead of the remote, and tells listeners (the UI) to
re-render.

Invariants:
    - Exactly one State object is current; it is only replaced here
    - A rejected mutation leaves the state, cache and writer untouched
    - The cache is written synchronously before the remote write is scheduled
    - Listener failures are logged and never stop other listeners

How to change safely:
    - Keep mutate() and replace_from_remote() synchronous so they can never
      interleave on the event loop
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, List, Optional, TYPE_CHECKING

from ..errors import BoardSyncError
from ..local.cache import LocalCache
from ..model import State
from ..schema import export_state, import_state

if TYPE_CHECKING:
    from .writer import DebouncedWriter

logger = logging.getLogger(__name__)

StateListener = Callable[[State], None]


class SyncStatus(str, Enum):
    """This client's view of the shared document."""

    SYNCED = "synced"
    LOCAL_AHEAD = "local_ahead"


class BoardSession:
    """Owned state handle for one client.

    Attributes:
        cache: Local cache written on every change
        writer: Debounced remote writer scheduled on every local change
        status: SYNCED or LOCAL_AHEAD

    Example:
        >>> session = BoardSession(cache=cache, writer=writer)
        >>> project = session.mutate(ops.add_project, "Roadmap")
        >>> session.mutate(ops.add_card, project.id, "Ship it")
    """

    def __init__(
        self,
        state: Optional[State] = None,
        cache: Optional[LocalCache] = None,
        writer: Optional["DebouncedWriter"] = None,
    ) -> None:
        self._state = state or State()
        self.cache = cache
        self.writer = writer
        self.status = SyncStatus.SYNCED
        self._listeners: List[StateListener] = []
        self._mutation_count = 0
        self._rejected_count = 0
        self._remote_count = 0

    @property
    def state(self) -> State:
        return self._state

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Register a refresh listener. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self, state: State) -> None:
        """Adopt a state without caching or replicating it (startup from cache)."""
        self._state = state
        self._emit()

    def mutate(self, op: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a board operation against the state and propagate it.

        Args:
            op: An operation from boardsync.ops taking the state first
            *args, **kwargs: Operation arguments

        Returns:
            Whatever the operation returns

        Raises:
            ValidationError, NotFoundError: The operation was rejected;
                nothing was changed
        """
        try:
            result = op(self._state, *args, **kwargs)
        except BoardSyncError as e:
            self._rejected_count += 1
            logger.info(
                f"Mutation rejected: {e.message}",
                extra={"op": getattr(op, "__name__", repr(op)), "code": e.code},
            )
            raise

        self._mutation_count += 1
        self._commit()
        return result

    def replace_from_remote(self, state: State) -> None:
        """Adopt a document that came from another client."""
        self._state = state
        self._remote_count += 1
        if self.cache is not None:
            self.cache.write(state.to_dict())
        self.status = SyncStatus.SYNCED
        self._emit()

    def export(self) -> str:
        """Serialize the current state as a transferable blob."""
        return export_state(self._state)

    def import_(self, blob: Any) -> State:
        """Replace the state with an imported blob and propagate it."""
        self._state = import_state(blob)
        self._commit()
        return self._state

    def _commit(self) -> None:
        doc = self._state.to_dict()
        if self.cache is not None:
            self.cache.write(doc)
        if self.writer is not None:
            self.writer.schedule(doc)
        self.status = SyncStatus.LOCAL_AHEAD
        self._emit()

    def _emit(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self._state)
            except Exception as e:
                logger.warning(f"State listener failed: {e}", exc_info=True)

    @property
    def stats(self) -> dict[str, Any]:
        """Get session statistics."""
        return {
            "status": self.status.value,
            "mutations": self._mutation_count,
            "rejected": self._rejected_count,
            "remote_replacements": self._remote_count,
        }
