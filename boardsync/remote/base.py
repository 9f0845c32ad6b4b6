"""
Remote store protocols and types for boardsync.

The remote side is two collaborators:
- RemoteDocumentStore: one shared state document per workspace, replaced
  whole on every write, with a change subscription
- PresenceStore: small per-client liveness records, queryable by scope

Both are consumed through these protocols; the concrete transport client is
supplied by the application (see memory.py for the in-process backend).

Invariants:
    - set() replaces the whole document; the store orders concurrent
      replaces, the last one wins
    - Subscription callbacks run on the event loop, one at a time, and
      never overlap a mutation
    - A snapshot carries has_pending_writes=True while it reflects a write
      from this same client that the store has not acknowledged yet

How to change safely:
    - Protocol changes require updating every implementation
    - Transports that call back from another thread must hop onto the
      loop with loop.call_soon_threadsafe before invoking callbacks
"""

from __future__ import annotations

from abc import abstractmethod
from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    List,
    Optional,
    Protocol,
    runtime_checkable,
)
import logging

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSnapshot:
    """One notification from the document subscription.

    Attributes:
        data: The document, or None if it does not exist remotely
        has_pending_writes: The snapshot reflects this client's own
            unacknowledged write (a self-echo)
        version: Store-assigned sequence number of the write
    """

    data: Optional[Dict[str, Any]]
    has_pending_writes: bool = False
    version: int = 0

    @property
    def exists(self) -> bool:
        return self.data is not None


@dataclass
class PresenceRecord:
    """A liveness record for one client.

    Attributes:
        identity: Client identity (record key)
        scope: What the client is looking at (e.g. workspace or project id)
        last_seen: Unix timestamp in seconds of the latest heartbeat
        display_name: Optional human-readable name
    """

    identity: str
    scope: str
    last_seen: float
    display_name: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        out = dict(self.extra)
        out.update(
            {
                "identity": self.identity,
                "scope": self.scope,
                "last_seen": self.last_seen,
                "display_name": self.display_name,
            }
        )
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> PresenceRecord:
        owned = {"identity", "scope", "last_seen", "display_name"}
        return cls(
            identity=data["identity"],
            scope=data["scope"],
            last_seen=float(data["last_seen"]),
            display_name=data.get("display_name"),
            extra={k: v for k, v in data.items() if k not in owned},
        )


SnapshotCallback = Callable[[DocumentSnapshot], None]
PresenceCallback = Callable[[List[PresenceRecord]], None]
ErrorCallback = Callable[[Exception], None]


@runtime_checkable
class Subscription(Protocol):
    """Cancellation handle returned by every subscribe()."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivering notifications. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def active(self) -> bool:
        ...


class CallbackSubscription:
    """Subscription handle that runs a release hook once on cancel()."""

    def __init__(self, on_cancel: Optional[Callable[[], None]] = None) -> None:
        self._on_cancel = on_cancel
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_cancel is not None:
            self._on_cancel()


@runtime_checkable
class RemoteDocumentStore(Protocol):
    """Protocol for the shared remote document.

    Example:
        >>> sub = store.subscribe(on_snapshot, on_error)
        >>> await store.set(state.to_dict())
        >>> sub.cancel()
    """

    @abstractmethod
    async def get(self) -> Optional[Dict[str, Any]]:
        """Fetch the current document (None if it does not exist).

        Raises:
            RemoteConnectionError: If the store is unreachable
        """
        ...

    @abstractmethod
    async def set(self, doc: Dict[str, Any]) -> None:
        """Replace the whole document.

        Raises:
            RemoteConnectionError: If the store is unreachable
            RemoteWriteError: If the write is rejected
        """
        ...

    @abstractmethod
    def subscribe(
        self,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Subscribe to document changes.

        The first notification carries the current document. Errors are
        passed to on_error; the subscription stays registered and the
        transport is responsible for reconnecting.
        """
        ...

    @property
    @abstractmethod
    def has_pending_writes(self) -> bool:
        """Best-effort flag: this client has writes the store has not acknowledged."""
        ...


@runtime_checkable
class PresenceStore(Protocol):
    """Protocol for the presence collection."""

    @abstractmethod
    async def upsert(self, record: PresenceRecord) -> None:
        """Create or replace the record keyed by record.identity."""
        ...

    @abstractmethod
    async def delete(self, identity: str) -> None:
        """Delete a record. Deleting a missing record is not an error."""
        ...

    @abstractmethod
    def subscribe(
        self,
        scope: str,
        on_records: PresenceCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Subscribe to all records in a scope (stale ones included)."""
        ...
