"""
In-memory remote store for testing and local development.

One InMemoryRemoteBackend plays the role of the shared remote service; each
simulated client talks to it through its own InMemoryRemoteClient, which
implements both RemoteDocumentStore and PresenceStore.

Delivery model (mirrors latency-compensated document stores):
    - The writing client's subscribers see its write immediately with
      has_pending_writes=True
    - Every other client's subscribers see it with has_pending_writes=False
    - The write is acknowledged on a later loop iteration (ack_delay)

Invariants:
    - All data is lost on process exit
    - Writes are totally ordered per workspace (version counter)
    - Callbacks are scheduled with loop.call_soon, never run inline

How to change safely:
    - This is test-only code, changes don't affect production transports
    - Keep the interface compatible with the protocols in base.py
"""

from __future__ import annotations

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..errors import RemoteConnectionError, RemoteWriteError
from .base import (
    CallbackSubscription,
    DocumentSnapshot,
    ErrorCallback,
    PresenceCallback,
    PresenceRecord,
    SnapshotCallback,
    Subscription,
)

logger = logging.getLogger(__name__)


@dataclass
class _DocListener:
    client: InMemoryRemoteClient
    on_snapshot: SnapshotCallback
    on_error: Optional[ErrorCallback]
    handle: CallbackSubscription


@dataclass
class _PresenceListener:
    scope: str
    on_records: PresenceCallback
    on_error: Optional[ErrorCallback]
    handle: CallbackSubscription


@dataclass
class _Workspace:
    doc: Optional[Dict[str, Any]] = None
    version: int = 0
    listeners: List[_DocListener] = field(default_factory=list)


class InMemoryRemoteBackend:
    """Shared in-process remote service.

    Attributes:
        require_credential: Reject clients that present no bearer token
        ack_delay: Seconds before a write is acknowledged

    Example:
        >>> backend = InMemoryRemoteBackend()
        >>> alice = backend.client("alice", workspace_id="w1")
        >>> bob = backend.client("bob", workspace_id="w1")
        >>> await alice.set({"projects": []})
    """

    def __init__(self, require_credential: bool = False, ack_delay: float = 0.0) -> None:
        self.require_credential = require_credential
        self.ack_delay = ack_delay
        self._workspaces: Dict[str, _Workspace] = {}
        self._presence: Dict[str, PresenceRecord] = {}
        self._presence_listeners: List[_PresenceListener] = []
        self._fail_writes = 0
        self._online = True
        self.writes: List[Tuple[str, Dict[str, Any]]] = []

    def client(
        self,
        client_id: str,
        workspace_id: str = "default",
        credential: Optional[str] = None,
    ) -> InMemoryRemoteClient:
        """Create a client bound to one workspace document."""
        return InMemoryRemoteClient(self, client_id, workspace_id, credential)

    def _workspace(self, workspace_id: str) -> _Workspace:
        if workspace_id not in self._workspaces:
            self._workspaces[workspace_id] = _Workspace()
        return self._workspaces[workspace_id]

    # Testing helpers

    def fail_next_writes(self, count: int = 1) -> None:
        """Make the next `count` document writes raise RemoteWriteError."""
        self._fail_writes = count

    def set_online(self, online: bool) -> None:
        """Simulate losing or regaining connectivity."""
        self._online = online

    def inject_error(self, exc: Exception, workspace_id: str = "default") -> None:
        """Deliver an error to every document subscription of a workspace."""
        loop = asyncio.get_running_loop()
        for listener in list(self._workspace(workspace_id).listeners):
            if listener.on_error is not None:
                loop.call_soon(_deliver_error, listener.handle, listener.on_error, exc)

    def document(self, workspace_id: str = "default") -> Optional[Dict[str, Any]]:
        """Current stored document (testing helper)."""
        doc = self._workspace(workspace_id).doc
        return copy.deepcopy(doc) if doc is not None else None

    def presence_records(self) -> List[PresenceRecord]:
        return list(self._presence.values())

    def write_count(self, workspace_id: Optional[str] = None) -> int:
        if workspace_id is None:
            return len(self.writes)
        return sum(1 for ws, _ in self.writes if ws == workspace_id)


class InMemoryRemoteClient:
    """One client's view of the in-memory backend."""

    def __init__(
        self,
        backend: InMemoryRemoteBackend,
        client_id: str,
        workspace_id: str,
        credential: Optional[str] = None,
    ) -> None:
        self.backend = backend
        self.client_id = client_id
        self.workspace_id = workspace_id
        self.credential = credential
        self._pending = 0

    @property
    def has_pending_writes(self) -> bool:
        return self._pending > 0

    def _check_connection(self) -> None:
        if not self.backend._online:
            raise RemoteConnectionError("Remote store unreachable")
        if self.backend.require_credential and not self.credential:
            raise RemoteConnectionError("Remote store requires a bearer credential")

    # RemoteDocumentStore

    async def get(self) -> Optional[Dict[str, Any]]:
        self._check_connection()
        return self.backend.document(self.workspace_id)

    async def set(self, doc: Dict[str, Any]) -> None:
        self._check_connection()
        if self.backend._fail_writes > 0:
            self.backend._fail_writes -= 1
            raise RemoteWriteError("Write rejected by remote store")

        ws = self.backend._workspace(self.workspace_id)
        ws.doc = copy.deepcopy(doc)
        ws.version += 1
        self.backend.writes.append((self.workspace_id, copy.deepcopy(doc)))
        self._pending += 1

        loop = asyncio.get_running_loop()
        for listener in list(ws.listeners):
            snapshot = DocumentSnapshot(
                data=copy.deepcopy(ws.doc),
                has_pending_writes=listener.client is self,
                version=ws.version,
            )
            loop.call_soon(_deliver, listener.handle, listener.on_snapshot, snapshot)
        loop.call_later(self.backend.ack_delay, self._ack)

        logger.debug(
            "Document written to in-memory remote",
            extra={"client_id": self.client_id, "workspace_id": self.workspace_id, "version": ws.version},
        )

    def _ack(self) -> None:
        self._pending = max(0, self._pending - 1)

    def subscribe(
        self,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        ws = self.backend._workspace(self.workspace_id)
        listener: _DocListener

        def release() -> None:
            if listener in ws.listeners:
                ws.listeners.remove(listener)

        handle = CallbackSubscription(release)
        listener = _DocListener(self, on_snapshot, on_error, handle)
        ws.listeners.append(listener)

        initial = DocumentSnapshot(
            data=copy.deepcopy(ws.doc) if ws.doc is not None else None,
            has_pending_writes=self.has_pending_writes,
            version=ws.version,
        )
        asyncio.get_running_loop().call_soon(_deliver, handle, on_snapshot, initial)
        return handle

    # PresenceStore

    async def upsert(self, record: PresenceRecord) -> None:
        self._check_connection()
        self.backend._presence[record.identity] = copy.deepcopy(record)
        self._notify_presence(record.scope)

    async def delete(self, identity: str) -> None:
        self._check_connection()
        record = self.backend._presence.pop(identity, None)
        if record is not None:
            self._notify_presence(record.scope)

    def subscribe_presence(
        self,
        scope: str,
        on_records: PresenceCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        listeners = self.backend._presence_listeners
        listener: _PresenceListener

        def release() -> None:
            if listener in listeners:
                listeners.remove(listener)

        handle = CallbackSubscription(release)
        listener = _PresenceListener(scope, on_records, on_error, handle)
        listeners.append(listener)
        asyncio.get_running_loop().call_soon(
            _deliver, handle, on_records, self._records_in(scope)
        )
        return handle

    def _records_in(self, scope: str) -> List[PresenceRecord]:
        return [copy.deepcopy(r) for r in self.backend._presence.values() if r.scope == scope]

    def _notify_presence(self, scope: str) -> None:
        loop = asyncio.get_running_loop()
        for listener in list(self.backend._presence_listeners):
            if listener.scope == scope:
                loop.call_soon(_deliver, listener.handle, listener.on_records, self._records_in(scope))

    def presence(self) -> InMemoryPresenceView:
        """PresenceStore view of this client."""
        return InMemoryPresenceView(self)


class InMemoryPresenceView:
    """Adapts InMemoryRemoteClient to the PresenceStore protocol."""

    def __init__(self, client: InMemoryRemoteClient) -> None:
        self._client = client

    async def upsert(self, record: PresenceRecord) -> None:
        await self._client.upsert(record)

    async def delete(self, identity: str) -> None:
        await self._client.delete(identity)

    def subscribe(
        self,
        scope: str,
        on_records: PresenceCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        return self._client.subscribe_presence(scope, on_records, on_error)


def _deliver(handle: CallbackSubscription, callback: Any, payload: Any) -> None:
    # Cancelled between scheduling and delivery.
    if handle.active:
        callback(payload)


def _deliver_error(handle: CallbackSubscription, callback: ErrorCallback, exc: Exception) -> None:
    if handle.active:
        callback(exc)
