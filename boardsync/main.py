"""
boardsync client orchestrator.

Wires one client's components together and owns their lifecycle:
- Local cache (offline fallback and fast startup)
- Board session (in-memory state, mutation entry point)
- Debounced writer (local -> remote)
- Reconciler (remote -> local)
- Presence tracker (optional)

Usage:
    settings = SyncSettings()
    setup_logging(settings)
    relay = parse_relay_message(message_from_parent_frame)
    remote = make_transport(bearer_token=relay.bearer_token if relay else None)
    async with SyncClient(settings, remote, presence_store, identity=relay) as client:
        client.session.mutate(ops.add_project, "Roadmap")

Invariants:
    - The cached document is loaded before the remote subscription opens
    - stop() always cancels presence and the subscription, even if the
      final flush fails
    - A start() that fails part way releases whatever it had opened
    - No call here waits on the network except flush() during stop()

How to change safely:
    - Add new components with enable/disable settings
    - Test shutdown sequence with a failing remote
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import json_log_formatter

from .config import LogFormat, SyncSettings
from .identity import IdentityRelayMessage, anonymous_identity
from .local import LocalCache, SqliteLocalCache
from .presence import PresenceTracker
from .remote import InMemoryRemoteBackend, PresenceStore, RemoteDocumentStore
from .schema import migrate
from .sync import BoardSession, DebouncedWriter, RemoteReconciler

logger = logging.getLogger(__name__)


def setup_logging(settings: SyncSettings) -> None:
    """Configure logging based on settings.

    Args:
        settings: Client settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == LogFormat.JSON:
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]


def resolve_client_id(settings: SyncSettings, identity: Optional[IdentityRelayMessage] = None) -> str:
    """Explicit setting, else the relayed identity, else an anonymous id."""
    if settings.client_id:
        return settings.client_id
    if identity is not None:
        return identity.client_identity()
    return anonymous_identity()


class SyncClient:
    """One client of a shared workspace.

    Attributes:
        settings: Client settings
        client_id: Identity used for presence
        cache: Local cache
        session: Board session (use session.mutate to change the board)
        writer: Debounced remote writer
        reconciler: Remote change reconciler
        presence: Presence tracker, or None if disabled

    Example:
        >>> client = SyncClient(settings, remote)
        >>> await client.start()
        >>> client.session.mutate(ops.add_project, "Roadmap")
        >>> await client.stop()
    """

    def __init__(
        self,
        settings: Optional[SyncSettings] = None,
        remote: Optional[RemoteDocumentStore] = None,
        presence_store: Optional[PresenceStore] = None,
        cache: Optional[LocalCache] = None,
        identity: Optional[IdentityRelayMessage] = None,
    ) -> None:
        """Initialize the client.

        Args:
            settings: Client settings (loaded from env if not provided)
            remote: Remote document store, already carrying the bearer credential
            presence_store: Presence collection (presence is off without one)
            cache: Local cache (SQLite at settings.cache_path if not provided)
            identity: Relayed identity, used for client id and display name
        """
        if remote is None:
            raise ValueError("A remote document store is required")

        self.settings = settings or SyncSettings()
        self.identity = identity
        self.client_id = resolve_client_id(self.settings, identity)
        self.cache = cache or SqliteLocalCache(
            Path(self.settings.cache_path).expanduser(),
            key=self.settings.workspace_id,
        )
        self.remote = remote

        self.writer = DebouncedWriter(remote, delay=self.settings.debounce_seconds)
        self.session = BoardSession(cache=self.cache, writer=self.writer)
        self.reconciler = RemoteReconciler(remote, self.session, writer=self.writer)

        self.presence: Optional[PresenceTracker] = None
        if presence_store is not None and self.settings.presence_enabled:
            self.presence = PresenceTracker(
                presence_store,
                identity=self.client_id,
                scope=self.settings.workspace_id,
                heartbeat_interval=self.settings.heartbeat_seconds,
                freshness_window=self.settings.presence_window_seconds,
                display_name=identity.display_name if identity else None,
            )

        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Load the cached document and start replication."""
        if self._running:
            logger.warning("Client already running")
            return

        logger.info(
            "Starting sync client",
            extra={"client_id": self.client_id, "workspace_id": self.settings.workspace_id},
        )
        self.settings.log_config()

        cached = self.cache.read()
        if cached is not None:
            self.session.load(migrate(cached))
            logger.info("Loaded state from local cache")

        self.reconciler.start()
        try:
            if self.presence is not None:
                await self.presence.start()
        except BaseException:
            logger.error("Sync client failed to start", extra={"client_id": self.client_id})
            await self._release()
            raise
        self._running = True

    async def stop(self) -> None:
        """Flush pending writes (best effort) and release everything."""
        if not self._running:
            return

        logger.info("Stopping sync client", extra={"client_id": self.client_id})
        try:
            await self.writer.flush()
        finally:
            await self._release()
        logger.info("Sync client stopped", extra={"client_id": self.client_id})

    async def _release(self) -> None:
        try:
            if self.presence is not None:
                await self.presence.stop()
        finally:
            self.reconciler.stop()
            await self.writer.close()
            self._running = False

    async def __aenter__(self) -> SyncClient:
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()


def connect_in_memory(
    backend: InMemoryRemoteBackend,
    settings: Optional[SyncSettings] = None,
    identity: Optional[IdentityRelayMessage] = None,
    cache: Optional[LocalCache] = None,
) -> SyncClient:
    """Build a SyncClient against an in-memory backend (tests, local runs)."""
    settings = settings or SyncSettings()
    client_id = resolve_client_id(settings, identity)
    remote = backend.client(
        client_id,
        workspace_id=settings.workspace_id,
        credential=identity.bearer_token if identity else None,
    )
    settings = settings.model_copy(update={"client_id": client_id})
    return SyncClient(
        settings,
        remote=remote,
        presence_store=remote.presence(),
        cache=cache,
        identity=identity,
    )
