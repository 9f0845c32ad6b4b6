"""
Remote store abstraction for boardsync.

This package defines the protocols the sync core consumes:
- RemoteDocumentStore: the shared state document (get / set / subscribe)
- PresenceStore: per-client liveness records

and an in-memory backend that implements both for tests and local runs.

Invariants:
    - The remote document is a single mutable cell; the last set() wins
    - Subscriptions return a cancellation handle
"""

from .base import (
    CallbackSubscription,
    DocumentSnapshot,
    PresenceRecord,
    PresenceStore,
    RemoteDocumentStore,
    Subscription,
)
from .memory import InMemoryPresenceView, InMemoryRemoteBackend, InMemoryRemoteClient

__all__ = [
    # Protocols and types
    "RemoteDocumentStore",
    "PresenceStore",
    "Subscription",
    "CallbackSubscription",
    "DocumentSnapshot",
    "PresenceRecord",
    # Implementations
    "InMemoryRemoteBackend",
    "InMemoryRemoteClient",
    "InMemoryPresenceView",
]
