"""
Replication core for boardsync.

- BoardSession: owns the in-memory state, caches and schedules writes
- DebouncedWriter: coalesces local changes into one remote write
- RemoteReconciler: adopts remote changes, discards self-echoes
"""

from .reconciler import RemoteReconciler
from .session import BoardSession, SyncStatus
from .writer import DEFAULT_DELAY, DebouncedWriter

__all__ = [
    "BoardSession",
    "SyncStatus",
    "DebouncedWriter",
    "DEFAULT_DELAY",
    "RemoteReconciler",
]
