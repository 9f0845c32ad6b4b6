"""
Local durable cache for the state document.

Provides the LocalCache protocol and two implementations:
- SqliteLocalCache (on-disk, default)
- MemoryLocalCache (tests)
"""

from .cache import DEFAULT_KEY, LocalCache, MemoryLocalCache, SqliteLocalCache

__all__ = [
    "DEFAULT_KEY",
    "LocalCache",
    "SqliteLocalCache",
    "MemoryLocalCache",
]
