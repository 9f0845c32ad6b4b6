"""
State document model for boardsync.

One State document holds every project of a workspace. It is the unit of
local caching, remote replication and export/import.
"""

from .types import (
    BACKLOG,
    SCHEMA_VERSION,
    Card,
    CardType,
    Column,
    Label,
    LabelColor,
    Priority,
    Project,
    RetroBoard,
    RetroCategory,
    RetroItem,
    RetroState,
    State,
    ViewMode,
    new_id,
    now_ms,
)

__all__ = [
    "BACKLOG",
    "SCHEMA_VERSION",
    "State",
    "Project",
    "Column",
    "Label",
    "Card",
    "RetroState",
    "RetroBoard",
    "RetroItem",
    "Priority",
    "ViewMode",
    "LabelColor",
    "CardType",
    "RetroCategory",
    "new_id",
    "now_ms",
]
