"""
Ephemeral multi-client presence (heartbeat + freshness window).
"""

from .tracker import DEFAULT_HEARTBEAT, DEFAULT_WINDOW, PresenceTracker, visible_records

__all__ = [
    "PresenceTracker",
    "visible_records",
    "DEFAULT_HEARTBEAT",
    "DEFAULT_WINDOW",
]
