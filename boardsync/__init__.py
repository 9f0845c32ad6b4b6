"""
boardsync - local-first state synchronization for shared kanban workspaces.

Each client keeps three copies of one state document consistent:

    ┌──────────────┐  mutate   ┌──────────────┐  schedule  ┌────────────────┐
    │  UI / caller │──────────▶│ BoardSession │───────────▶│ DebouncedWriter│
    └──────────────┘           └──────┬───────┘            └───────┬────────┘
           ▲                          │ write                      │ set()
           │ refresh                  ▼                            ▼
           │                   ┌──────────────┐            ┌────────────────┐
           └───────────────────│  LocalCache  │            │  Remote store  │
                               └──────────────┘            └───────┬────────┘
                                      ▲                            │ snapshots
                                      │ replace_from_remote        ▼
                                      └────────────────────┌────────────────┐
                                                           │RemoteReconciler│
                                                           └────────────────┘

Presence runs beside this on its own collection (heartbeat + freshness window).

Invariants:
    - Conflicts resolve last-write-wins on the whole document
    - A client's own write echoed back is never applied
    - Every document entering the process passes through schema.migrate
    - The card dependency graph is acyclic before and after every mutation

How to change safely:
    - New document fields need a migrate() step and a default
    - Keep mutations and remote callbacks synchronous on the event loop
"""

from ._version import __version__

__all__ = ["__version__"]
