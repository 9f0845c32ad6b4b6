"""
Board operations for boardsync.

Plain functions of the form op(state, ...) that validate first and then
mutate the state in place. Run them through BoardSession.mutate() so the
change is cached and replicated.
"""

from .cards import (
    MoveResult,
    add_card,
    add_dependency,
    delete_card,
    move_card,
    remove_dependency,
    set_parent,
    toggle_card_label,
    update_card,
)
from .labels import (
    add_label,
    add_member,
    delete_label,
    recolor_label,
    remove_member,
    rename_label,
)
from .projects import (
    DEFAULT_COLUMNS,
    add_column,
    add_project,
    delete_column,
    delete_project,
    move_column,
    rename_column,
    rename_project,
    set_active_project,
    set_view,
    set_wip_limit,
)
from .retro import (
    add_retro_board,
    add_retro_item,
    delete_retro_board,
    vote_retro_item,
)

__all__ = [
    # Projects and columns
    "DEFAULT_COLUMNS",
    "add_project",
    "rename_project",
    "delete_project",
    "set_active_project",
    "set_view",
    "add_column",
    "rename_column",
    "set_wip_limit",
    "move_column",
    "delete_column",
    # Cards
    "MoveResult",
    "add_card",
    "update_card",
    "move_card",
    "delete_card",
    "add_dependency",
    "remove_dependency",
    "set_parent",
    "toggle_card_label",
    # Labels and members
    "add_label",
    "rename_label",
    "recolor_label",
    "delete_label",
    "add_member",
    "remove_member",
    # Retro
    "add_retro_board",
    "delete_retro_board",
    "add_retro_item",
    "vote_retro_item",
]
