"""Retrospective board operations."""

from __future__ import annotations

from typing import Optional

from ..errors import NotFoundError
from ..model import RetroBoard, RetroCategory, RetroItem, State, new_id, now_ms
from ._common import coerce_enum, get_project, require_name


def add_retro_board(state: State, project_id: str, name: str) -> RetroBoard:
    name = require_name(name)
    project = get_project(state, project_id)
    board = RetroBoard(id=new_id(), name=name, created_at=now_ms())
    project.retro.boards.append(board)
    return board


def delete_retro_board(state: State, project_id: str, board_id: str) -> None:
    project = get_project(state, project_id)
    board = _get_board(state, project_id, board_id)
    project.retro.boards.remove(board)


def add_retro_item(
    state: State,
    project_id: str,
    board_id: str,
    text: str,
    category: RetroCategory | str = RetroCategory.WENT_WELL,
    author: Optional[str] = None,
) -> RetroItem:
    text = require_name(text, "text")
    category = coerce_enum(RetroCategory, category, "category")
    board = _get_board(state, project_id, board_id)
    item = RetroItem(id=new_id(), text=text, category=category, author=author)
    board.items.append(item)
    return item


def vote_retro_item(
    state: State,
    project_id: str,
    board_id: str,
    item_id: str,
    delta: int = 1,
) -> RetroItem:
    """Add (or with a negative delta, remove) votes. Never goes below zero."""
    board = _get_board(state, project_id, board_id)
    for item in board.items:
        if item.id == item_id:
            item.votes = max(0, item.votes + delta)
            return item
    raise NotFoundError("RetroItem", item_id)


def _get_board(state: State, project_id: str, board_id: str) -> RetroBoard:
    project = get_project(state, project_id)
    for board in project.retro.boards:
        if board.id == board_id:
            return board
    raise NotFoundError("RetroBoard", board_id)
