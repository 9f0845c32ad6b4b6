"""
State document migration for boardsync.

Every document that enters the process (local cache, remote snapshot,
import blob) passes through migrate() before it becomes the in-memory
state. The migrator upgrades older shapes and repairs anything that would
violate the model invariants.

Version history:
    1: retro stored as a bare list of boards, card dependencies under "deps",
       members and assignee optional
    2: current shape (see model.types)

Invariants:
    - migrate() never raises, whatever it is given
    - migrate(migrate(x)) == migrate(x)
    - The output is deterministic for a given input (no generated ids or clocks)
    - Keys the model does not own are carried through untouched

How to change safely:
    - Bump SCHEMA_VERSION and add a legacy branch, never drop one
    - Every repair must be a fixed point (applying it twice changes nothing)
    - Keep this module free of I/O
"""

from __future__ import annotations

import copy
import json
import math
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Type, TypeVar

from ..graph import would_create_cycle
from ..model import (
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
)

E = TypeVar("E", bound=Enum)

# Larger values (including inf) fall back to the default.
_INT_LIMIT = 2**63 - 1

_STATE_KEYS = {"schema_version", "projects", "active_project_id", "view"}
_PROJECT_KEYS = {
    "id", "name", "columns", "labels", "members", "cards", "retro", "created_at",
}
_COLUMN_KEYS = {"id", "name", "wip_limit"}
_LABEL_KEYS = {"name", "color"}
_CARD_KEYS = {
    "id", "title", "description", "notes", "priority", "labels", "dependencies",
    "deps", "assignee", "column_id", "order", "created_at", "card_type",
    "estimate", "parent_id",
}
_RETRO_KEYS = {"boards"}
_RETRO_BOARD_KEYS = {"id", "name", "items", "created_at"}
_RETRO_ITEM_KEYS = {"id", "text", "category", "author", "votes"}


def migrate(raw: Any) -> State:
    """Upgrade a raw document to the current State shape.

    Args:
        raw: A dict, JSON text/bytes, None, or anything else

    Returns:
        A State satisfying all model invariants. Malformed input
        degrades to defaults.
    """
    data = _as_dict(_decode(raw))

    projects = [
        _project(p, i) for i, p in enumerate(_as_list(data.get("projects")))
        if isinstance(p, dict)
    ]
    projects = _unique_by_id(projects)

    active = data.get("active_project_id")
    if not isinstance(active, str) or not any(p.id == active for p in projects):
        active = None

    return State(
        projects=projects,
        active_project_id=active,
        view=_enum(ViewMode, data.get("view"), ViewMode.BOARD),
        schema_version=SCHEMA_VERSION,
        extra=_extra(data, _STATE_KEYS),
    )


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------


def _project(data: Dict[str, Any], index: int) -> Project:
    columns = _unique_by_id(
        [_column(c, i) for i, c in enumerate(_as_list(data.get("columns"))) if isinstance(c, dict)]
    )

    labels: List[Label] = []
    seen_labels: Set[str] = set()
    for item in _as_list(data.get("labels")):
        label = _label(item)
        if label is not None and label.name not in seen_labels:
            seen_labels.add(label.name)
            labels.append(label)

    members: List[str] = []
    for item in _as_list(data.get("members")):
        name = item.get("name") if isinstance(item, dict) else item
        if isinstance(name, str) and name and name not in members:
            members.append(name)

    cards = _unique_by_id(
        [_card(c, i) for i, c in enumerate(_as_list(data.get("cards"))) if isinstance(c, dict)]
    )
    _repair_card_references(cards, {c.id for c in columns})

    return Project(
        id=_str(data.get("id")) or f"project-{index}",
        name=_str(data.get("name")) or "Untitled",
        columns=columns,
        labels=labels,
        members=members,
        cards=cards,
        retro=_retro(data.get("retro")),
        created_at=_int(data.get("created_at"), 0),
        extra=_extra(data, _PROJECT_KEYS),
    )


def _column(data: Dict[str, Any], index: int) -> Column:
    return Column(
        id=_str(data.get("id")) or f"column-{index}",
        name=_str(data.get("name")) or "Untitled",
        wip_limit=max(0, _int(data.get("wip_limit"), 0)),
        extra=_extra(data, _COLUMN_KEYS),
    )


def _label(data: Any) -> Optional[Label]:
    if isinstance(data, str):
        return Label(name=data) if data else None
    if not isinstance(data, dict):
        return None
    name = _str(data.get("name"))
    if not name:
        return None
    return Label(
        name=name,
        color=_enum(LabelColor, data.get("color"), LabelColor.GRAY),
        extra=_extra(data, _LABEL_KEYS),
    )


def _card(data: Dict[str, Any], index: int) -> Card:
    deps = data.get("dependencies")
    if deps is None:
        deps = data.get("deps")

    card_type = data.get("card_type")
    estimate = data.get("estimate")

    return Card(
        id=_str(data.get("id")) or f"card-{index}",
        title=_str(data.get("title")),
        description=_str(data.get("description")),
        notes=_str(data.get("notes")),
        priority=_enum(Priority, data.get("priority"), Priority.MEDIUM),
        labels=_unique_strings(data.get("labels")),
        dependencies=_unique_strings(deps),
        assignee=_str(data.get("assignee")) or None,
        column_id=_str(data.get("column_id")) or BACKLOG,
        order=_int(data.get("order"), index),
        created_at=_int(data.get("created_at"), 0),
        card_type=_enum(CardType, card_type, None) if card_type is not None else None,
        estimate=_float(estimate),
        parent_id=_str(data.get("parent_id")) or None,
        extra=_extra(data, _CARD_KEYS),
    )


def _repair_card_references(cards: List[Card], column_ids: Set[str]) -> None:
    """Drop dangling or cyclic references, in document order."""
    card_ids = {c.id for c in cards}

    graph: Dict[str, List[str]] = {c.id: [] for c in cards}
    for card in cards:
        if card.column_id != BACKLOG and card.column_id not in column_ids:
            card.column_id = BACKLOG
        kept = []
        for dep in card.dependencies:
            if dep not in card_ids or would_create_cycle(graph, card.id, dep):
                continue
            graph[card.id].append(dep)
            kept.append(dep)
        card.dependencies = kept

    parents: Dict[str, List[str]] = {c.id: [] for c in cards}
    for card in cards:
        parent = card.parent_id
        if parent is None:
            continue
        if parent not in card_ids or would_create_cycle(parents, card.id, parent):
            card.parent_id = None
        else:
            parents[card.id].append(parent)


def _retro(data: Any) -> RetroState:
    if isinstance(data, list):
        # v1: bare list of boards
        data = {"boards": data}
    data = _as_dict(data)
    boards = _unique_by_id(
        [_retro_board(b, i) for i, b in enumerate(_as_list(data.get("boards"))) if isinstance(b, dict)]
    )
    return RetroState(boards=boards, extra=_extra(data, _RETRO_KEYS))


def _retro_board(data: Dict[str, Any], index: int) -> RetroBoard:
    items = _unique_by_id(
        [_retro_item(it, i) for i, it in enumerate(_as_list(data.get("items"))) if isinstance(it, dict)]
    )
    return RetroBoard(
        id=_str(data.get("id")) or f"retro-{index}",
        name=_str(data.get("name")) or "Retro",
        items=items,
        created_at=_int(data.get("created_at"), 0),
        extra=_extra(data, _RETRO_BOARD_KEYS),
    )


def _retro_item(data: Dict[str, Any], index: int) -> RetroItem:
    return RetroItem(
        id=_str(data.get("id")) or f"item-{index}",
        text=_str(data.get("text")),
        category=_enum(RetroCategory, data.get("category"), RetroCategory.WENT_WELL),
        author=_str(data.get("author")) or None,
        votes=max(0, _int(data.get("votes"), 0)),
        extra=_extra(data, _RETRO_ITEM_KEYS),
    )


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def _decode(raw: Any) -> Any:
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError:
            return None
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except ValueError:
            return None
    return raw


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _extra(data: Dict[str, Any], owned: Set[str]) -> Dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in data.items() if isinstance(k, str) and k not in owned}


def _str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if _is_number(value):
        try:
            return str(value)
        except ValueError:
            return ""
    return ""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value == value


def _float(value: Any) -> Optional[float]:
    if not _is_number(value):
        return None
    try:
        out = float(value)
    except OverflowError:
        return None
    return out if math.isfinite(out) else None


def _int(value: Any, default: int) -> int:
    if isinstance(value, str):
        try:
            value = int(value)
        except ValueError:
            return default
    if _is_number(value) and abs(value) <= _INT_LIMIT:
        return int(value)
    return default


def _enum(enum_type: Type[E], value: Any, default: Any) -> Any:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except (ValueError, TypeError):
        return default


def _unique_strings(value: Any) -> List[str]:
    out: List[str] = []
    for item in _as_list(value):
        if isinstance(item, str) and item and item not in out:
            out.append(item)
    return out


def _unique_by_id(items: List[Any]) -> List[Any]:
    seen: Set[str] = set()
    out = []
    for item in items:
        if item.id in seen:
            continue
        seen.add(item.id)
        out.append(item)
    return out
