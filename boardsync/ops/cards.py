"""
Card operations.

Invariants:
    - Dependency and parent links are checked for cycles before they are added
    - Deleting a card cleans up references to it; it never deletes other cards
    - move_card treats WIP limits as soft: the move happens, the result says so
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..errors import CycleError, NotFoundError, ValidationError
from ..graph import dependency_path, would_create_cycle
from ..model import BACKLOG, Card, CardType, Priority, Project, State, new_id, now_ms
from ._common import coerce_enum, get_card, get_project, require_name

_UPDATABLE = {
    "title", "description", "notes", "priority", "assignee", "card_type", "estimate",
}


@dataclass
class MoveResult:
    """Outcome of moving a card.

    Attributes:
        card: The moved card
        wip_exceeded: Destination column now holds more cards than its WIP limit
        wip_limit: The destination column's limit (0 = unlimited)
        count: Cards in the destination column after the move
    """

    card: Card
    wip_exceeded: bool = False
    wip_limit: int = 0
    count: int = 0


def add_card(
    state: State,
    project_id: str,
    title: str,
    column_id: str = BACKLOG,
    **fields: Any,
) -> Card:
    """Create a card at the end of a column.

    Extra keyword arguments are the updatable fields (description, notes,
    priority, assignee, card_type, estimate) plus labels.
    """
    title = require_name(title, "title")
    project = get_project(state, project_id)
    _check_column(project, column_id)

    labels = list(fields.pop("labels", None) or [])
    for name in labels:
        if project.find_label(name) is None:
            raise NotFoundError("Label", name)
    changes = _validate_changes(project, fields)

    card = Card(
        id=new_id(),
        title=title,
        column_id=column_id,
        labels=list(dict.fromkeys(labels)),
        order=_next_order(project, column_id),
        created_at=now_ms(),
    )
    for key, value in changes.items():
        setattr(card, key, value)
    project.cards.append(card)
    return card


def update_card(state: State, project_id: str, card_id: str, **changes: Any) -> Card:
    """Update scalar card fields."""
    project = get_project(state, project_id)
    card = get_card(project, card_id)
    validated = _validate_changes(project, changes)
    for key, value in validated.items():
        setattr(card, key, value)
    return card


def move_card(
    state: State,
    project_id: str,
    card_id: str,
    column_id: str,
    index: Optional[int] = None,
) -> MoveResult:
    """Move a card to a column position and renumber that column.

    Args:
        column_id: Destination column id or BACKLOG
        index: Position in the destination column (None = end)
    """
    if index is not None and (not isinstance(index, int) or isinstance(index, bool)):
        raise ValidationError("index must be an integer", field_name="index")
    project = get_project(state, project_id)
    card = get_card(project, card_id)
    _check_column(project, column_id)

    siblings = [c for c in project.cards_in(column_id) if c.id != card.id]
    if index is None or index > len(siblings):
        index = len(siblings)
    siblings.insert(max(0, index), card)

    card.column_id = column_id
    for order, sibling in enumerate(siblings):
        sibling.order = order

    result = MoveResult(card=card, count=len(siblings))
    column = project.find_column(column_id)
    if column is not None and column.wip_limit:
        result.wip_limit = column.wip_limit
        result.wip_exceeded = len(siblings) > column.wip_limit
    return result


def delete_card(state: State, project_id: str, card_id: str) -> Card:
    """Delete a card and remove every reference to it."""
    project = get_project(state, project_id)
    card = get_card(project, card_id)
    project.cards.remove(card)
    for other in project.cards:
        if card_id in other.dependencies:
            other.dependencies = [d for d in other.dependencies if d != card_id]
        if other.parent_id == card_id:
            other.parent_id = None
    return card


def add_dependency(state: State, project_id: str, card_id: str, depends_on: str) -> Card:
    """Make card_id depend on depends_on.

    Raises:
        CycleError: The edge would close a cycle (or card_id == depends_on)
        NotFoundError: Either card is missing
    """
    project = get_project(state, project_id)
    card = get_card(project, card_id)
    get_card(project, depends_on)

    if would_create_cycle(project.cards, card_id, depends_on):
        raise CycleError(card_id, depends_on, dependency_path(project.cards, depends_on, card_id))
    if depends_on not in card.dependencies:
        card.dependencies.append(depends_on)
    return card


def remove_dependency(state: State, project_id: str, card_id: str, depends_on: str) -> Card:
    project = get_project(state, project_id)
    card = get_card(project, card_id)
    card.dependencies = [d for d in card.dependencies if d != depends_on]
    return card


def set_parent(state: State, project_id: str, card_id: str, parent_id: Optional[str]) -> Card:
    """Attach a card under a parent (epic/story), or detach with None."""
    project = get_project(state, project_id)
    card = get_card(project, card_id)
    if parent_id is not None:
        get_card(project, parent_id)
        parents: Dict[str, List[str]] = {
            c.id: [c.parent_id] if c.parent_id and c.id != card_id else [] for c in project.cards
        }
        if would_create_cycle(parents, card_id, parent_id):
            raise CycleError(card_id, parent_id, dependency_path(parents, parent_id, card_id))
    card.parent_id = parent_id
    return card


def toggle_card_label(state: State, project_id: str, card_id: str, label: str) -> bool:
    """Add or remove a label on a card. Returns True if the card now has it."""
    project = get_project(state, project_id)
    card = get_card(project, card_id)
    if label in card.labels:
        card.labels.remove(label)
        return False
    if project.find_label(label) is None:
        raise NotFoundError("Label", label)
    card.labels.append(label)
    return True


def _validate_changes(project: Project, changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - _UPDATABLE
    if unknown:
        raise ValidationError(f"Unknown card fields: {sorted(unknown)}", field_name=sorted(unknown)[0])

    out: Dict[str, Any] = {}
    for key, value in changes.items():
        if key == "title":
            out[key] = require_name(value, "title")
        elif key in ("description", "notes"):
            if not isinstance(value, str):
                raise ValidationError(f"{key} must be a string", field_name=key)
            out[key] = value
        elif key == "priority":
            out[key] = coerce_enum(Priority, value, "priority")
        elif key == "card_type":
            out[key] = None if value is None else coerce_enum(CardType, value, "card_type")
        elif key == "estimate":
            out[key] = None if value is None else _estimate(value)
        elif key == "assignee":
            if value is not None and value not in project.members:
                raise NotFoundError("Member", str(value))
            out[key] = value
    return out


def _check_column(project: Project, column_id: str) -> None:
    if column_id != BACKLOG and project.find_column(column_id) is None:
        raise NotFoundError("Column", column_id)


def _next_order(project: Project, column_id: str) -> int:
    return max((c.order for c in project.cards if c.column_id == column_id), default=-1) + 1


def _estimate(value: Any) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            estimate = float(value)
        except OverflowError:
            estimate = math.inf
        if math.isfinite(estimate):
            return estimate
    raise ValidationError("estimate must be a finite number", field_name="estimate")
