"""
State document types for boardsync.

The whole shared workspace is one State document:

    State
    ├── projects: [Project]
    │   ├── columns: [Column]
    │   ├── labels: [Label]
    │   ├── members: [str]
    │   ├── cards: [Card]
    │   └── retro: RetroState
    │       └── boards: [RetroBoard]
    │           └── items: [RetroItem]
    ├── active_project_id
    └── view

Invariants:
    - active_project_id names an existing project or is None
    - Card.column_id names a column of the same project or BACKLOG
    - Card.dependencies resolve within the project and form a DAG
    - Labels are identified by name; cards reference them by name

How to change safely:
    - New fields need a default and handling in schema.migrate
    - Never rename a serialized key without a migration step
    - Unknown keys survive a round trip through `extra`
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

SCHEMA_VERSION = 2

# Sentinel column reference for cards not placed on the board.
BACKLOG = "backlog"


def new_id() -> str:
    """Generate a new entity identifier."""
    return uuid.uuid4().hex


def now_ms() -> int:
    """Current Unix time in milliseconds."""
    return int(time.time() * 1000)


class Priority(str, Enum):
    """Card priority."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ViewMode(str, Enum):
    """Which view the workspace shows."""

    BOARD = "board"
    LIST = "list"
    BACKLOG = "backlog"
    DEPENDENCIES = "dependencies"
    RETRO = "retro"


class LabelColor(str, Enum):
    """Fixed label palette."""

    GRAY = "gray"
    RED = "red"
    ORANGE = "orange"
    YELLOW = "yellow"
    GREEN = "green"
    TEAL = "teal"
    BLUE = "blue"
    PURPLE = "purple"
    PINK = "pink"


class CardType(str, Enum):
    """Card kind for epic/story hierarchies."""

    TASK = "task"
    STORY = "story"
    EPIC = "epic"
    BUG = "bug"


class RetroCategory(str, Enum):
    """Retro board lane."""

    WENT_WELL = "went_well"
    TO_IMPROVE = "to_improve"
    ACTION = "action"


def _with_extra(data: Dict[str, Any], extra: Dict[str, Any]) -> Dict[str, Any]:
    # Owned keys win over preserved unknown keys.
    out = dict(extra)
    out.update(data)
    return out


@dataclass
class Column:
    """A board column.

    Attributes:
        id: Column identifier
        name: Display name
        wip_limit: Maximum cards before the column counts as over limit (0 = unlimited)
    """

    id: str
    name: str
    wip_limit: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra(
            {"id": self.id, "name": self.name, "wip_limit": self.wip_limit},
            self.extra,
        )


@dataclass
class Label:
    """A named, colored label."""

    name: str
    color: LabelColor = LabelColor.GRAY
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra({"name": self.name, "color": self.color.value}, self.extra)


@dataclass
class Card:
    """A work item.

    Attributes:
        id: Identifier, unique within the project
        title: Short title
        description: Free text
        notes: Free text
        priority: Priority level
        labels: Label names
        dependencies: Ids of cards this card depends on
        assignee: Member name or None
        column_id: Column id or BACKLOG
        order: Position within the column (ascending)
        created_at: Creation timestamp (Unix ms)
        card_type: Optional kind (task, story, epic, bug)
        estimate: Optional size estimate
        parent_id: Optional parent card id (epic/story)
    """

    id: str
    title: str
    column_id: str = BACKLOG
    description: str = ""
    notes: str = ""
    priority: Priority = Priority.MEDIUM
    labels: List[str] = field(default_factory=list)
    dependencies: List[str] = field(default_factory=list)
    assignee: Optional[str] = None
    order: int = 0
    created_at: int = 0
    card_type: Optional[CardType] = None
    estimate: Optional[float] = None
    parent_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra(
            {
                "id": self.id,
                "title": self.title,
                "description": self.description,
                "notes": self.notes,
                "priority": self.priority.value,
                "labels": list(self.labels),
                "dependencies": list(self.dependencies),
                "assignee": self.assignee,
                "column_id": self.column_id,
                "order": self.order,
                "created_at": self.created_at,
                "card_type": self.card_type.value if self.card_type else None,
                "estimate": self.estimate,
                "parent_id": self.parent_id,
            },
            self.extra,
        )


@dataclass
class RetroItem:
    """A sticky note on a retro board."""

    id: str
    text: str
    category: RetroCategory = RetroCategory.WENT_WELL
    author: Optional[str] = None
    votes: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra(
            {
                "id": self.id,
                "text": self.text,
                "category": self.category.value,
                "author": self.author,
                "votes": self.votes,
            },
            self.extra,
        )


@dataclass
class RetroBoard:
    """One retrospective session."""

    id: str
    name: str
    items: List[RetroItem] = field(default_factory=list)
    created_at: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra(
            {
                "id": self.id,
                "name": self.name,
                "items": [i.to_dict() for i in self.items],
                "created_at": self.created_at,
            },
            self.extra,
        )


@dataclass
class RetroState:
    """Retro sub-structure embedded in a project."""

    boards: List[RetroBoard] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra({"boards": [b.to_dict() for b in self.boards]}, self.extra)


@dataclass
class Project:
    """A project: columns, labels, members, cards and retro boards."""

    id: str
    name: str
    columns: List[Column] = field(default_factory=list)
    labels: List[Label] = field(default_factory=list)
    members: List[str] = field(default_factory=list)
    cards: List[Card] = field(default_factory=list)
    retro: RetroState = field(default_factory=RetroState)
    created_at: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra(
            {
                "id": self.id,
                "name": self.name,
                "columns": [c.to_dict() for c in self.columns],
                "labels": [lb.to_dict() for lb in self.labels],
                "members": list(self.members),
                "cards": [c.to_dict() for c in self.cards],
                "retro": self.retro.to_dict(),
                "created_at": self.created_at,
            },
            self.extra,
        )

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def find_column(self, column_id: str) -> Optional[Column]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def find_label(self, name: str) -> Optional[Label]:
        for label in self.labels:
            if label.name == name:
                return label
        return None

    def cards_in(self, column_id: str) -> List[Card]:
        """Cards in a column, sorted by order (insertion order breaks ties)."""
        return sorted(
            (c for c in self.cards if c.column_id == column_id),
            key=lambda c: c.order,
        )


@dataclass
class State:
    """The shared workspace document."""

    projects: List[Project] = field(default_factory=list)
    active_project_id: Optional[str] = None
    view: ViewMode = ViewMode.BOARD
    schema_version: int = SCHEMA_VERSION
    extra: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return _with_extra(
            {
                "schema_version": self.schema_version,
                "projects": [p.to_dict() for p in self.projects],
                "active_project_id": self.active_project_id,
                "view": self.view.value,
            },
            self.extra,
        )

    def find_project(self, project_id: str) -> Optional[Project]:
        for project in self.projects:
            if project.id == project_id:
                return project
        return None

    @property
    def active_project(self) -> Optional[Project]:
        if self.active_project_id is None:
            return None
        return self.find_project(self.active_project_id)
