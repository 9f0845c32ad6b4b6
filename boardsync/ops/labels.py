"""
Label and member operations.

Labels are identified by name. Cards store label names, so renaming or
deleting a label rewrites every card that references it. Members are plain
names; removing one unassigns their cards.
"""

from __future__ import annotations

from ..errors import NotFoundError, ValidationError
from ..model import Label, LabelColor, Project, State
from ._common import coerce_enum, get_project, require_name


def add_label(state: State, project_id: str, name: str, color: LabelColor | str = LabelColor.GRAY) -> Label:
    name = require_name(name)
    color = coerce_enum(LabelColor, color, "color")
    project = get_project(state, project_id)
    if project.find_label(name) is not None:
        raise ValidationError(f"Label '{name}' already exists", field_name="name")
    label = Label(name=name, color=color)
    project.labels.append(label)
    return label


def rename_label(state: State, project_id: str, old_name: str, new_name: str) -> int:
    """Rename a label and every card reference to it.

    Returns:
        Number of cards rewritten
    """
    new_name = require_name(new_name)
    project = get_project(state, project_id)
    label = _get_label(project, old_name)
    if new_name == old_name:
        return 0
    if project.find_label(new_name) is not None:
        raise ValidationError(f"Label '{new_name}' already exists", field_name="name")

    label.name = new_name
    touched = 0
    for card in project.cards:
        if old_name in card.labels:
            card.labels = [new_name if n == old_name else n for n in card.labels]
            touched += 1
    return touched


def recolor_label(state: State, project_id: str, name: str, color: LabelColor | str) -> Label:
    color = coerce_enum(LabelColor, color, "color")
    label = _get_label(get_project(state, project_id), name)
    label.color = color
    return label


def delete_label(state: State, project_id: str, name: str) -> int:
    """Delete a label and strip it from cards. Returns cards touched."""
    project = get_project(state, project_id)
    label = _get_label(project, name)
    project.labels.remove(label)
    touched = 0
    for card in project.cards:
        if name in card.labels:
            card.labels = [n for n in card.labels if n != name]
            touched += 1
    return touched


def add_member(state: State, project_id: str, name: str) -> None:
    name = require_name(name)
    project = get_project(state, project_id)
    if name not in project.members:
        project.members.append(name)


def remove_member(state: State, project_id: str, name: str) -> int:
    """Remove a member and unassign their cards. Returns cards unassigned."""
    project = get_project(state, project_id)
    if name not in project.members:
        raise NotFoundError("Member", name)
    project.members.remove(name)
    unassigned = 0
    for card in project.cards:
        if card.assignee == name:
            card.assignee = None
            unassigned += 1
    return unassigned


def _get_label(project: Project, name: str) -> Label:
    label = project.find_label(name)
    if label is None:
        raise NotFoundError("Label", name)
    return label
