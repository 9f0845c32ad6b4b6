"""Lookup and validation helpers shared by the board operations."""

from __future__ import annotations

from enum import Enum
from typing import Any, Type, TypeVar

from ..errors import NotFoundError, ValidationError
from ..model import Card, Project, State

E = TypeVar("E", bound=Enum)


def get_project(state: State, project_id: str) -> Project:
    project = state.find_project(project_id)
    if project is None:
        raise NotFoundError("Project", project_id)
    return project


def get_card(project: Project, card_id: str) -> Card:
    card = project.find_card(card_id)
    if card is None:
        raise NotFoundError("Card", card_id)
    return card


def require_name(value: Any, field_name: str = "name") -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string", field_name=field_name)
    return value.strip()


def coerce_enum(enum_type: Type[E], value: Any, field_name: str) -> E:
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(value)
    except (ValueError, TypeError):
        allowed = ", ".join(m.value for m in enum_type)
        raise ValidationError(
            f"Invalid {field_name} '{value}'. Must be one of: {allowed}",
            field_name=field_name,
        )
