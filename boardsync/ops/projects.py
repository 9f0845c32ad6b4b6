"""
Project and column operations.

Every operation takes the State as its first argument, validates, and only
then mutates in place. A raised error means the state was not touched.
"""

from __future__ import annotations

from typing import Optional, Sequence

from ..errors import NotFoundError, ValidationError
from ..model import BACKLOG, Column, Project, State, ViewMode, new_id, now_ms
from ._common import coerce_enum, get_project, require_name

DEFAULT_COLUMNS = ("To Do", "In Progress", "Done")


def add_project(
    state: State,
    name: str,
    column_names: Optional[Sequence[str]] = None,
    project_id: Optional[str] = None,
) -> Project:
    """Create a project and make it active if nothing is active yet."""
    name = require_name(name)
    names = [require_name(n, "column name") for n in (column_names or DEFAULT_COLUMNS)]
    project_id = project_id or new_id()
    if state.find_project(project_id) is not None:
        raise ValidationError(f"Project '{project_id}' already exists", field_name="id")

    project = Project(
        id=project_id,
        name=name,
        columns=[Column(id=new_id(), name=n) for n in names],
        created_at=now_ms(),
    )
    state.projects.append(project)
    if state.active_project_id is None:
        state.active_project_id = project.id
    return project


def rename_project(state: State, project_id: str, name: str) -> Project:
    name = require_name(name)
    project = get_project(state, project_id)
    project.name = name
    return project


def delete_project(state: State, project_id: str) -> None:
    """Delete a project; the active reference falls back to the first remaining one."""
    project = get_project(state, project_id)
    state.projects.remove(project)
    if state.active_project_id == project_id:
        state.active_project_id = state.projects[0].id if state.projects else None


def set_active_project(state: State, project_id: Optional[str]) -> None:
    if project_id is not None:
        get_project(state, project_id)
    state.active_project_id = project_id


def set_view(state: State, view: ViewMode | str) -> None:
    state.view = coerce_enum(ViewMode, view, "view")


def add_column(state: State, project_id: str, name: str, wip_limit: int = 0) -> Column:
    name = require_name(name)
    _check_wip(wip_limit)
    project = get_project(state, project_id)
    column = Column(id=new_id(), name=name, wip_limit=wip_limit)
    project.columns.append(column)
    return column


def rename_column(state: State, project_id: str, column_id: str, name: str) -> Column:
    name = require_name(name)
    column = _get_column(get_project(state, project_id), column_id)
    column.name = name
    return column


def set_wip_limit(state: State, project_id: str, column_id: str, wip_limit: int) -> Column:
    _check_wip(wip_limit)
    column = _get_column(get_project(state, project_id), column_id)
    column.wip_limit = wip_limit
    return column


def move_column(state: State, project_id: str, column_id: str, index: int) -> None:
    if not isinstance(index, int) or isinstance(index, bool):
        raise ValidationError("index must be an integer", field_name="index")
    project = get_project(state, project_id)
    column = _get_column(project, column_id)
    project.columns.remove(column)
    index = max(0, min(index, len(project.columns)))
    project.columns.insert(index, column)


def delete_column(state: State, project_id: str, column_id: str) -> int:
    """Delete a column; its cards go to the end of the backlog.

    Returns:
        Number of cards moved to the backlog
    """
    project = get_project(state, project_id)
    column = _get_column(project, column_id)

    moved = project.cards_in(column_id)
    next_order = max((c.order for c in project.cards_in(BACKLOG)), default=-1) + 1
    for offset, card in enumerate(moved):
        card.column_id = BACKLOG
        card.order = next_order + offset
    project.columns.remove(column)
    return len(moved)


def _get_column(project: Project, column_id: str) -> Column:
    column = project.find_column(column_id)
    if column is None:
        raise NotFoundError("Column", column_id)
    return column


def _check_wip(wip_limit: int) -> None:
    if not isinstance(wip_limit, int) or isinstance(wip_limit, bool) or wip_limit < 0:
        raise ValidationError("wip_limit must be a non-negative integer", field_name="wip_limit")
