"""
Error types for boardsync.

This module defines the exceptions raised by board operations and the
remote store adapters:
- BoardSyncError: Base exception
- ValidationError: A mutation was rejected before it touched the state
- CycleError: A dependency or parent link would close a cycle
- NotFoundError: A referenced project, card, column, label or member is missing
- RemoteError: The remote store failed (transient, logged by callers)

Invariants:
    - All errors inherit from BoardSyncError
    - Validation errors are raised before any mutation is applied
    - Remote errors never escape the writer, reconciler or presence tracker
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class BoardSyncError(Exception):
    """Base exception for all boardsync errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "BOARDSYNC_ERROR"
        self.details = details or {}


class ValidationError(BoardSyncError):
    """A mutation was rejected.

    Raised when:
    - A card would depend on itself
    - A name is empty or duplicated
    - A value is outside its allowed set
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        code: str = "VALIDATION_ERROR",
    ) -> None:
        super().__init__(message, code=code, details={"field": field_name})
        self.field_name = field_name


class CycleError(ValidationError):
    """Adding an edge would close a cycle.

    Attributes:
        from_id: Source card of the rejected edge
        to_id: Target card of the rejected edge
        path: Existing path from to_id back to from_id
    """

    def __init__(self, from_id: str, to_id: str, path: Optional[list] = None) -> None:
        path = path or []
        if from_id == to_id:
            msg = f"Card '{from_id}' cannot depend on itself"
        else:
            msg = f"Dependency {from_id} -> {to_id} would create a cycle"
            if path:
                msg += f" ({' -> '.join(path)} -> {to_id})"
        super().__init__(msg, field_name="dependencies", code="CYCLE")
        self.details.update({"from_id": from_id, "to_id": to_id, "path": path})
        self.from_id = from_id
        self.to_id = to_id
        self.path = path


class NotFoundError(BoardSyncError):
    """Referenced entity does not exist in the state document."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class RemoteError(BoardSyncError):
    """Remote store operation failed."""

    def __init__(self, message: str, code: str = "REMOTE_ERROR") -> None:
        super().__init__(message, code=code)


class RemoteConnectionError(RemoteError):
    """Remote store is unreachable or rejected the credential."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="REMOTE_CONNECTION_ERROR")


class RemoteWriteError(RemoteError):
    """A document or presence write was not accepted."""

    def __init__(self, message: str) -> None:
        super().__init__(message, code="REMOTE_WRITE_ERROR")
