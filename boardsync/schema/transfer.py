"""
Whole-document export and import.

The export format is the serialized State document as UTF-8 JSON text,
the same shape that is cached locally and replicated remotely. Import
always runs through migrate(), so blobs from older versions load.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Union

from ..model import State
from .migrate import migrate

logger = logging.getLogger(__name__)


def export_state(state: State, indent: int | None = 2) -> str:
    """Serialize a state to a transferable JSON blob."""
    return json.dumps(state.to_dict(), indent=indent, sort_keys=True, ensure_ascii=False)


def import_state(blob: Union[str, bytes, Any]) -> State:
    """Load a state from an export blob.

    Never raises: unreadable blobs load as an empty state.
    """
    state = migrate(blob)
    logger.debug(
        "Imported state document",
        extra={"projects": len(state.projects), "schema_version": state.schema_version},
    )
    return state
