"""
Schema evolution for the boardsync state document.

All documents entering the process (cache, remote, import) go through
migrate(); all documents leaving it are produced by State.to_dict().
"""

from .migrate import migrate
from .transfer import export_state, import_state

__all__ = [
    "migrate",
    "export_state",
    "import_state",
]
