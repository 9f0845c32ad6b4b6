"""
Transfer CLI for boardsync.

Moves the state document in and out of a local cache file:
- export: Print the cached document as a JSON blob
- import: Replace the cached document with a blob (migrated on the way in)
- migrate: Upgrade the cached document in place

Usage:
    boardsync-transfer export --cache ~/.boardsync/cache.db > board.json
    boardsync-transfer import board.json --cache ~/.boardsync/cache.db
    boardsync-transfer migrate --cache ~/.boardsync/cache.db

Invariants:
    - Import never writes a document that did not pass through migrate()
    - Unreadable input files exit non-zero and leave the cache untouched
    - Export output is deterministic (sorted keys)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from ..local import DEFAULT_KEY, SqliteLocalCache
from ..model import State
from ..schema import export_state, import_state, migrate

logger = logging.getLogger(__name__)


class TransferCLI:
    """Export / import / migrate operations over one cache file.

    Example:
        >>> cli = TransferCLI(SqliteLocalCache("cache.db", key="w1"))
        >>> blob = cli.export()
        >>> cli.import_blob(blob)
    """

    def __init__(self, cache: SqliteLocalCache) -> None:
        self.cache = cache

    def export(self) -> Optional[str]:
        """Return the cached document as a blob, or None if the cache is empty."""
        doc = self.cache.read()
        if doc is None:
            return None
        return export_state(migrate(doc))

    def import_blob(self, blob: str) -> Tuple[bool, State]:
        """Migrate a blob and store it. Returns (written, state)."""
        state = import_state(blob)
        return self.cache.write(state.to_dict()), state

    def migrate(self) -> Tuple[bool, Optional[State]]:
        """Upgrade the cached document in place."""
        doc = self.cache.read()
        if doc is None:
            return False, None
        state = migrate(doc)
        return self.cache.write(state.to_dict()), state


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="boardsync-transfer",
        description="Export, import and migrate the boardsync state document",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_cache_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--cache", required=True, help="Path to the SQLite cache file")
        p.add_argument("--key", default=DEFAULT_KEY, help="Document key (workspace id)")

    export_parser = subparsers.add_parser("export", help="Print the cached document")
    add_cache_args(export_parser)
    export_parser.add_argument("-o", "--output", help="Write to file instead of stdout")

    import_parser = subparsers.add_parser("import", help="Load a document into the cache")
    import_parser.add_argument("file", help="Exported JSON file")
    add_cache_args(import_parser)

    migrate_parser = subparsers.add_parser("migrate", help="Upgrade the cached document")
    add_cache_args(migrate_parser)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    cli = TransferCLI(SqliteLocalCache(Path(args.cache).expanduser(), key=args.key))

    if args.command == "export":
        blob = cli.export()
        if blob is None:
            print(f"No document cached under key '{args.key}'", file=sys.stderr)
            return 1
        if args.output:
            Path(args.output).write_text(blob + "\n", encoding="utf-8")
        else:
            print(blob)
        return 0

    if args.command == "import":
        try:
            blob = Path(args.file).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            print(f"Cannot read {args.file}: {e}", file=sys.stderr)
            return 1
        written, state = cli.import_blob(blob)
        if not written:
            print("Failed to write the local cache", file=sys.stderr)
            return 1
        print(f"Imported {len(state.projects)} project(s)")
        return 0

    if args.command == "migrate":
        written, state = cli.migrate()
        if state is None:
            print(f"No document cached under key '{args.key}'", file=sys.stderr)
            return 1
        if not written:
            print("Failed to write the local cache", file=sys.stderr)
            return 1
        print(f"Migrated document to schema version {state.schema_version}")
        return 0

    return 2


if __name__ == "__main__":
    sys.exit(main())
