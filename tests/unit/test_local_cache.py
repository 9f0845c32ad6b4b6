"""
Unit tests for the local document cache.
"""

import logging
import sqlite3
import tempfile
from pathlib import Path

import pytest

from boardsync.local import LocalCache, MemoryLocalCache, SqliteLocalCache


class TestSqliteLocalCache:
    """Tests for SqliteLocalCache."""

    @pytest.fixture
    def db_path(self):
        """Temporary database file."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir) / "nested" / "cache.db"

    def test_implements_protocol(self, db_path):
        assert isinstance(SqliteLocalCache(db_path), LocalCache)

    def test_read_empty(self, db_path):
        assert SqliteLocalCache(db_path).read() is None

    def test_write_then_read(self, db_path):
        cache = SqliteLocalCache(db_path)
        doc = {"projects": [{"id": "p1", "name": "Ünïcode"}], "view": "board"}

        assert cache.write(doc) is True
        assert cache.read() == doc

    def test_write_replaces(self, db_path):
        cache = SqliteLocalCache(db_path)
        cache.write({"v": 1})
        cache.write({"v": 2})
        assert cache.read() == {"v": 2}

    def test_survives_reopen(self, db_path):
        SqliteLocalCache(db_path).write({"v": 1})
        assert SqliteLocalCache(db_path).read() == {"v": 1}

    def test_keys_are_isolated(self, db_path):
        SqliteLocalCache(db_path, key="w1").write({"ws": 1})
        SqliteLocalCache(db_path, key="w2").write({"ws": 2})
        assert SqliteLocalCache(db_path, key="w1").read() == {"ws": 1}
        assert SqliteLocalCache(db_path, key="w2").read() == {"ws": 2}

    def test_unserializable_document(self, db_path):
        cache = SqliteLocalCache(db_path)
        assert cache.write({"bad": object()}) is False
        assert cache.read() is None

    def test_corrupt_value_reads_as_none(self, db_path):
        cache = SqliteLocalCache(db_path)
        cache.write({"v": 1})
        conn = sqlite3.connect(str(db_path))
        conn.execute("UPDATE documents SET value_json = '{not json'")
        conn.commit()
        conn.close()
        assert cache.read() is None

    def test_non_object_value_reads_as_none(self, db_path):
        cache = SqliteLocalCache(db_path)
        cache.write({"v": 1})
        conn = sqlite3.connect(str(db_path))
        conn.execute("UPDATE documents SET value_json = '[1, 2]'")
        conn.commit()
        conn.close()
        assert cache.read() is None

    def test_unopenable_path(self, db_path):
        db_path.parent.mkdir(parents=True)
        db_path.mkdir()  # a directory where the file should be
        cache = SqliteLocalCache(db_path)
        assert cache.read() is None
        assert cache.write({"v": 1}) is False

    def test_parent_is_a_file(self, db_path, caplog):
        db_path.parent.mkdir(parents=True)
        blocker = db_path.parent / "file"
        blocker.write_text("not a directory")
        cache = SqliteLocalCache(blocker / "sub" / "cache.db")

        with caplog.at_level(logging.WARNING, logger="boardsync.local.cache"):
            assert cache.read() is None
            assert cache.write({"v": 1}) is False
        assert "Local cache write failed" in caplog.text


class TestMemoryLocalCache:
    """Tests for MemoryLocalCache."""

    def test_copies_on_write_and_read(self):
        doc = {"projects": []}
        cache = MemoryLocalCache()
        cache.write(doc)
        doc["projects"].append("mutated")
        read = cache.read()
        assert read == {"projects": []}
        read["projects"].append("again")
        assert cache.read() == {"projects": []}
        assert cache.write_count == 1

    def test_initial_document(self):
        assert MemoryLocalCache({"v": 1}).read() == {"v": 1}
        assert MemoryLocalCache().read() is None
