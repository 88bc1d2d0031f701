"""
Unit tests for the SQLite storage engine.

Tests cover:
- Idempotent schema initialization
- Transaction commit and rollback
- Storage error wrapping
- Monotonic timestamps
"""

import os
import sqlite3
import tempfile

import pytest

from txstore.errors import StorageError
from txstore.store.database import Database


class TestDatabase:
    """Tests for Database."""

    @pytest.fixture
    def data_dir(self):
        """Create temporary data directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield tmpdir

    @pytest.fixture
    def db(self, data_dir):
        """Create initialized database."""
        database = Database(os.path.join(data_dir, "strings.db"), wal_mode=False)
        database.initialize_schema()
        return database

    def test_initialize_schema_is_idempotent(self, db):
        """Running schema creation twice keeps one version row."""
        db.initialize_schema()

        with db.connection() as conn:
            versions = conn.execute("SELECT version FROM schema_version").fetchall()
            tables = {
                row["name"]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }

        assert [row["version"] for row in versions] == [Database.SCHEMA_VERSION]
        assert {
            "documents",
            "source_strings",
            "additional_fields",
            "translations",
            "string_history",
            "users",
            "user_languages",
        } <= tables

    def test_creates_parent_directory(self, data_dir):
        """Database file may live in a directory that doesn't exist yet."""
        database = Database(os.path.join(data_dir, "nested", "dir", "strings.db"), wal_mode=False)
        database.initialize_schema()

        assert os.path.exists(os.path.join(data_dir, "nested", "dir", "strings.db"))

    def test_transaction_commits(self, db):
        """Writes inside a transaction are visible afterwards."""
        with db.transaction() as conn:
            conn.execute("INSERT INTO documents (name, created_at) VALUES ('app', 1)")

        with db.connection() as conn:
            row = conn.execute("SELECT name FROM documents").fetchone()
        assert row["name"] == "app"

    def test_transaction_rolls_back_on_error(self, db):
        """An exception discards everything written in the block."""
        with pytest.raises(RuntimeError):
            with db.transaction() as conn:
                conn.execute("INSERT INTO documents (name, created_at) VALUES ('app', 1)")
                raise RuntimeError("boom")

        with db.connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
        assert count == 0

    def test_storage_errors_are_wrapped(self, db):
        """sqlite3 errors surface as StorageError and roll back."""
        with pytest.raises(StorageError) as exc_info:
            with db.transaction() as conn:
                conn.execute("INSERT INTO documents (name, created_at) VALUES ('app', 1)")
                conn.execute("INSERT INTO documents (name, created_at) VALUES ('app', 2)")

        assert exc_info.value.code == "STORAGE_ERROR"
        assert isinstance(exc_info.value.__cause__, sqlite3.IntegrityError)

        with db.connection() as conn:
            count = conn.execute("SELECT COUNT(*) FROM documents").fetchone()[0]
        assert count == 0

    def test_foreign_keys_enforced(self, db):
        """Rows pointing at missing parents are rejected."""
        with pytest.raises(StorageError):
            with db.transaction() as conn:
                conn.execute(
                    """
                    INSERT INTO source_strings
                    (document_id, key, value, string_order, value_last_updated)
                    VALUES (999, 'k', 'v', 0, 1)
                    """
                )

    def test_timestamps_strictly_increase(self, data_dir):
        """A frozen clock still yields increasing timestamps."""
        database = Database(os.path.join(data_dir, "strings.db"), clock=lambda: 1000)

        stamps = [database.next_timestamp() for _ in range(5)]

        assert stamps == [1000, 1001, 1002, 1003, 1004]

    def test_clock_seeded_from_stored_timestamps(self, data_dir):
        """A restarted store never issues a timestamp older than stored data."""
        path = os.path.join(data_dir, "strings.db")
        first = Database(path, wal_mode=False, clock=lambda: 5000)
        first.initialize_schema()
        with first.transaction() as conn:
            conn.execute("INSERT INTO documents (name, created_at) VALUES ('app', 1)")
            conn.execute(
                """
                INSERT INTO source_strings
                (document_id, key, value, string_order, value_last_updated)
                VALUES (1, 'k', 'v', 0, ?)
                """,
                (first.next_timestamp(),),
            )

        restarted = Database(path, wal_mode=False, clock=lambda: 10)
        restarted.initialize_schema()

        assert restarted.next_timestamp() == 5001

    def test_timestamp_in_transaction_follows_stored_values(self, data_dir):
        """Inside a write, timestamps pass values stored by other instances."""
        path = os.path.join(data_dir, "strings.db")
        first = Database(path, wal_mode=False, clock=lambda: 1000)
        second = Database(path, wal_mode=False, clock=lambda: 1000)
        first.initialize_schema()
        second.initialize_schema()

        with first.transaction() as conn:
            conn.execute("INSERT INTO documents (name, created_at) VALUES ('app', 1)")
            conn.execute(
                """
                INSERT INTO source_strings
                (document_id, key, value, string_order, value_last_updated)
                VALUES (1, 'k', 'v', 0, 7000)
                """
            )

        with second.transaction() as conn:
            assert second.next_timestamp(conn) == 7001

    def test_write_lock_timeout_raises_storage_error(self, db):
        """A busy timeout on BEGIN IMMEDIATE surfaces as StorageError."""
        db.busy_timeout_ms = 50
        holder = sqlite3.connect(str(db.path), isolation_level=None)
        try:
            holder.execute("BEGIN IMMEDIATE")

            with pytest.raises(StorageError) as exc_info:
                with db.transaction() as conn:
                    conn.execute("INSERT INTO documents (name, created_at) VALUES ('app', 1)")

            assert isinstance(exc_info.value.__cause__, sqlite3.OperationalError)
        finally:
            holder.execute("ROLLBACK")
            holder.close()

    def test_read_lock_timeout_raises_storage_error(self, db):
        """Plain reads blocked past the busy timeout surface as StorageError."""
        db.busy_timeout_ms = 50
        holder = sqlite3.connect(str(db.path), isolation_level=None)
        try:
            holder.execute("BEGIN EXCLUSIVE")

            with pytest.raises(StorageError):
                with db.connection() as conn:
                    conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        finally:
            holder.execute("ROLLBACK")
            holder.close()
