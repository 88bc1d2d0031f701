"""
SQLite storage engine for the translation record store.

This module owns connections, scoped transactions, the schema and the
store clock. Every component in ``txstore.store`` reaches storage through
a single ``Database`` instance.

Invariants:
    - One SQLite file holds all tables
    - Writes run inside ``transaction()`` (BEGIN IMMEDIATE), which commits
      on success and rolls back on every error path
    - Foreign keys are enforced on every connection
    - Timestamps handed out by ``next_timestamp()`` strictly increase, and
      inside a write transaction they also exceed every stored timestamp

How to change safely:
    - Schema changes must stay idempotent (IF NOT EXISTS) and bump
      SCHEMA_VERSION
    - Never write outside ``transaction()``

Table schema:
    documents:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - name TEXT UNIQUE
        - created_at INTEGER (Unix ms)

    source_strings:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - document_id INTEGER -> documents (cascade)
        - key TEXT, value TEXT
        - string_order INTEGER
        - value_last_updated INTEGER (Unix ms)
        - soft_deleted INTEGER
        - UNIQUE (document_id, key)

    additional_fields:
        - source_string_id INTEGER -> source_strings (cascade)
        - field_name TEXT, value TEXT, ui_hidden INTEGER
        - field_order INTEGER, soft_deleted INTEGER
        - UNIQUE (source_string_id, field_name)

    translations:
        - source_string_id INTEGER -> source_strings (cascade)
        - language_code TEXT, value TEXT
        - value_last_updated INTEGER (Unix ms)
        - UNIQUE (source_string_id, language_code)

    string_history:
        - id INTEGER PRIMARY KEY AUTOINCREMENT
        - source_string_id INTEGER -> source_strings (cascade)
        - language_code TEXT ('source' or a language)
        - event_type TEXT, value TEXT
        - event_date INTEGER (Unix ms)
        - user_id INTEGER -> users

    users / user_languages:
        - username TEXT UNIQUE, role TEXT
        - ordered language codes per user
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path

from ..errors import StorageError

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


class Database:
    """Connection factory, transaction scope and clock for the store.

    Thread safety:
        Each operation opens its own connection. SQLite serializes
        writers (BEGIN IMMEDIATE) and WAL mode lets readers proceed.

    Example:
        >>> db = Database("/var/lib/txstore/strings.db")
        >>> db.initialize_schema()
        >>> with db.transaction() as conn:
        ...     conn.execute("INSERT INTO documents (name, created_at) VALUES (?, ?)",
        ...                  ("app", db.next_timestamp(conn)))
    """

    SCHEMA_VERSION = 1

    def __init__(
        self,
        path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        cache_size_pages: int = -64000,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the database handle.

        Args:
            path: SQLite database file
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            cache_size_pages: SQLite cache size (negative = KB)
            clock: Source of Unix ms timestamps (defaults to wall clock)
        """
        self.path = Path(path)
        self.wal_mode = wal_mode
        self.busy_timeout_ms = busy_timeout_ms
        self.cache_size_pages = cache_size_pages
        self._clock = clock or _now_ms
        self._clock_lock = threading.Lock()
        self._last_timestamp = 0

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        """Open a configured connection, closed on exit.

        Storage engine errors raised while connecting, configuring or
        inside the block surface as StorageError.

        Yields:
            SQLite connection in autocommit mode
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(
                str(self.path),
                timeout=self.busy_timeout_ms / 1000.0,
                isolation_level=None,  # Autocommit by default, explicit transactions
            )
        except sqlite3.Error as e:
            raise StorageError(f"Cannot open database {self.path}: {e}") from e
        conn.row_factory = sqlite3.Row

        try:
            conn.execute(f"PRAGMA busy_timeout = {self.busy_timeout_ms}")
            conn.execute(f"PRAGMA cache_size = {self.cache_size_pages}")
            if self.wal_mode:
                conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.execute("PRAGMA foreign_keys = ON")

            yield conn
        except sqlite3.Error as e:
            raise StorageError(f"Storage operation failed: {e}") from e
        finally:
            conn.close()

    @contextmanager
    def transaction(self, immediate: bool = True) -> Iterator[sqlite3.Connection]:
        """Run a block inside one transaction.

        Commits when the block exits normally. Any exception rolls back
        everything written in the block; storage engine errors (a busy
        timeout on BEGIN included) are re-raised as StorageError, all
        others propagate unchanged.

        Args:
            immediate: Take the write lock up front (writers). Readers pass
                False to get a consistent snapshot without blocking writers.

        Yields:
            SQLite connection with an open transaction
        """
        with self.connection() as conn:
            try:
                conn.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
                yield conn
                conn.execute("COMMIT")
            except sqlite3.Error as e:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise StorageError(f"Storage operation failed: {e}") from e
            except BaseException:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                raise

    def next_timestamp(self, conn: sqlite3.Connection | None = None) -> int:
        """Return a Unix ms timestamp greater than any issued before.

        Two writes landing in the same millisecond still get distinct,
        ordered timestamps, which staleness comparisons rely on. Writers
        pass their open BEGIN IMMEDIATE connection so the timestamp also
        lands after every value stored by other processes sharing the file.

        Args:
            conn: Connection holding the write lock, if any
        """
        stored = self._newest_stored_timestamp(conn) if conn is not None else 0
        with self._clock_lock:
            now = self._clock()
            floor = max(self._last_timestamp, stored)
            if now <= floor:
                now = floor + 1
            self._last_timestamp = now
            return now

    def _newest_stored_timestamp(self, conn: sqlite3.Connection) -> int:
        row = conn.execute(
            """
            SELECT MAX(ts) FROM (
                SELECT MAX(value_last_updated) AS ts FROM source_strings
                UNION ALL
                SELECT MAX(value_last_updated) FROM translations
            )
            """
        ).fetchone()
        return row[0] or 0

    def initialize_schema(self) -> None:
        """Create tables and indexes if they don't exist.

        Safe to call on every startup. Also seeds the clock from the
        newest stored timestamp so a restarted store keeps ordering.
        """
        with self.connection() as conn:
            self._create_schema(conn)
            newest = self._newest_stored_timestamp(conn)

        with self._clock_lock:
            self._last_timestamp = max(self._last_timestamp, newest)

        logger.info(f"Initialized translation store schema: {self.path}")

    def _create_schema(self, conn: sqlite3.Connection) -> None:
        """Create database schema."""
        conn.executescript(f"""
            -- Schema version tracking
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                username TEXT NOT NULL UNIQUE,
                role TEXT NOT NULL,
                created_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS user_languages (
                user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
                language_code TEXT NOT NULL,
                position INTEGER NOT NULL,
                PRIMARY KEY (user_id, language_code)
            );

            CREATE TABLE IF NOT EXISTS documents (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                created_at INTEGER NOT NULL
            );

            CREATE TABLE IF NOT EXISTS source_strings (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                document_id INTEGER NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
                key TEXT NOT NULL,
                value TEXT NOT NULL,
                string_order INTEGER NOT NULL,
                value_last_updated INTEGER NOT NULL,
                soft_deleted INTEGER NOT NULL DEFAULT 0,
                UNIQUE (document_id, key)
            );

            CREATE INDEX IF NOT EXISTS idx_source_strings_order
                ON source_strings(document_id, soft_deleted, string_order);

            CREATE TABLE IF NOT EXISTS additional_fields (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_string_id INTEGER NOT NULL
                    REFERENCES source_strings(id) ON DELETE CASCADE,
                field_name TEXT NOT NULL,
                value TEXT NOT NULL,
                ui_hidden INTEGER NOT NULL DEFAULT 0,
                field_order INTEGER NOT NULL DEFAULT 0,
                soft_deleted INTEGER NOT NULL DEFAULT 0,
                UNIQUE (source_string_id, field_name)
            );

            CREATE TABLE IF NOT EXISTS translations (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_string_id INTEGER NOT NULL
                    REFERENCES source_strings(id) ON DELETE CASCADE,
                language_code TEXT NOT NULL,
                value TEXT NOT NULL,
                value_last_updated INTEGER NOT NULL,
                UNIQUE (source_string_id, language_code)
            );

            CREATE INDEX IF NOT EXISTS idx_translations_language
                ON translations(language_code, source_string_id);

            CREATE TABLE IF NOT EXISTS string_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                source_string_id INTEGER NOT NULL
                    REFERENCES source_strings(id) ON DELETE CASCADE,
                language_code TEXT NOT NULL,
                event_type TEXT NOT NULL,
                value TEXT NOT NULL,
                event_date INTEGER NOT NULL,
                user_id INTEGER NOT NULL REFERENCES users(id)
            );

            CREATE INDEX IF NOT EXISTS idx_history_string
                ON string_history(source_string_id, language_code);

            -- Record schema version
            INSERT OR IGNORE INTO schema_version (version, applied_at)
            VALUES ({self.SCHEMA_VERSION}, strftime('%s', 'now') * 1000);
        """)
