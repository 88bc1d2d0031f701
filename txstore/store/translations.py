"""
Translation store.

One row per (source string, language). An upsert that changes the value
moves value_last_updated to now and appends a history event tagged with
the language; an upsert with the same value is a no-op. Comparing that
timestamp with the source string's value_last_updated is what makes a
translation fresh or stale.
"""

from __future__ import annotations

import logging
import sqlite3

from ..errors import NotFoundError, ValidationError
from ..models import SOURCE_LANGUAGE, EventType, Translation
from .database import Database
from .history import HistoryLog
from .users import UserRegistry

logger = logging.getLogger(__name__)


class TranslationStore:
    """Per-(string, language) upserts with staleness timestamps."""

    def __init__(self, db: Database, users: UserRegistry, history: HistoryLog) -> None:
        self.db = db
        self.users = users
        self.history = history

    def upsert_translation(
        self,
        source_string_id: int,
        language_code: str,
        value: str,
        user_id: int,
    ) -> Translation:
        """Store the translation of a source string.

        The caller is expected to have resolved a live, translatable
        string; only its existence is enforced, by the foreign key.

        Args:
            source_string_id: String being translated
            language_code: Target language
            value: Translated text
            user_id: Acting user, recorded on the history event

        Returns:
            The stored Translation

        Raises:
            ValidationError: If language_code is the reserved 'source' code
            NotFoundError: If the user or the source string doesn't exist
        """
        if language_code == SOURCE_LANGUAGE:
            raise ValidationError(
                f"'{SOURCE_LANGUAGE}' is reserved and cannot be translated into",
                field_name="language_code",
                rejected=[language_code],
            )

        with self.db.transaction() as conn:
            self.users.require_user(conn, user_id)

            row = conn.execute(
                """
                SELECT * FROM translations
                WHERE source_string_id = ? AND language_code = ?
                """,
                (source_string_id, language_code),
            ).fetchone()

            if row is not None and row["value"] == value:
                return Translation.from_row(row)

            now = self.db.next_timestamp(conn)
            try:
                conn.execute(
                    """
                    INSERT INTO translations
                    (source_string_id, language_code, value, value_last_updated)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (source_string_id, language_code) DO UPDATE SET
                        value = excluded.value,
                        value_last_updated = excluded.value_last_updated
                    """,
                    (source_string_id, language_code, value, now),
                )
            except sqlite3.IntegrityError as e:
                raise NotFoundError(
                    f"Source string not found: {source_string_id}",
                    resource_type="source_string",
                    resource_id=source_string_id,
                ) from e

            self.history.append(
                conn,
                source_string_id=source_string_id,
                language_code=language_code,
                event_type=EventType.NEW_VALUE,
                value=value,
                user_id=user_id,
                event_date=now,
            )

            stored = conn.execute(
                """
                SELECT * FROM translations
                WHERE source_string_id = ? AND language_code = ?
                """,
                (source_string_id, language_code),
            ).fetchone()

        logger.debug(
            "Updated translation",
            extra={
                "source_string_id": source_string_id,
                "language_code": language_code,
            },
        )

        return Translation.from_row(stored)

    def get_translation(self, source_string_id: int, language_code: str) -> Translation | None:
        with self.db.connection() as conn:
            row = conn.execute(
                """
                SELECT * FROM translations
                WHERE source_string_id = ? AND language_code = ?
                """,
                (source_string_id, language_code),
            ).fetchone()
            return Translation.from_row(row) if row else None
