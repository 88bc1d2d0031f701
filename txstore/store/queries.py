"""
Read queries over documents, strings, translations and history.

All list queries page by keyset: rows come back in descending id order
and the next page is requested with ``id_offset`` set to the last id
returned (exclusive). Soft-deleted strings never appear, except as the
subject of history events.

A translation is fresh when its value_last_updated is at least the
source string's value_last_updated, and stale when strictly older.
"""

from __future__ import annotations

import sqlite3
from collections import defaultdict

from ..models import SOURCE_LANGUAGE, AdditionalField, HistoryEntry, StringRecord
from .database import Database


class QueryLayer:
    """Staleness-aware, keyset-paginated reads.

    Args:
        db: Database handle
        default_page_size: Limit used when the caller gives none
        max_page_size: Larger limits are clamped to this
    """

    def __init__(self, db: Database, default_page_size: int = 100, max_page_size: int = 100) -> None:
        self.db = db
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    def _limit(self, limit: int | None) -> int:
        if limit is None:
            return self.default_page_size
        # SQLite treats a negative LIMIT as unbounded
        return max(0, min(limit, self.max_page_size))

    def get_strings_needing_translation(
        self,
        language_code: str,
        limit: int | None = None,
        id_offset: int | None = None,
    ) -> list[StringRecord]:
        """Live source strings with no translation, or a stale one.

        Args:
            language_code: Target language
            limit: Maximum rows to return
            id_offset: Return only ids below this (previous page's last id)

        Returns:
            Source-valued records, id descending
        """
        with self.db.transaction(immediate=False) as conn:
            rows = conn.execute(
                """
                SELECT s.id, s.key, s.value, d.name AS document_name
                FROM source_strings s
                JOIN documents d ON d.id = s.document_id
                LEFT JOIN translations t
                    ON t.source_string_id = s.id AND t.language_code = ?
                WHERE s.soft_deleted = 0
                AND (t.id IS NULL OR t.value_last_updated < s.value_last_updated)
                AND (? IS NULL OR s.id < ?)
                ORDER BY s.id DESC
                LIMIT ?
                """,
                (language_code, id_offset, id_offset, self._limit(limit)),
            ).fetchall()
            return self._to_records(conn, rows)

    def get_translated_strings(
        self,
        language_code: str,
        limit: int | None = None,
        id_offset: int | None = None,
    ) -> list[StringRecord]:
        """Live source strings whose translation is up to date.

        Args:
            language_code: Target language
            limit: Maximum rows to return
            id_offset: Return only ids below this (previous page's last id)

        Returns:
            Translation-valued records, id descending
        """
        with self.db.transaction(immediate=False) as conn:
            rows = conn.execute(
                """
                SELECT s.id, s.key, t.value, d.name AS document_name
                FROM source_strings s
                JOIN documents d ON d.id = s.document_id
                JOIN translations t
                    ON t.source_string_id = s.id AND t.language_code = ?
                WHERE s.soft_deleted = 0
                AND t.value_last_updated >= s.value_last_updated
                AND (? IS NULL OR s.id < ?)
                ORDER BY s.id DESC
                LIMIT ?
                """,
                (language_code, id_offset, id_offset, self._limit(limit)),
            ).fetchall()
            return self._to_records(conn, rows)

    def get_document_strings(self, document_name: str, language_code: str) -> list[StringRecord]:
        """Export one document in display order.

        With language_code 'source' every live string is returned with its
        source value and additional fields. Any other code returns only the
        strings translated into that language, with the translated value;
        untranslated strings are left out.

        Returns:
            Records ordered by string_order; empty for unknown documents
        """
        with self.db.transaction(immediate=False) as conn:
            if language_code == SOURCE_LANGUAGE:
                rows = conn.execute(
                    """
                    SELECT s.id, s.key, s.value, d.name AS document_name
                    FROM source_strings s
                    JOIN documents d ON d.id = s.document_id
                    WHERE d.name = ? AND s.soft_deleted = 0
                    ORDER BY s.string_order
                    """,
                    (document_name,),
                ).fetchall()

                fields = defaultdict(list)
                for row in conn.execute(
                    """
                    SELECT f.source_string_id, f.field_name, f.value, f.ui_hidden
                    FROM additional_fields f
                    JOIN source_strings s ON s.id = f.source_string_id
                    JOIN documents d ON d.id = s.document_id
                    WHERE d.name = ? AND s.soft_deleted = 0 AND f.soft_deleted = 0
                    ORDER BY f.field_order
                    """,
                    (document_name,),
                ):
                    fields[row["source_string_id"]].append(AdditionalField.from_row(row))

                return [
                    StringRecord(
                        id=row["id"],
                        key=row["key"],
                        value=row["value"],
                        document_name=row["document_name"],
                        additional_fields=fields.get(row["id"], []),
                    )
                    for row in rows
                ]

            rows = conn.execute(
                """
                SELECT s.id, s.key, t.value, d.name AS document_name
                FROM source_strings s
                JOIN documents d ON d.id = s.document_id
                JOIN translations t
                    ON t.source_string_id = s.id AND t.language_code = ?
                WHERE d.name = ? AND s.soft_deleted = 0
                ORDER BY s.string_order
                """,
                (language_code, document_name),
            ).fetchall()

            return [
                StringRecord(
                    id=row["id"],
                    key=row["key"],
                    value=row["value"],
                    document_name=row["document_name"],
                )
                for row in rows
            ]

    def get_history(
        self,
        source_string_id: int | None = None,
        language_code: str | None = None,
        history_id_offset: int | None = None,
        limit: int | None = None,
    ) -> list[HistoryEntry]:
        """History events, newest first.

        When language_code is given, 'source' events are included along
        with that language's events so a translation can be read against
        the source values it was made from.

        Args:
            source_string_id: Only events of this string
            language_code: Only events of this language (plus 'source')
            history_id_offset: Return only ids below this
            limit: Maximum rows to return

        Returns:
            History entries, id descending
        """
        query = """
            SELECT
                h.id,
                h.source_string_id,
                h.language_code,
                h.event_type,
                h.value,
                h.event_date,
                h.user_id,
                u.username,
                d.name AS document_name,
                s.key,
                s.value AS source_value
            FROM string_history h
            JOIN users u ON u.id = h.user_id
            JOIN source_strings s ON s.id = h.source_string_id
            JOIN documents d ON d.id = s.document_id
            WHERE 1 = 1
        """
        params: list[object] = []

        if source_string_id is not None:
            query += " AND h.source_string_id = ?"
            params.append(source_string_id)
        if language_code is not None:
            query += " AND h.language_code IN (?, ?)"
            params.extend([language_code, SOURCE_LANGUAGE])
        if history_id_offset is not None:
            query += " AND h.id < ?"
            params.append(history_id_offset)

        query += " ORDER BY h.id DESC LIMIT ?"
        params.append(self._limit(limit))

        with self.db.connection() as conn:
            return [HistoryEntry.from_row(row) for row in conn.execute(query, params)]

    def _to_records(self, conn: sqlite3.Connection, rows: list[sqlite3.Row]) -> list[StringRecord]:
        """Build records for a page of strings, attaching their live fields."""
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        placeholders = ", ".join("?" for _ in ids)
        fields = defaultdict(list)
        for row in conn.execute(
            f"""
            SELECT source_string_id, field_name, value, ui_hidden
            FROM additional_fields
            WHERE source_string_id IN ({placeholders}) AND soft_deleted = 0
            ORDER BY field_order
            """,
            ids,
        ):
            fields[row["source_string_id"]].append(AdditionalField.from_row(row))

        return [
            StringRecord(
                id=row["id"],
                key=row["key"],
                value=row["value"],
                document_name=row["document_name"],
                additional_fields=fields.get(row["id"], []),
            )
            for row in rows
        ]
