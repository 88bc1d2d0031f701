"""
Source string reconciler.

Each upload carries the complete, ordered string set of one document.
Reconciliation replaces the stored set with it in a single transaction:

    1. resolve or create the document
    2. soft-delete every live string of the document, and its fields
    3. upsert the incoming strings in order, clearing soft_deleted on each
       row (and field) that is touched
    4. whatever was not touched stays soft-deleted

A string's value_last_updated moves, and a 'newValue' history event is
written, only when its value actually differs from the stored one, so a
re-upload of identical content leaves timestamps and history untouched.
Additional fields are reconciled per field name without history.

Invariants:
    - Readers never observe a partially replaced document
    - (document_id, key) keeps pointing at the same row across soft
      delete and reappearance
    - Duplicate keys in one batch reject the whole batch before any write
"""

from __future__ import annotations

import logging
import sqlite3
from collections import Counter

from ..errors import ValidationError
from ..models import SOURCE_LANGUAGE, EventType, SourceStringInput, UploadSummary
from .database import Database
from .documents import DocumentRegistry
from .history import HistoryLog
from .users import UserRegistry

logger = logging.getLogger(__name__)


def _check_unique(strings: list[SourceStringInput]) -> None:
    """Reject batches that repeat a key or a field name.

    Raises:
        ValidationError: Listing every repeated name
    """
    key_counts = Counter(s.key for s in strings)
    duplicate_keys = sorted(k for k, n in key_counts.items() if n > 1)
    if duplicate_keys:
        raise ValidationError(
            f"Duplicate keys in upload: {', '.join(duplicate_keys)}",
            field_name="key",
            rejected=duplicate_keys,
        )

    for s in strings:
        field_counts = Counter(f.field_name for f in s.additional_fields)
        duplicate_fields = sorted(name for name, n in field_counts.items() if n > 1)
        if duplicate_fields:
            raise ValidationError(
                f"Duplicate additional fields for key '{s.key}': {', '.join(duplicate_fields)}",
                field_name="additional_fields",
                rejected=duplicate_fields,
            )


class SourceStringReconciler:
    """Replaces a document's full string set on each upload."""

    def __init__(
        self,
        db: Database,
        documents: DocumentRegistry,
        users: UserRegistry,
        history: HistoryLog,
    ) -> None:
        self.db = db
        self.documents = documents
        self.users = users
        self.history = history

    def replace_source_strings(
        self,
        user_id: int,
        document_name: str,
        strings: list[SourceStringInput],
    ) -> UploadSummary:
        """Replace the string set of a document.

        Args:
            user_id: Acting user, recorded on history events
            document_name: Target document (created if missing)
            strings: Complete string set in display order

        Returns:
            UploadSummary with per-outcome counts

        Raises:
            ValidationError: If the batch repeats a key or field name
            NotFoundError: If the user doesn't exist
        """
        _check_unique(strings)

        with self.db.transaction() as conn:
            self.users.require_user(conn, user_id)
            now = self.db.next_timestamp(conn)

            document_id = self.documents.upsert_in(conn, document_name)
            summary = UploadSummary(document_id=document_id)

            previously_live = {
                row["key"]
                for row in conn.execute(
                    "SELECT key FROM source_strings WHERE document_id = ? AND soft_deleted = 0",
                    (document_id,),
                )
            }

            # Mark everything old; the loop below revives what is still present
            conn.execute(
                "UPDATE source_strings SET soft_deleted = 1 WHERE document_id = ?",
                (document_id,),
            )
            conn.execute(
                """
                UPDATE additional_fields SET soft_deleted = 1
                WHERE source_string_id IN (
                    SELECT id FROM source_strings WHERE document_id = ?
                )
                """,
                (document_id,),
            )

            for order, incoming in enumerate(strings):
                value_changed = self._upsert_string(
                    conn, document_id, order, incoming, user_id, now
                )
                if incoming.key not in previously_live:
                    summary.added += 1
                elif value_changed:
                    summary.changed += 1
                else:
                    summary.unchanged += 1

            summary.removed = len(previously_live - {s.key for s in strings})

        logger.debug(
            "Replaced source strings",
            extra={
                "document_id": summary.document_id,
                "added": summary.added,
                "changed": summary.changed,
                "unchanged": summary.unchanged,
                "removed": summary.removed,
            },
        )

        return summary

    def _upsert_string(
        self,
        conn: sqlite3.Connection,
        document_id: int,
        order: int,
        incoming: SourceStringInput,
        user_id: int,
        now: int,
    ) -> bool:
        """Write one incoming string and its fields.

        Returns:
            True if the stored value changed (or the row is new)
        """
        row = conn.execute(
            """
            SELECT id, value FROM source_strings
            WHERE document_id = ? AND key = ?
            """,
            (document_id, incoming.key),
        ).fetchone()

        if row is None:
            cursor = conn.execute(
                """
                INSERT INTO source_strings
                (document_id, key, value, string_order, value_last_updated, soft_deleted)
                VALUES (?, ?, ?, ?, ?, 0)
                """,
                (document_id, incoming.key, incoming.value, order, now),
            )
            string_id = cursor.lastrowid
            value_changed = True
        else:
            string_id = row["id"]
            value_changed = row["value"] != incoming.value
            if value_changed:
                conn.execute(
                    """
                    UPDATE source_strings
                    SET value = ?, value_last_updated = ?, string_order = ?, soft_deleted = 0
                    WHERE id = ?
                    """,
                    (incoming.value, now, order, string_id),
                )
            else:
                conn.execute(
                    "UPDATE source_strings SET string_order = ?, soft_deleted = 0 WHERE id = ?",
                    (order, string_id),
                )

        if value_changed:
            self.history.append(
                conn,
                source_string_id=string_id,
                language_code=SOURCE_LANGUAGE,
                event_type=EventType.NEW_VALUE,
                value=incoming.value,
                user_id=user_id,
                event_date=now,
            )

        for field_order, extra in enumerate(incoming.additional_fields):
            conn.execute(
                """
                INSERT INTO additional_fields
                (source_string_id, field_name, value, ui_hidden, field_order, soft_deleted)
                VALUES (?, ?, ?, ?, ?, 0)
                ON CONFLICT (source_string_id, field_name) DO UPDATE SET
                    value = excluded.value,
                    ui_hidden = excluded.ui_hidden,
                    field_order = excluded.field_order,
                    soft_deleted = 0
                """,
                (string_id, extra.field_name, extra.value, int(extra.ui_hidden), field_order),
            )

        return value_changed
