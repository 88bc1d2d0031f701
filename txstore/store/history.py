"""
Append-only history log.

Events are written by the reconciler and the translation store inside
their own transactions, so an event exists exactly when the value change
it describes was committed. Nothing in the store updates or deletes
history rows; they only disappear with their document (cascade).
"""

from __future__ import annotations

import logging
import sqlite3

from ..models import EventType

logger = logging.getLogger(__name__)


class HistoryLog:
    """Writes history events on a caller-provided transaction."""

    def append(
        self,
        conn: sqlite3.Connection,
        source_string_id: int,
        language_code: str,
        event_type: EventType,
        value: str,
        user_id: int,
        event_date: int,
    ) -> int:
        """Append one event.

        Args:
            conn: Connection with an open write transaction
            source_string_id: String the event belongs to
            language_code: 'source' or the translated language
            event_type: Kind of event
            value: Value recorded by the event
            user_id: Acting user
            event_date: Event timestamp (Unix ms)

        Returns:
            New event id
        """
        cursor = conn.execute(
            """
            INSERT INTO string_history
            (source_string_id, language_code, event_type, value, event_date, user_id)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (source_string_id, language_code, event_type.value, value, event_date, user_id),
        )

        logger.debug(
            "Appended history event",
            extra={
                "history_id": cursor.lastrowid,
                "source_string_id": source_string_id,
                "language_code": language_code,
                "event_type": event_type.value,
            },
        )

        return cursor.lastrowid
