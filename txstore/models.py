"""
Typed records for the translation record store.

Rows read from SQLite are converted into these dataclasses before they
leave the store. Nested list-valued attributes (a string's additional
fields, a user's language codes) live in their own tables and are
attached by an explicit second query, never encoded into a column.

Timestamps are UTC Unix milliseconds.
"""

from __future__ import annotations

import sqlite3
from dataclasses import dataclass, field
from enum import Enum

# Language code used for history events on the source side.
SOURCE_LANGUAGE = "source"


class EventType(str, Enum):
    """History event kinds."""

    NEW_VALUE = "newValue"
    COMMENT_CHANGED = "commentChanged"


class Role(str, Enum):
    """User roles. Enforcement belongs to the authorization layer."""

    ADMIN = "admin"
    TRANSLATOR = "translator"


@dataclass
class AdditionalFieldInput:
    """Metadata attached to an uploaded source string (comment, context...)."""

    field_name: str
    value: str
    ui_hidden: bool = False


@dataclass
class SourceStringInput:
    """One entry of an uploaded document, in upload order."""

    key: str
    value: str
    additional_fields: list[AdditionalFieldInput] = field(default_factory=list)


@dataclass
class Document:
    """A named collection of source strings."""

    id: int
    name: str
    created_at: int


@dataclass
class AdditionalField:
    """Stored additional field of a source string."""

    field_name: str
    value: str
    ui_hidden: bool = False

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> AdditionalField:
        return cls(
            field_name=row["field_name"],
            value=row["value"],
            ui_hidden=bool(row["ui_hidden"]),
        )


@dataclass
class StringRecord:
    """A live string as returned by the query layer.

    ``value`` is the source value or the translated value depending on
    which query produced the record. ``id`` is the source string id and
    doubles as the pagination cursor.

    Attributes:
        id: Source string id
        key: String key, unique within its document
        value: Source or translated value
        document_name: Owning document
        additional_fields: Live fields in upload order
    """

    id: int
    key: str
    value: str
    document_name: str
    additional_fields: list[AdditionalField] = field(default_factory=list)


@dataclass
class Translation:
    """Current translation of one source string into one language."""

    id: int
    source_string_id: int
    language_code: str
    value: str
    value_last_updated: int

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> Translation:
        return cls(
            id=row["id"],
            source_string_id=row["source_string_id"],
            language_code=row["language_code"],
            value=row["value"],
            value_last_updated=row["value_last_updated"],
        )


@dataclass
class HistoryEntry:
    """A history event joined with the context needed to display it.

    Attributes:
        id: Event id, strictly increasing
        source_string_id: String the event belongs to
        document_name: Owning document
        key: String key
        source_value: Current source value of the string
        language_code: 'source' or the translated language
        event_type: What happened
        value: Value recorded by the event
        event_date: When it happened (Unix ms)
        user_id: Acting user
        username: Acting user's name
    """

    id: int
    source_string_id: int
    document_name: str
    key: str
    source_value: str
    language_code: str
    event_type: EventType
    value: str
    event_date: int
    user_id: int
    username: str

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> HistoryEntry:
        return cls(
            id=row["id"],
            source_string_id=row["source_string_id"],
            document_name=row["document_name"],
            key=row["key"],
            source_value=row["source_value"],
            language_code=row["language_code"],
            event_type=EventType(row["event_type"]),
            value=row["value"],
            event_date=row["event_date"],
            user_id=row["user_id"],
            username=row["username"],
        )


@dataclass
class User:
    """Acting identity recorded on history events."""

    id: int
    username: str
    role: Role
    created_at: int
    language_codes: list[str] = field(default_factory=list)


@dataclass
class UploadSummary:
    """Outcome of one source upload.

    Attributes:
        document_id: Document the strings were written to
        added: Keys that were new or came back from soft delete
        changed: Live keys whose value changed
        unchanged: Live keys re-uploaded with the same value
        removed: Live keys absent from the upload, now soft-deleted
    """

    document_id: int
    added: int = 0
    changed: int = 0
    unchanged: int = 0
    removed: int = 0
