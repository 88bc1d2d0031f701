"""
Translation record store facade.

Wires the components in this package to one SQLite database and exposes
the operations the HTTP layer calls. The facade adds no behaviour of its
own; each method delegates to the component that owns the concern.

Invariants:
    - The acting user is always supplied by the caller
    - No authentication or authorization happens here
    - initialize_schema() must run once before first use
"""

from __future__ import annotations

from collections.abc import Callable

from ..config import StoreSettings
from ..models import (
    Document,
    HistoryEntry,
    Role,
    SourceStringInput,
    StringRecord,
    Translation,
    UploadSummary,
    User,
)
from .database import Database
from .documents import DocumentRegistry
from .history import HistoryLog
from .queries import QueryLayer
from .reconciler import SourceStringReconciler
from .translations import TranslationStore
from .users import UserRegistry


class TranslationRecordStore:
    """Source strings, translations and their history in one store.

    Example:
        >>> store = TranslationRecordStore("/var/lib/txstore/strings.db")
        >>> store.initialize_schema()
        >>> admin = store.create_user("admin", Role.ADMIN, ["fr"])
        >>> store.replace_source_strings(
        ...     admin.id, "app", [SourceStringInput(key="greeting", value="Hi")]
        ... )
        >>> [todo] = store.get_strings_needing_translation("fr", limit=10)
        >>> store.upsert_translation(todo.id, "fr", "Salut", admin.id)
    """

    def __init__(
        self,
        database_path: str,
        wal_mode: bool = True,
        busy_timeout_ms: int = 5000,
        cache_size_pages: int = -64000,
        default_page_size: int = 100,
        max_page_size: int = 100,
        clock: Callable[[], int] | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            database_path: SQLite database file
            wal_mode: Enable SQLite WAL mode
            busy_timeout_ms: SQLite busy timeout
            cache_size_pages: SQLite cache size (negative = KB)
            default_page_size: Limit used when a query gives none
            max_page_size: Larger query limits are clamped to this
            clock: Source of Unix ms timestamps (defaults to wall clock)
        """
        self.db = Database(
            database_path,
            wal_mode=wal_mode,
            busy_timeout_ms=busy_timeout_ms,
            cache_size_pages=cache_size_pages,
            clock=clock,
        )
        self.history = HistoryLog()
        self.users = UserRegistry(self.db)
        self.documents = DocumentRegistry(self.db)
        self.reconciler = SourceStringReconciler(self.db, self.documents, self.users, self.history)
        self.translations = TranslationStore(self.db, self.users, self.history)
        self.queries = QueryLayer(
            self.db,
            default_page_size=default_page_size,
            max_page_size=max_page_size,
        )

    @classmethod
    def from_settings(cls, settings: StoreSettings) -> TranslationRecordStore:
        """Build a store from loaded settings."""
        return cls(
            settings.database_path,
            wal_mode=settings.wal_mode,
            busy_timeout_ms=settings.busy_timeout_ms,
            cache_size_pages=settings.cache_size_pages,
            default_page_size=settings.default_page_size,
            max_page_size=settings.max_page_size,
        )

    def initialize_schema(self) -> None:
        self.db.initialize_schema()

    # Documents

    def upsert_document(self, name: str) -> int:
        return self.documents.upsert_document(name)

    def get_document(self, name: str) -> Document | None:
        return self.documents.get_document(name)

    def list_documents(self) -> list[Document]:
        return self.documents.list_documents()

    def move_document(self, from_name: str, to_name: str) -> None:
        self.documents.move_document(from_name, to_name)

    def delete_document(self, name: str) -> None:
        self.documents.delete_document(name)

    # Source strings and translations

    def replace_source_strings(
        self,
        user_id: int,
        document_name: str,
        strings: list[SourceStringInput],
    ) -> UploadSummary:
        return self.reconciler.replace_source_strings(user_id, document_name, strings)

    def upsert_translation(
        self,
        source_string_id: int,
        language_code: str,
        value: str,
        user_id: int,
    ) -> Translation:
        return self.translations.upsert_translation(source_string_id, language_code, value, user_id)

    def get_translation(self, source_string_id: int, language_code: str) -> Translation | None:
        return self.translations.get_translation(source_string_id, language_code)

    # Queries

    def get_document_strings(self, document_name: str, language_code: str) -> list[StringRecord]:
        return self.queries.get_document_strings(document_name, language_code)

    def get_strings_needing_translation(
        self,
        language_code: str,
        limit: int | None = None,
        id_offset: int | None = None,
    ) -> list[StringRecord]:
        return self.queries.get_strings_needing_translation(language_code, limit, id_offset)

    def get_translated_strings(
        self,
        language_code: str,
        limit: int | None = None,
        id_offset: int | None = None,
    ) -> list[StringRecord]:
        return self.queries.get_translated_strings(language_code, limit, id_offset)

    def get_history(
        self,
        source_string_id: int | None = None,
        language_code: str | None = None,
        history_id_offset: int | None = None,
        limit: int | None = None,
    ) -> list[HistoryEntry]:
        return self.queries.get_history(
            source_string_id=source_string_id,
            language_code=language_code,
            history_id_offset=history_id_offset,
            limit=limit,
        )

    # Users

    def create_user(
        self,
        username: str,
        role: Role,
        language_codes: list[str] | None = None,
    ) -> User:
        return self.users.create_user(username, role, language_codes)

    def get_user(self, username: str) -> User | None:
        return self.users.get_user(username)

    def get_user_by_id(self, user_id: int) -> User | None:
        return self.users.get_user_by_id(user_id)

    def list_users(self, role: Role | None = None, limit: int | None = None) -> list[User]:
        return self.users.list_users(role=role, limit=limit)

    def update_user_languages(self, username: str, language_codes: list[str]) -> User:
        return self.users.update_user_languages(username, language_codes)

    def admin_user_exists(self) -> bool:
        return self.users.admin_user_exists()

    def list_language_codes(self) -> list[str]:
        return self.users.list_language_codes()
