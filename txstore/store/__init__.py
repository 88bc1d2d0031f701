"""
Store module for txstore - persistence and reconciliation.

This module handles:
- SQLite connections, scoped transactions and schema
- Document identity (create, rename, delete)
- Source string reconciliation on upload
- Translation upserts with staleness timestamps
- The append-only history log
- Keyset-paginated read queries
- Users as acting identities

Invariants:
    - All operations within one call are atomic
    - Soft-deleted strings are hidden from reads but kept for history
    - History rows are never updated

How to change safely:
    - Use Database.transaction() for all multi-statement writes
    - Test reconciliation with repeated and reordered uploads
"""

from .database import Database
from .documents import DocumentRegistry
from .history import HistoryLog
from .queries import QueryLayer
from .reconciler import SourceStringReconciler
from .record_store import TranslationRecordStore
from .translations import TranslationStore
from .users import UserRegistry

__all__ = [
    "Database",
    "DocumentRegistry",
    "HistoryLog",
    "QueryLayer",
    "SourceStringReconciler",
    "TranslationRecordStore",
    "TranslationStore",
    "UserRegistry",
]
