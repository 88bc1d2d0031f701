"""
txstore - Translation record store.

This package stores localizable text and its translations:
- Documents holding ordered source strings with additional fields
- Per-language translations with staleness timestamps
- An append-only history of every value change

Architecture:
    ┌─────────────┐     ┌──────────────────────────┐
    │ HTTP layer  │────▶│  TranslationRecordStore  │
    │ (external)  │     └────────────┬─────────────┘
    └─────────────┘                  │
             ┌───────────┬───────────┼────────────┬───────────┐
             ▼           ▼           ▼            ▼           ▼
        ┌─────────┐ ┌──────────┐ ┌──────────┐ ┌─────────┐ ┌───────┐
        │Documents│ │Reconciler│ │Translat- │ │ Queries │ │ Users │
        │         │ │          │ │  ions    │ │         │ │       │
        └────┬────┘ └────┬─────┘ └────┬─────┘ └────┬────┘ └───┬───┘
             │           └─────┬──────┘            │          │
             │                 ▼                   │          │
             │           ┌──────────┐              │          │
             │           │ History  │              │          │
             │           └────┬─────┘              │          │
             ▼                ▼                    ▼          ▼
        ┌──────────────────────────────────────────────────────────┐
        │                   SQLite (Database)                      │
        └──────────────────────────────────────────────────────────┘

Invariants:
    - Every value-changing write appends exactly one history event
    - Re-uploading identical content changes nothing but string order
    - Staleness is derived from timestamps only
    - Each mutation is one transaction; failures leave no partial state

How to change safely:
    - Keep schema changes idempotent and bump Database.SCHEMA_VERSION
    - Never write history outside the transaction of the change it records
"""

from ._version import __version__
from .errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    TxStoreError,
    ValidationError,
)
from .models import (
    AdditionalField,
    AdditionalFieldInput,
    Document,
    EventType,
    HistoryEntry,
    Role,
    SourceStringInput,
    StringRecord,
    Translation,
    UploadSummary,
    User,
)
from .store import TranslationRecordStore

__all__ = [
    "__version__",
    "TranslationRecordStore",
    "TxStoreError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "StorageError",
    "AdditionalField",
    "AdditionalFieldInput",
    "Document",
    "EventType",
    "HistoryEntry",
    "Role",
    "SourceStringInput",
    "StringRecord",
    "Translation",
    "UploadSummary",
    "User",
]
