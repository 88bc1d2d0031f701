"""
Error types for the translation record store.

This module defines every exception the store raises:
- TxStoreError: Base exception
- NotFoundError: Unknown document, user or string on a mutation
- ConflictError: Uniqueness clash (rename target, username)
- ValidationError: Input rejected before any write
- StorageError: Any other storage engine failure

Invariants:
    - All errors inherit from TxStoreError
    - Every error class has a stable ``code``; ``details`` holds the
      offending names or ids
    - Storage engine exceptions are chained, never swallowed
"""

from __future__ import annotations

from typing import Any


class TxStoreError(Exception):
    """Base exception for all store errors.

    Attributes:
        code: Stable error code, one per class
        message: Human-readable message
        details: Offending values keyed by what they are
    """

    code = "TXSTORE_ERROR"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class _ResourceError(TxStoreError):
    """Error about one named resource (document, user, source string)."""

    def __init__(self, message: str, resource_type: str, resource_id: Any) -> None:
        super().__init__(message, resource_type=resource_type, resource_id=resource_id)
        self.resource_type = resource_type
        self.resource_id = resource_id


class NotFoundError(_ResourceError):
    """Referenced resource does not exist.

    Raised when:
    - Document to move or delete doesn't exist
    - Acting user doesn't exist
    - Source string referenced by a translation doesn't exist
    """

    code = "NOT_FOUND"


class ConflictError(_ResourceError):
    """Resource already exists.

    Raised when:
    - Rename target document name is taken
    - Username is taken
    """

    code = "CONFLICT"


class ValidationError(TxStoreError):
    """Input rejected before touching storage.

    ``rejected`` lists the offending values: the repeated keys or field
    names of an upload, the reserved language code, the unknown role.
    """

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        field_name: str,
        rejected: list[str] | None = None,
    ) -> None:
        self.field_name = field_name
        self.rejected = list(rejected or [])
        super().__init__(message, field=field_name, rejected=self.rejected)


class StorageError(TxStoreError):
    """Storage engine failure not covered by a more specific error."""

    code = "STORAGE_ERROR"
