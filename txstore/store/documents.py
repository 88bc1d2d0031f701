"""
Document registry.

Documents are created implicitly by the first upload under a name,
renamed with ``move_document`` and removed with ``delete_document``.
Deletion is a hard delete: strings, fields, translations and history
go with the document through ON DELETE CASCADE, and a later upload
under the same name starts a fresh identity.
"""

from __future__ import annotations

import logging
import sqlite3

from ..errors import ConflictError, NotFoundError
from ..models import Document
from .database import Database

logger = logging.getLogger(__name__)


class DocumentRegistry:
    """Owns document identity."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def upsert_document(self, name: str) -> int:
        """Return the id of the named document, creating it if needed."""
        with self.db.transaction() as conn:
            return self.upsert_in(conn, name)

    def upsert_in(self, conn: sqlite3.Connection, name: str) -> int:
        """Same as upsert_document, on the caller's transaction."""
        row = conn.execute("SELECT id FROM documents WHERE name = ?", (name,)).fetchone()
        if row:
            return row["id"]

        cursor = conn.execute(
            "INSERT INTO documents (name, created_at) VALUES (?, ?)",
            (name, self.db.next_timestamp(conn)),
        )
        logger.debug("Created document", extra={"document_id": cursor.lastrowid})
        return cursor.lastrowid

    def get_document(self, name: str) -> Document | None:
        with self.db.connection() as conn:
            row = conn.execute("SELECT * FROM documents WHERE name = ?", (name,)).fetchone()
            if not row:
                return None
            return Document(id=row["id"], name=row["name"], created_at=row["created_at"])

    def list_documents(self) -> list[Document]:
        """List all documents in creation order."""
        with self.db.connection() as conn:
            rows = conn.execute("SELECT * FROM documents ORDER BY id").fetchall()
            return [
                Document(id=row["id"], name=row["name"], created_at=row["created_at"])
                for row in rows
            ]

    def move_document(self, from_name: str, to_name: str) -> None:
        """Rename a document.

        Args:
            from_name: Current name
            to_name: New name

        Raises:
            NotFoundError: If from_name doesn't exist
            ConflictError: If to_name already exists
        """
        with self.db.transaction() as conn:
            row = conn.execute("SELECT id FROM documents WHERE name = ?", (from_name,)).fetchone()
            if not row:
                raise NotFoundError(
                    f"Document not found: {from_name}",
                    resource_type="document",
                    resource_id=from_name,
                )

            taken = conn.execute("SELECT 1 FROM documents WHERE name = ?", (to_name,)).fetchone()
            if taken:
                raise ConflictError(
                    f"Document already exists: {to_name}",
                    resource_type="document",
                    resource_id=to_name,
                )

            conn.execute("UPDATE documents SET name = ? WHERE id = ?", (to_name, row["id"]))

        logger.debug("Moved document", extra={"document_id": row["id"]})

    def delete_document(self, name: str) -> None:
        """Delete a document and everything that belongs to it.

        Raises:
            NotFoundError: If the document doesn't exist
        """
        with self.db.transaction() as conn:
            cursor = conn.execute("DELETE FROM documents WHERE name = ?", (name,))
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"Document not found: {name}",
                    resource_type="document",
                    resource_id=name,
                )

        logger.debug("Deleted document", extra={"document_name": name})
