"""
User registry.

Users exist in the store only as the acting identity on history events
and as the holder of assigned language codes. Credentials and permission
checks are handled by the authentication and authorization layers in
front of the store.
"""

from __future__ import annotations

import logging
import sqlite3

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import Role, User
from .database import Database

logger = logging.getLogger(__name__)


def _parse_role(role: Role | str) -> Role:
    try:
        return Role(role)
    except ValueError:
        raise ValidationError(
            f"Unknown role: {role}",
            field_name="role",
            rejected=[str(role)],
        ) from None


class UserRegistry:
    """Create, look up and update users."""

    def __init__(self, db: Database) -> None:
        self.db = db

    def create_user(
        self,
        username: str,
        role: Role,
        language_codes: list[str] | None = None,
    ) -> User:
        """Create a user.

        Args:
            username: Unique login name
            role: User role
            language_codes: Languages the user may translate, in order

        Returns:
            Created User

        Raises:
            ConflictError: If the username is taken
            ValidationError: If the role is not a known Role
        """
        role = _parse_role(role)
        language_codes = list(dict.fromkeys(language_codes or []))
        with self.db.transaction() as conn:
            now = self.db.next_timestamp(conn)
            existing = conn.execute(
                "SELECT 1 FROM users WHERE username = ?", (username,)
            ).fetchone()
            if existing:
                raise ConflictError(
                    f"User already exists: {username}",
                    resource_type="user",
                    resource_id=username,
                )

            cursor = conn.execute(
                "INSERT INTO users (username, role, created_at) VALUES (?, ?, ?)",
                (username, role.value, now),
            )
            user_id = cursor.lastrowid
            self._write_languages(conn, user_id, language_codes)

        logger.debug("Created user", extra={"user_id": user_id, "role": role.value})

        return User(
            id=user_id,
            username=username,
            role=role,
            created_at=now,
            language_codes=language_codes,
        )

    def get_user(self, username: str) -> User | None:
        """Get a user by username."""
        with self.db.transaction(immediate=False) as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
            return self._to_user(conn, row) if row else None

    def get_user_by_id(self, user_id: int) -> User | None:
        """Get a user by id."""
        with self.db.transaction(immediate=False) as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._to_user(conn, row) if row else None

    def list_users(self, role: Role | None = None, limit: int | None = None) -> list[User]:
        """List users in creation order.

        Args:
            role: Optional filter by role
            limit: Optional maximum number of users

        Returns:
            List of users
        """
        query = "SELECT * FROM users"
        params: list[object] = []
        if role is not None:
            query += " WHERE role = ?"
            params.append(_parse_role(role).value)
        query += " ORDER BY id"
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        with self.db.transaction(immediate=False) as conn:
            rows = conn.execute(query, params).fetchall()
            return [self._to_user(conn, row) for row in rows]

    def update_user_languages(self, username: str, language_codes: list[str]) -> User:
        """Replace the languages assigned to a user.

        Raises:
            NotFoundError: If the user doesn't exist
        """
        with self.db.transaction() as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
            if not row:
                raise NotFoundError(
                    f"User not found: {username}",
                    resource_type="user",
                    resource_id=username,
                )

            conn.execute("DELETE FROM user_languages WHERE user_id = ?", (row["id"],))
            self._write_languages(conn, row["id"], language_codes)
            return self._to_user(conn, row)

    def admin_user_exists(self) -> bool:
        with self.db.connection() as conn:
            row = conn.execute(
                "SELECT 1 FROM users WHERE role = ? LIMIT 1", (Role.ADMIN.value,)
            ).fetchone()
            return row is not None

    def list_language_codes(self) -> list[str]:
        """Distinct language codes assigned to any user, sorted."""
        with self.db.connection() as conn:
            rows = conn.execute(
                "SELECT DISTINCT language_code FROM user_languages ORDER BY language_code"
            ).fetchall()
            return [row["language_code"] for row in rows]

    def require_user(self, conn: sqlite3.Connection, user_id: int) -> None:
        """Fail the surrounding transaction if the user doesn't exist.

        Raises:
            NotFoundError: If no user has this id
        """
        row = conn.execute("SELECT 1 FROM users WHERE id = ?", (user_id,)).fetchone()
        if not row:
            raise NotFoundError(
                f"User not found: {user_id}",
                resource_type="user",
                resource_id=user_id,
            )

    def _write_languages(
        self,
        conn: sqlite3.Connection,
        user_id: int,
        language_codes: list[str],
    ) -> None:
        # first-seen order, repeats dropped
        for position, code in enumerate(dict.fromkeys(language_codes)):
            conn.execute(
                "INSERT INTO user_languages (user_id, language_code, position) VALUES (?, ?, ?)",
                (user_id, code, position),
            )

    def _to_user(self, conn: sqlite3.Connection, row: sqlite3.Row) -> User:
        languages = conn.execute(
            "SELECT language_code FROM user_languages WHERE user_id = ? ORDER BY position",
            (row["id"],),
        ).fetchall()
        return User(
            id=row["id"],
            username=row["username"],
            role=Role(row["role"]),
            created_at=row["created_at"],
            language_codes=[r["language_code"] for r in languages],
        )
