"""
Data models and database operations for suggestions.
"""

import secrets
import sqlite3
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path


class Visibility(str, Enum):
    """Who besides the owner may see a suggestion."""

    PUBLIC = "public"
    PRIVATE = "private"


class StorageError(Exception):
    """Raised when the suggestions database cannot complete an operation."""


@dataclass
class Suggestion:
    """A suggestion written by an authenticated user."""

    suggestion_id: str
    owner_id: str
    title: str
    created_at: str
    status: str = Visibility.PUBLIC.value
    body: str = ""
    owner_display: str | None = None
    updated_at: str | None = None

    @property
    def is_public(self) -> bool:
        return self.status == Visibility.PUBLIC.value

    def to_dict(self) -> dict:
        return asdict(self)


class SuggestionStore:
    """SQLite persistence for suggestions. One connection per call."""

    def __init__(self, db_path: Path):
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def create(
        self,
        owner_id: str,
        title: str,
        body: str = "",
        status: str = Visibility.PUBLIC.value,
        owner_display: str | None = None,
    ) -> Suggestion:
        """Insert a new suggestion and return it."""
        suggestion = Suggestion(
            suggestion_id=secrets.token_hex(16),
            owner_id=owner_id,
            owner_display=owner_display,
            title=title,
            body=body,
            status=status,
            created_at=datetime.now(UTC).isoformat(),
        )

        try:
            conn = self._connect()
            try:
                conn.execute(
                    """
                    INSERT INTO suggestions
                        (suggestion_id, owner_id, owner_display, title, body, status, created_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        suggestion.suggestion_id,
                        suggestion.owner_id,
                        suggestion.owner_display,
                        suggestion.title,
                        suggestion.body,
                        suggestion.status,
                        suggestion.created_at,
                    ),
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Could not create suggestion: {e}") from e

        return suggestion

    def get(self, suggestion_id: str) -> Suggestion | None:
        """Get a single suggestion by ID, or None if it does not exist."""
        try:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    "SELECT * FROM suggestions WHERE suggestion_id = ?",
                    (suggestion_id,),
                )
                row = cursor.fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Could not load suggestion {suggestion_id}: {e}") from e

        return Suggestion(**dict(row)) if row else None

    def find(self, status: str | None = None, owner_id: str | None = None) -> list[Suggestion]:
        """
        List suggestions, newest first.

        Args:
            status: Only return suggestions with this visibility
            owner_id: Only return suggestions owned by this identity
        """
        clauses = []
        params: list[str] = []
        if status is not None:
            clauses.append("status = ?")
            params.append(status)
        if owner_id is not None:
            clauses.append("owner_id = ?")
            params.append(owner_id)
        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""

        try:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    f"SELECT * FROM suggestions {where} ORDER BY created_at DESC, rowid DESC",
                    params,
                )
                rows = cursor.fetchall()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Could not list suggestions: {e}") from e

        return [Suggestion(**dict(row)) for row in rows]

    def update(self, suggestion_id: str, **fields) -> Suggestion | None:
        """Update fields on a suggestion and return the stored result."""
        if fields:
            fields["updated_at"] = datetime.now(UTC).isoformat()
            set_clause = ", ".join(f"{k} = ?" for k in fields)
            values = list(fields.values()) + [suggestion_id]

            try:
                conn = self._connect()
                try:
                    conn.execute(
                        f"UPDATE suggestions SET {set_clause} WHERE suggestion_id = ?",
                        values,
                    )
                    conn.commit()
                finally:
                    conn.close()
            except sqlite3.Error as e:
                raise StorageError(f"Could not update suggestion {suggestion_id}: {e}") from e

        return self.get(suggestion_id)

    def delete(self, suggestion_id: str) -> bool:
        """Permanently remove a suggestion. Returns True if a row was deleted."""
        try:
            conn = self._connect()
            try:
                cursor = conn.execute(
                    "DELETE FROM suggestions WHERE suggestion_id = ?",
                    (suggestion_id,),
                )
                conn.commit()
                return cursor.rowcount > 0
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise StorageError(f"Could not delete suggestion {suggestion_id}: {e}") from e
