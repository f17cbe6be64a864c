"""
Service for creating, reading, updating and deleting TODO entries.

Every call opens its own short-lived SQLite connection and closes it
before returning; nothing is cached between calls, so the store stays
authoritative for identities and timestamps.  All statements are
parameterized.

Reads use keyset pagination: a page is "the ``size`` newest entries
with an identity strictly below ``prev_id``", which does not skip or
repeat rows when entries are added concurrently the way an offset
would.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone, tzinfo
from typing import List, Sequence

from todo_api.app.core.db import get_connection
from todo_api.app.core.exceptions import NotFoundError, StoreError
from todo_api.app.schemas.todo import TODO

logger = logging.getLogger(__name__)


class TODOService:
    """Service class for managing TODO entries."""

    def __init__(self, db_path: str, tz: tzinfo = timezone.utc) -> None:
        self.db_path = db_path
        self.tz = tz

    async def create_todo(self, subject: str, description: str) -> TODO:
        """Insert a new TODO and return it as stored.

        The row is read back by its new identity so the returned object
        carries the timestamps computed by the store.
        """
        insert = "INSERT INTO todos(subject, description) VALUES(?, ?)"
        confirm = "SELECT id, subject, description, created_at, updated_at FROM todos WHERE id = ?"
        conn = get_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(insert, (subject, description))
            todo_id = cursor.lastrowid
            conn.commit()
            row = cursor.execute(confirm, (todo_id,)).fetchone()
            if row is None:
                raise StoreError(f"created TODO {todo_id} could not be read back")
            logger.info("Created TODO %s", todo_id)
            return self._row_to_todo(row)
        except sqlite3.Error as exc:
            raise StoreError(f"failed to create TODO: {exc}", original_error=exc) from exc
        finally:
            conn.close()

    async def read_todos(self, prev_id: int, size: int) -> List[TODO]:
        """Return up to ``size`` TODOs ordered by identity, newest first.

        Parameters
        ----------
        prev_id : int
            Cursor.  When greater than zero only entries with an identity
            strictly less than ``prev_id`` are returned.
        size : int
            Page size.  Zero returns an empty list without querying.
        """
        read = (
            "SELECT id, subject, description, created_at, updated_at "
            "FROM todos ORDER BY id DESC LIMIT ?"
        )
        read_with_id = (
            "SELECT id, subject, description, created_at, updated_at "
            "FROM todos WHERE id < ? ORDER BY id DESC LIMIT ?"
        )
        if size == 0:
            return []

        conn = get_connection(self.db_path)
        try:
            cursor = conn.cursor()
            if prev_id > 0:
                rows = cursor.execute(read_with_id, (prev_id, size)).fetchall()
            else:
                rows = cursor.execute(read, (size,)).fetchall()
            return [self._row_to_todo(row) for row in rows]
        except sqlite3.Error as exc:
            raise StoreError(f"failed to read TODOs: {exc}", original_error=exc) from exc
        finally:
            conn.close()

    async def update_todo(self, todo_id: int, subject: str, description: str) -> TODO:
        """Update subject and description of an existing TODO.

        Raises
        ------
        NotFoundError
            If ``todo_id`` is zero (the store is not queried) or no row
            has that identity.
        """
        if todo_id == 0:
            raise NotFoundError("TODO")

        update = "UPDATE todos SET subject = ?, description = ? WHERE id = ?"
        confirm = "SELECT id, subject, description, created_at, updated_at FROM todos WHERE id = ?"
        conn = get_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(update, (subject, description, todo_id))
            affected = cursor.rowcount
            conn.commit()
            if affected == 0:
                raise NotFoundError("TODO")
            row = cursor.execute(confirm, (todo_id,)).fetchone()
            if row is None:
                raise NotFoundError("TODO")
            logger.info("Updated TODO %s", todo_id)
            return self._row_to_todo(row)
        except sqlite3.Error as exc:
            raise StoreError(f"failed to update TODO {todo_id}: {exc}", original_error=exc) from exc
        finally:
            conn.close()

    async def delete_todos(self, ids: Sequence[int]) -> None:
        """Delete every TODO whose identity is in ``ids`` in one statement.

        An empty ``ids`` is a no-op.  ``NotFoundError`` is raised only when
        no row at all was deleted; if some of the identities exist the
        call succeeds.
        """
        if not ids:
            return

        placeholders = ", ".join("?" for _ in ids)
        query = f"DELETE FROM todos WHERE id IN ({placeholders})"
        conn = get_connection(self.db_path)
        try:
            cursor = conn.cursor()
            cursor.execute(query, tuple(ids))
            affected = cursor.rowcount
            conn.commit()
        except sqlite3.Error as exc:
            raise StoreError(f"failed to delete TODOs: {exc}", original_error=exc) from exc
        finally:
            conn.close()
        if affected == 0:
            raise NotFoundError("TODO")
        logger.info("Deleted %s TODO(s)", affected)

    def _parse_timestamp(self, value: str) -> datetime:
        # The store writes naive UTC text such as "2024-01-31 09:30:00".
        stamp = datetime.fromisoformat(value)
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp.astimezone(self.tz)

    def _row_to_todo(self, row: sqlite3.Row) -> TODO:
        """Convert a database row to a TODO schema instance."""
        return TODO(
            id=row["id"],
            subject=row["subject"],
            description=row["description"],
            created_at=self._parse_timestamp(row["created_at"]),
            updated_at=self._parse_timestamp(row["updated_at"]),
        )
