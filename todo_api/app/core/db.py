"""
SQLite database integration and simple migration system.

This module provides ``get_connection`` for obtaining a connection to
the TODO store and ``init_db`` for applying migrations on application
start.  Applied migration versions are stored in the ``migrations``
table and new migrations are executed in order.

Timestamps are assigned by the store in UTC (``DATETIME('now')``); the
``updated_at`` column is refreshed by a trigger on every update.
"""

import sqlite3
from pathlib import Path


MIGRATIONS: list[tuple[int, str]] = [
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS todos (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            subject TEXT NOT NULL,
            description TEXT NOT NULL DEFAULT '',
            created_at DATETIME NOT NULL DEFAULT (DATETIME('now')),
            updated_at DATETIME NOT NULL DEFAULT (DATETIME('now')),
            CHECK(subject <> '')
        );

        CREATE TRIGGER IF NOT EXISTS trigger_todos_updated_at AFTER UPDATE ON todos
        BEGIN
            UPDATE todos SET updated_at = DATETIME('now') WHERE id == NEW.id;
        END;
        """,
    ),
]


def get_connection(db_path: str) -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` so columns can be accessed by
    name.  Type detection is left off; timestamps come back as the text
    SQLite stored and are parsed by the service layer.
    """
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str) -> None:
    """Create the database file if needed and apply pending migrations."""
    parent = Path(db_path).parent
    parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version
        conn.commit()
    finally:
        conn.close()
