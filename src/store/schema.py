"""SQLite schema for the EAV dataset layout.

This module owns table definitions and compatibility checks so the
store manager can create a fresh store or adopt an existing one.
"""

from __future__ import annotations

import sqlite3

from core.constants import (
    CELL_TABLE_COLUMNS,
    COLUMN_NAME_TABLE_COLUMNS,
    DATASET_TABLE_COLUMNS,
)
from core.errors import TabstoreStorageError

EXPECTED_TABLE_COLUMNS: dict[str, tuple[str, ...]] = {
    "dataset": DATASET_TABLE_COLUMNS,
    "column_name": COLUMN_NAME_TABLE_COLUMNS,
    "cell": CELL_TABLE_COLUMNS,
}

SCHEMA_STATEMENTS: tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS dataset (
        id           INTEGER PRIMARY KEY AUTOINCREMENT,
        row_count    INTEGER NOT NULL,
        column_count INTEGER NOT NULL,
        name         TEXT NOT NULL,
        created_at   TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS column_name (
        dataset_id INTEGER NOT NULL REFERENCES dataset(id) ON DELETE CASCADE,
        col_idx    INTEGER NOT NULL,
        name       TEXT NOT NULL,
        PRIMARY KEY (dataset_id, col_idx)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS cell (
        dataset_id INTEGER NOT NULL REFERENCES dataset(id) ON DELETE CASCADE,
        row_idx    INTEGER NOT NULL,
        col_idx    INTEGER NOT NULL,
        value      TEXT NOT NULL,
        PRIMARY KEY (dataset_id, row_idx, col_idx)
    )
    """,
)


def ensure_schema(conn: sqlite3.Connection) -> bool:
    """Create missing tables after checking existing ones for compatibility.

    Args:
        conn: Connection inside an open write transaction.

    Returns:
        ``True`` when at least one table was created.

    Raises:
        TabstoreStorageError: If an existing table has an unexpected shape.
    """
    existing_tables = _existing_tables(conn)
    for table_name, expected_columns in EXPECTED_TABLE_COLUMNS.items():
        if table_name in existing_tables:
            _check_table_columns(conn, table_name, expected_columns)
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)
    return not set(EXPECTED_TABLE_COLUMNS) <= existing_tables


def _existing_tables(conn: sqlite3.Connection) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
    return {str(row[0]) for row in rows}


def _check_table_columns(
    conn: sqlite3.Connection,
    table_name: str,
    expected_columns: tuple[str, ...],
) -> None:
    rows = conn.execute(f"PRAGMA table_info({table_name})").fetchall()
    actual_columns = tuple(str(row[1]) for row in rows)
    if actual_columns != expected_columns:
        raise TabstoreStorageError(
            f"Existing table '{table_name}' has columns {actual_columns}, "
            f"expected {expected_columns}. Point Tabstore at a new store file "
            "or migrate the existing one.",
            kind="schema_mismatch",
        )
