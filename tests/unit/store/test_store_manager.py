"""Unit tests for store opening and transactions."""

from __future__ import annotations

import sqlite3

import pytest

from core.errors import TabstoreStorageError
from store.store_manager import open_store, storage_error_from_sqlite


def _schema_sql(db_path) -> list[str]:
    conn = sqlite3.connect(str(db_path))
    try:
        rows = conn.execute("SELECT sql FROM sqlite_master ORDER BY name").fetchall()
    finally:
        conn.close()
    return [str(row[0]) for row in rows]


def test_open_store_creates_file_and_parent_directories(tmp_path) -> None:
    """Opening a new location should create the store file and its directory."""
    db_path = tmp_path / "nested" / "dir" / "store.db"

    handle = open_store(db_path)

    assert handle.db_path == db_path.resolve() and db_path.exists()


def test_open_store_twice_is_idempotent(tmp_path) -> None:
    """Reopening a valid store should not change its schema."""
    db_path = tmp_path / "store.db"
    open_store(db_path)
    schema_before = _schema_sql(db_path)

    open_store(db_path)

    assert _schema_sql(db_path) == schema_before


def test_open_store_rejects_directory_location(tmp_path) -> None:
    """A directory is not a valid store location."""
    with pytest.raises(TabstoreStorageError) as error_info:
        open_store(tmp_path)

    assert error_info.value.kind == "io"


def test_open_store_rejects_incompatible_schema(tmp_path) -> None:
    """An existing table with a different shape should be a schema mismatch."""
    db_path = tmp_path / "store.db"
    conn = sqlite3.connect(str(db_path))
    conn.execute("CREATE TABLE dataset (id INTEGER PRIMARY KEY, title TEXT)")
    conn.commit()
    conn.close()

    with pytest.raises(TabstoreStorageError) as error_info:
        open_store(db_path)

    assert error_info.value.kind == "schema_mismatch"


def test_open_store_rejects_non_database_file(tmp_path) -> None:
    """A file that is not SQLite should surface as an io failure."""
    db_path = tmp_path / "store.db"
    db_path.write_bytes(b"this is definitely not a sqlite database file" * 20)

    with pytest.raises(TabstoreStorageError) as error_info:
        open_store(db_path)

    assert error_info.value.kind == "io"


def test_write_rolls_back_on_exception(tmp_path) -> None:
    """Rows written inside a failing write block should not persist."""
    handle = open_store(tmp_path / "store.db")

    with pytest.raises(RuntimeError):
        with handle.write() as conn:
            conn.execute(
                "INSERT INTO dataset(row_count, column_count, name, created_at) "
                "VALUES (0, 1, 'x', '2024-01-01T00:00:00+00:00')"
            )
            raise RuntimeError("boom")

    with handle.read() as conn:
        count = conn.execute("SELECT COUNT(*) FROM dataset").fetchone()[0]
    assert count == 0


def test_closed_handle_rejects_reads(tmp_path) -> None:
    """A closed handle should refuse further transactions."""
    handle = open_store(tmp_path / "store.db")
    handle.close()

    with pytest.raises(TabstoreStorageError):
        with handle.read():
            pass
    assert handle.closed


def test_storage_error_from_sqlite_maps_open_failures_to_io() -> None:
    """Unreachable store messages should map to the io kind."""
    error = storage_error_from_sqlite(
        sqlite3.OperationalError("unable to open database file"), "open store"
    )

    assert error.kind == "io"


def test_storage_error_from_sqlite_defaults_to_storage_kind() -> None:
    """Other sqlite failures should map to the storage kind."""
    error = storage_error_from_sqlite(
        sqlite3.IntegrityError("UNIQUE constraint failed"), "insert cell"
    )

    assert error.kind == "storage"
