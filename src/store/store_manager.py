"""Store manager for the SQLite dataset store.

This module opens or creates the persistent store and hands out a
``StoreHandle``. The handle is the single gateway to the store file and
enforces one active writer at a time with free concurrent readers.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from core.constants import SQLITE_BUSY_TIMEOUT_SECONDS
from core.errors import ErrorKind, TabstoreStorageError
from core.logging_config import get_logger
from store.read_write_lock import ReadWriteLock
from store.schema import ensure_schema

_LOGGER = get_logger(__name__)
_IO_ERROR_MARKERS = (
    "unable to open",
    "readonly",
    "read-only",
    "disk i/o",
    "not a database",
    "is a directory",
)


class StoreHandle:
    """Explicit session handle for one store file.

    Every component receives a handle instead of opening the store itself.
    Each ``read`` or ``write`` block gets its own short-lived connection, so
    a transaction always starts and ends inside one worker call.
    """

    def __init__(self, db_path: Path) -> None:
        """Create a handle for an already-initialized store file.

        Args:
            db_path: Resolved path of the SQLite store file.
        """
        self._db_path = db_path
        self._lock = ReadWriteLock()
        self._closed = False

    @property
    def db_path(self) -> Path:
        """Return the store file path."""
        return self._db_path

    @property
    def closed(self) -> bool:
        """Return whether the handle has been closed."""
        return self._closed

    def close(self) -> None:
        """Mark the handle closed; later reads and writes fail."""
        self._closed = True

    def __enter__(self) -> "StoreHandle":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def read(self) -> Iterator[sqlite3.Connection]:
        """Open a read transaction under the shared lock.

        Yields:
            Connection holding a consistent read snapshot.

        Raises:
            TabstoreStorageError: If the handle is closed or the store is unreachable.
        """
        self._ensure_open()
        with self._lock.read_locked():
            conn = self._connect()
            try:
                _begin(conn, self._db_path)
                yield conn
            finally:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                conn.close()

    @contextmanager
    def write(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction under the exclusive lock.

        Commits when the block exits cleanly and rolls back on any exception.

        Yields:
            Connection inside ``BEGIN IMMEDIATE``.

        Raises:
            TabstoreStorageError: If the handle is closed, the store is
                unreachable, or commit fails.
        """
        self._ensure_open()
        with self._lock.write_locked():
            conn = self._connect()
            try:
                _begin_immediate(conn, self._db_path)
                try:
                    yield conn
                except BaseException:
                    if conn.in_transaction:
                        conn.execute("ROLLBACK")
                    raise
                _commit(conn, self._db_path)
            finally:
                conn.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise TabstoreStorageError(
                f"Store handle for {self._db_path} is closed. Open the store again."
            )

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(
                str(self._db_path),
                timeout=SQLITE_BUSY_TIMEOUT_SECONDS,
                isolation_level=None,
                check_same_thread=False,
            )
            conn.execute("PRAGMA foreign_keys = ON")
        except sqlite3.Error as error:
            raise storage_error_from_sqlite(error, f"open store at {self._db_path}") from error
        return conn


def open_store(location: str | Path) -> StoreHandle:
    """Open or create the store and its schema.

    Args:
        location: Caller-provided store file path.

    Returns:
        Handle for the initialized store.

    Raises:
        TabstoreStorageError: ``io`` when the path cannot be created or opened,
            ``schema_mismatch`` when an incompatible schema already exists.
    """
    db_path = Path(location).expanduser().resolve()
    if db_path.is_dir():
        raise TabstoreStorageError(
            f"Store location {db_path} is a directory. Provide a file path.",
            kind="io",
        )
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as error:
        raise TabstoreStorageError(
            f"Failed to create store directory {db_path.parent}: {error}. "
            "Check write permissions for the store location.",
            kind="io",
        ) from error
    handle = StoreHandle(db_path)
    try:
        with handle.write() as conn:
            created = ensure_schema(conn)
    except sqlite3.Error as error:
        raise storage_error_from_sqlite(error, f"initialize schema at {db_path}") from error
    _LOGGER.info("store_opened", db_path=str(db_path), schema_created=created)
    return handle


def storage_error_from_sqlite(error: sqlite3.Error, action: str) -> TabstoreStorageError:
    """Translate a sqlite3 error into a typed storage error.

    Args:
        error: Raised sqlite3 error.
        action: Short description of the failed action.

    Returns:
        Storage error with ``io`` or ``storage`` kind.
    """
    message = str(error)
    kind: ErrorKind = "storage"
    if any(marker in message.lower() for marker in _IO_ERROR_MARKERS):
        kind = "io"
    return TabstoreStorageError(f"Failed to {action}: {message}.", kind=kind)


def _begin(conn: sqlite3.Connection, db_path: Path) -> None:
    try:
        conn.execute("BEGIN")
    except sqlite3.Error as error:
        raise storage_error_from_sqlite(error, f"start read transaction on {db_path}") from error


def _begin_immediate(conn: sqlite3.Connection, db_path: Path) -> None:
    try:
        conn.execute("BEGIN IMMEDIATE")
    except sqlite3.Error as error:
        raise storage_error_from_sqlite(error, f"start write transaction on {db_path}") from error


def _commit(conn: sqlite3.Connection, db_path: Path) -> None:
    try:
        conn.execute("COMMIT")
    except sqlite3.Error as error:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise storage_error_from_sqlite(error, f"commit transaction on {db_path}") from error
