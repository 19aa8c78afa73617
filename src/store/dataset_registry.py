"""Dataset registry over the store.

This module tracks known datasets, supports listing, lookup, and
cascading deletion, and publishes commit/delete events to subscribers.
"""

from __future__ import annotations

import sqlite3
import threading
from datetime import datetime
from typing import Any, Callable, Sequence

from core.errors import TabstoreNotFoundError
from core.logging_config import get_logger
from core.types import Dataset, DatasetCommitted, DatasetDeleted, RegistryEvent
from store.store_manager import StoreHandle, storage_error_from_sqlite

_LOGGER = get_logger(__name__)

RegistryListener = Callable[[RegistryEvent], None]

_DATASET_COLUMNS_SQL = "id, name, row_count, column_count, created_at"


class DatasetRegistry:
    """Registry of datasets stored behind one store handle."""

    def __init__(self, handle: StoreHandle) -> None:
        """Create a registry bound to a store handle.

        Args:
            handle: Open store handle.
        """
        self._handle = handle
        self._listeners: list[RegistryListener] = []
        self._listeners_lock = threading.Lock()

    @property
    def handle(self) -> StoreHandle:
        """Return the store handle backing this registry."""
        return self._handle

    def subscribe(self, listener: RegistryListener) -> None:
        """Register a listener for commit and delete events."""
        with self._listeners_lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: RegistryListener) -> None:
        """Remove a previously registered listener if present."""
        with self._listeners_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def list_datasets(self) -> list[Dataset]:
        """List all datasets, most recent first.

        Returns:
            Datasets ordered by creation time descending.

        Raises:
            TabstoreStorageError: If the store cannot be read.
        """
        try:
            with self._handle.read() as conn:
                rows = conn.execute(
                    f"SELECT {_DATASET_COLUMNS_SQL} FROM dataset "
                    "ORDER BY created_at DESC, id DESC"
                ).fetchall()
        except sqlite3.Error as error:
            raise storage_error_from_sqlite(error, "list datasets") from error
        return [dataset_from_row(row) for row in rows]

    def get(self, dataset_id: int) -> Dataset:
        """Load one dataset by id.

        Args:
            dataset_id: Dataset identifier.

        Returns:
            Stored dataset descriptor.

        Raises:
            TabstoreNotFoundError: If the dataset does not exist.
        """
        try:
            with self._handle.read() as conn:
                dataset = load_dataset(conn, dataset_id)
        except sqlite3.Error as error:
            raise storage_error_from_sqlite(error, f"load dataset {dataset_id}") from error
        if dataset is None:
            raise TabstoreNotFoundError(
                f"Dataset {dataset_id} does not exist. "
                "Use list_datasets to discover valid dataset ids."
            )
        return dataset

    def delete(self, dataset_id: int) -> None:
        """Delete a dataset and all of its column and cell rows atomically.

        Deleting an unknown id succeeds without changes.

        Args:
            dataset_id: Dataset identifier.

        Raises:
            TabstoreStorageError: If the delete transaction fails.
        """
        try:
            with self._handle.write() as conn:
                if load_dataset(conn, dataset_id) is None:
                    _LOGGER.info("dataset_delete_skipped", dataset_id=dataset_id)
                    return
                conn.execute("DELETE FROM cell WHERE dataset_id = ?", (dataset_id,))
                conn.execute("DELETE FROM column_name WHERE dataset_id = ?", (dataset_id,))
                conn.execute("DELETE FROM dataset WHERE id = ?", (dataset_id,))
        except sqlite3.Error as error:
            raise storage_error_from_sqlite(error, f"delete dataset {dataset_id}") from error
        _LOGGER.info("dataset_deleted", dataset_id=dataset_id)
        self._publish(DatasetDeleted(dataset_id=dataset_id))

    def notify_committed(self, dataset: Dataset) -> None:
        """Publish a commit event for a freshly imported dataset."""
        self._publish(DatasetCommitted(dataset=dataset))

    def _publish(self, event: RegistryEvent) -> None:
        with self._listeners_lock:
            listeners = tuple(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as error:
                _LOGGER.error(
                    "registry_listener_failed",
                    event_type=type(event).__name__,
                    error=str(error),
                )


def load_dataset(conn: sqlite3.Connection, dataset_id: int) -> Dataset | None:
    """Read one dataset row inside an open transaction.

    Args:
        conn: Connection from ``StoreHandle.read`` or ``StoreHandle.write``.
        dataset_id: Dataset identifier.

    Returns:
        Dataset descriptor, or ``None`` when absent.
    """
    row = conn.execute(
        f"SELECT {_DATASET_COLUMNS_SQL} FROM dataset WHERE id = ?",
        (dataset_id,),
    ).fetchone()
    if row is None:
        return None
    return dataset_from_row(row)


def dataset_from_row(row: Sequence[Any]) -> Dataset:
    """Build a dataset descriptor from an ``id, name, row_count, column_count, created_at`` row."""
    return Dataset(
        dataset_id=int(row[0]),
        name=str(row[1]),
        row_count=int(row[2]),
        column_count=int(row[3]),
        created_at=datetime.fromisoformat(str(row[4])),
    )


def choose_next_after_delete(datasets: Sequence[Dataset], deleted_id: int) -> int | None:
    """Pick the dataset to select after one is deleted.

    Args:
        datasets: Datasets in display order, still including the deleted one.
        deleted_id: Identifier of the deleted dataset.

    Returns:
        The following dataset id, else the preceding one, else ``None``.
    """
    positions = [index for index, item in enumerate(datasets) if item.dataset_id == deleted_id]
    if not positions:
        return None
    position = positions[0]
    if position + 1 < len(datasets):
        return datasets[position + 1].dataset_id
    if position >= 1:
        return datasets[position - 1].dataset_id
    return None
