"""Transactional import of tabular record streams.

This module turns a header plus a lazy row stream into dataset, column,
and cell rows inside one write transaction. Any failure while consuming
the stream rolls back the whole attempt, so a dataset is either fully
visible or not present at all.
"""

from __future__ import annotations

import csv
import sqlite3
from datetime import datetime, timezone
from typing import Iterable, Sequence

from core.constants import DEFAULT_DATASET_NAME, DEFAULT_RAGGED_POLICY, IMPORT_CELL_BATCH_SIZE
from core.errors import TabstoreError, TabstoreImportError
from core.logging_config import get_logger
from core.types import Dataset, RaggedPolicy
from store.dataset_registry import DatasetRegistry
from store.store_manager import StoreHandle, storage_error_from_sqlite

_LOGGER = get_logger(__name__)

CellRow = tuple[int, int, int, str]


class ImportPipelineRunner:
    """Single-use runner for one dataset import."""

    def __init__(
        self,
        handle: StoreHandle,
        dataset_name: str,
        header: Sequence[object],
        rows: Iterable[Sequence[object]],
        ragged_policy: RaggedPolicy = DEFAULT_RAGGED_POLICY,
        registry: DatasetRegistry | None = None,
    ) -> None:
        self._handle = handle
        self._dataset_name = dataset_name.strip() or DEFAULT_DATASET_NAME
        self._header = tuple(_cell_text(value) for value in header)
        self._rows = rows
        self._ragged_policy = ragged_policy
        self._registry = registry

    def run(self) -> Dataset:
        """Validate, write, and commit the dataset.

        Returns:
            Finalized dataset descriptor.

        Raises:
            TabstoreImportError: If the header is empty or the stream is malformed.
            TabstoreStorageError: If the write transaction fails.
        """
        if not self._header:
            raise TabstoreImportError("Cannot import dataset: empty header.", kind="parse")
        try:
            dataset = self._write_dataset()
        except TabstoreError as error:
            self._log_rollback(error)
            raise
        except sqlite3.Error as error:
            self._log_rollback(error)
            raise storage_error_from_sqlite(
                error, f"import dataset '{self._dataset_name}'"
            ) from error
        except (csv.Error, ValueError) as error:
            self._log_rollback(error)
            raise TabstoreImportError(
                f"Failed to parse rows for dataset '{self._dataset_name}': {error}. "
                "Fix the source encoding or syntax and retry the import.",
                kind="parse",
            ) from error
        except OSError as error:
            self._log_rollback(error)
            raise TabstoreImportError(
                f"Failed to read rows for dataset '{self._dataset_name}': {error}. "
                "Check that the source is reachable and retry the import.",
                kind="io",
            ) from error
        if self._registry is not None:
            self._registry.notify_committed(dataset)
        _LOGGER.info(
            "import_completed",
            dataset_id=dataset.dataset_id,
            dataset_name=dataset.name,
            row_count=dataset.row_count,
            column_count=dataset.column_count,
            ragged_policy=self._ragged_policy,
        )
        return dataset

    def _write_dataset(self) -> Dataset:
        created_at = datetime.now(timezone.utc)
        column_count = len(self._header)
        with self._handle.write() as conn:
            cursor = conn.execute(
                "INSERT INTO dataset(row_count, column_count, name, created_at) "
                "VALUES (0, ?, ?, ?)",
                (column_count, self._dataset_name, created_at.isoformat()),
            )
            dataset_id = int(cursor.lastrowid or 0)
            conn.executemany(
                "INSERT INTO column_name(dataset_id, col_idx, name) VALUES (?, ?, ?)",
                [(dataset_id, col_idx, name) for col_idx, name in enumerate(self._header)],
            )
            row_count = self._insert_cells(conn, dataset_id, column_count)
            conn.execute(
                "UPDATE dataset SET row_count = ? WHERE id = ?",
                (row_count, dataset_id),
            )
        return Dataset(
            dataset_id=dataset_id,
            name=self._dataset_name,
            row_count=row_count,
            column_count=column_count,
            created_at=created_at,
        )

    def _insert_cells(self, conn: sqlite3.Connection, dataset_id: int, column_count: int) -> int:
        batch: list[CellRow] = []
        row_count = 0
        for row_idx, raw_row in enumerate(self._rows):
            values = fit_row(raw_row, column_count, self._ragged_policy, row_idx)
            batch.extend(
                (dataset_id, row_idx, col_idx, value) for col_idx, value in enumerate(values)
            )
            row_count += 1
            if len(batch) >= IMPORT_CELL_BATCH_SIZE:
                _flush_cells(conn, batch)
        _flush_cells(conn, batch)
        return row_count

    def _log_rollback(self, error: BaseException) -> None:
        _LOGGER.warning(
            "import_rolled_back",
            dataset_name=self._dataset_name,
            error_type=type(error).__name__,
            error=str(error),
        )


def import_dataset(
    handle: StoreHandle,
    dataset_name: str,
    header: Sequence[object],
    rows: Iterable[Sequence[object]],
    ragged_policy: RaggedPolicy = DEFAULT_RAGGED_POLICY,
    registry: DatasetRegistry | None = None,
) -> Dataset:
    """Import a header and row stream as a new dataset.

    Args:
        handle: Open store handle.
        dataset_name: Display name for the new dataset.
        header: Ordered column names; must not be empty.
        rows: Lazy row stream, consumed exactly once.
        ragged_policy: ``pad`` pads short rows and truncates long ones,
            ``reject`` fails the import on any width mismatch.
        registry: Optional registry notified after commit.

    Returns:
        Finalized dataset descriptor.

    Raises:
        TabstoreImportError: If the header is empty or rows cannot be parsed.
        TabstoreStorageError: If the write transaction fails.
    """
    runner = ImportPipelineRunner(handle, dataset_name, header, rows, ragged_policy, registry)
    return runner.run()


def fit_row(
    raw_row: Sequence[object],
    column_count: int,
    ragged_policy: RaggedPolicy,
    row_idx: int,
) -> list[str]:
    """Align one raw row to the header width.

    Args:
        raw_row: Raw row values.
        column_count: Header width.
        ragged_policy: Ragged row policy.
        row_idx: 0-based row position used in error messages.

    Returns:
        Exactly ``column_count`` text values.

    Raises:
        TabstoreImportError: If the policy is ``reject`` and widths differ.
    """
    values = [_cell_text(value) for value in raw_row]
    if len(values) == column_count:
        return values
    if ragged_policy == "reject":
        raise TabstoreImportError(
            f"Row {row_idx + 1} has {len(values)} fields, expected {column_count}. "
            "Fix the source row or import with the 'pad' ragged policy.",
            kind="parse",
        )
    if len(values) < column_count:
        return values + [""] * (column_count - len(values))
    return values[:column_count]


def _flush_cells(conn: sqlite3.Connection, batch: list[CellRow]) -> None:
    if not batch:
        return
    conn.executemany(
        "INSERT INTO cell(dataset_id, row_idx, col_idx, value) VALUES (?, ?, ?, ?)",
        batch,
    )
    batch.clear()


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)
