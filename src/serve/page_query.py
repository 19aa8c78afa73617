"""Paginated row reconstruction from cell storage.

This module serves bounded windows of a dataset by reading its cells
for a row range and reassembling them into row-major order.
"""

from __future__ import annotations

import math
import sqlite3

from core.constants import DEFAULT_PAGE_SIZE
from core.errors import TabstoreNotFoundError, TabstoreQueryError
from core.logging_config import get_logger
from core.types import Cell, ColumnName, Dataset, Page
from store.dataset_registry import load_dataset
from store.store_manager import StoreHandle, storage_error_from_sqlite

_LOGGER = get_logger(__name__)


def query_page(
    handle: StoreHandle,
    dataset_id: int,
    page_index: int,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> Page:
    """Return one page of rows for a dataset.

    Args:
        handle: Open store handle.
        dataset_id: Dataset identifier.
        page_index: 0-based page number.
        page_size: Maximum rows per page.

    Returns:
        Page with row-major values. Pages past the end are empty.

    Raises:
        TabstoreQueryError: ``invalid`` for bad paging arguments,
            ``corrupt`` when stored cells do not match the dataset shape.
        TabstoreNotFoundError: If the dataset does not exist.
    """
    _validate_paging(page_index, page_size)
    try:
        with handle.read() as conn:
            dataset = load_dataset(conn, dataset_id)
            if dataset is None:
                raise TabstoreNotFoundError(
                    f"Dataset {dataset_id} does not exist. "
                    "Use list_datasets to discover valid dataset ids."
                )
            columns = _load_columns(conn, dataset)
            start_row = page_index * page_size
            end_row = min(start_row + page_size, dataset.row_count)
            rows: tuple[tuple[str, ...], ...] = ()
            if start_row < dataset.row_count:
                rows = _load_rows(conn, dataset, start_row, end_row)
    except sqlite3.Error as error:
        raise storage_error_from_sqlite(error, f"read page {page_index} of {dataset_id}") from error
    page = Page(
        dataset_id=dataset.dataset_id,
        page_index=page_index,
        page_size=page_size,
        total_rows=dataset.row_count,
        total_pages=total_pages(dataset.row_count, page_size),
        columns=columns,
        rows=rows,
    )
    _LOGGER.debug(
        "page_served",
        dataset_id=dataset_id,
        page_index=page_index,
        page_size=page_size,
        row_count=len(rows),
    )
    return page


def total_pages(row_count: int, page_size: int) -> int:
    """Return ``ceil(row_count / page_size)``, zero for an empty dataset."""
    return math.ceil(row_count / page_size) if row_count > 0 else 0


def _validate_paging(page_index: int, page_size: int) -> None:
    if page_index < 0:
        raise TabstoreQueryError(
            f"Invalid page index {page_index}: expected a non-negative integer.",
            kind="invalid",
        )
    if page_size <= 0:
        raise TabstoreQueryError(
            f"Invalid page size {page_size}: expected a positive integer.",
            kind="invalid",
        )


def _load_columns(conn: sqlite3.Connection, dataset: Dataset) -> tuple[str, ...]:
    columns = [
        ColumnName(dataset_id=dataset.dataset_id, col_idx=int(col_idx), name=str(name))
        for col_idx, name in conn.execute(
            "SELECT col_idx, name FROM column_name WHERE dataset_id = ? ORDER BY col_idx",
            (dataset.dataset_id,),
        )
    ]
    col_indexes = [column.col_idx for column in columns]
    if col_indexes != list(range(dataset.column_count)):
        raise TabstoreQueryError(
            f"Dataset {dataset.dataset_id} declares {dataset.column_count} columns "
            f"but stores column indexes {col_indexes}. Re-import the dataset.",
            kind="corrupt",
        )
    return tuple(column.name for column in columns)


def _load_rows(
    conn: sqlite3.Connection,
    dataset: Dataset,
    start_row: int,
    end_row: int,
) -> tuple[tuple[str, ...], ...]:
    cells = conn.execute(
        "SELECT row_idx, col_idx, value FROM cell "
        "WHERE dataset_id = ? AND row_idx >= ? AND row_idx < ? "
        "ORDER BY row_idx, col_idx",
        (dataset.dataset_id, start_row, end_row),
    )
    width = dataset.column_count
    expected_row = start_row
    expected_col = 0
    current: list[str] = []
    rows: list[tuple[str, ...]] = []
    for row_idx, col_idx, value in cells:
        cell = Cell(dataset.dataset_id, int(row_idx), int(col_idx), str(value))
        if (cell.row_idx, cell.col_idx) != (expected_row, expected_col):
            raise _corrupt_cell_error(dataset, expected_row, expected_col)
        current.append(cell.value)
        expected_col += 1
        if expected_col == width:
            rows.append(tuple(current))
            current = []
            expected_row += 1
            expected_col = 0
    if expected_row != end_row:
        raise _corrupt_cell_error(dataset, expected_row, expected_col)
    return tuple(rows)


def _corrupt_cell_error(dataset: Dataset, row_idx: int, col_idx: int) -> TabstoreQueryError:
    return TabstoreQueryError(
        f"Dataset {dataset.dataset_id} is missing the cell at row {row_idx}, "
        f"column {col_idx}. The stored grid no longer matches its "
        f"{dataset.row_count}x{dataset.column_count} shape; re-import the dataset.",
        kind="corrupt",
    )
