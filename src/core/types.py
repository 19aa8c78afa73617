"""Shared typed models.

This module defines immutable data models used by the store, import,
query, and dispatch layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Generator, Literal, Sequence, Union

RaggedPolicy = Literal["pad", "reject"]


@dataclass(frozen=True)
class Dataset:
    """One imported table with a fixed row/column shape.

    Attributes:
        dataset_id: Store-generated identifier, never reused.
        name: Display name chosen at import time.
        row_count: Number of stored rows.
        column_count: Number of stored columns.
        created_at: UTC creation timestamp.
    """

    dataset_id: int
    name: str
    row_count: int
    column_count: int
    created_at: datetime


@dataclass(frozen=True)
class ColumnName:
    """Header entry of a dataset at a 0-based column index."""

    dataset_id: int
    col_idx: int
    name: str


@dataclass(frozen=True)
class Cell:
    """One stored value of the dense dataset grid."""

    dataset_id: int
    row_idx: int
    col_idx: int
    value: str


@dataclass(frozen=True)
class Page:
    """Bounded, ordered window of dataset rows.

    Attributes:
        dataset_id: Dataset the page belongs to.
        page_index: 0-based page number.
        page_size: Maximum rows per page.
        total_rows: Row count of the whole dataset.
        total_pages: ``ceil(total_rows / page_size)``.
        columns: Header names in column order.
        rows: Row-major values, each row ``len(columns)`` wide.
    """

    dataset_id: int
    page_index: int
    page_size: int
    total_rows: int
    total_pages: int
    columns: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]


@dataclass(frozen=True)
class TabularSource:
    """Header plus lazy row stream read from a source file.

    Attributes:
        name: Suggested dataset display name.
        source_uri: Origin path or URI.
        header: Ordered column names.
        rows: Lazy row generator; closing it releases the underlying file.
    """

    name: str
    source_uri: str
    header: tuple[str, ...]
    rows: Generator[Sequence[str], None, None]


@dataclass(frozen=True)
class DatasetCommitted:
    """Event published after an import transaction commits."""

    dataset: Dataset


@dataclass(frozen=True)
class DatasetDeleted:
    """Event published after a delete transaction commits."""

    dataset_id: int


RegistryEvent = Union[DatasetCommitted, DatasetDeleted]
