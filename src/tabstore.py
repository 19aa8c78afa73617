"""Public SDK surface for Tabstore.

This module provides a stable import path for SDK users.
It re-exports the primary client, config, and typed models.
"""

from __future__ import annotations

from core.config import TabstoreConfig
from core.errors import (
    TabstoreError,
    TabstoreImportError,
    TabstoreNotFoundError,
    TabstoreQueryError,
    TabstoreStorageError,
)
from core.types import Cell, ColumnName, Dataset, DatasetCommitted, DatasetDeleted, Page
from dispatch.task_dispatcher import TaskDispatcher
from dispatch.task_types import TaskCompletion
from ingest.import_pipeline import import_dataset
from serve.page_query import query_page
from store.dataset_registry import DatasetRegistry, choose_next_after_delete
from store.store_manager import StoreHandle, open_store
from store.tabstore_client import TabstoreClient

__all__ = [
    "Cell",
    "ColumnName",
    "Dataset",
    "DatasetCommitted",
    "DatasetDeleted",
    "DatasetRegistry",
    "Page",
    "StoreHandle",
    "TabstoreClient",
    "TabstoreConfig",
    "TabstoreError",
    "TabstoreImportError",
    "TabstoreNotFoundError",
    "TabstoreQueryError",
    "TabstoreStorageError",
    "TaskCompletion",
    "TaskDispatcher",
    "choose_next_after_delete",
    "import_dataset",
    "open_store",
    "query_page",
]
