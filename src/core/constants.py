"""Core constants used across Tabstore modules.

Defaults for configuration, import batching, and the on-disk table layout
shared by the store, ingest, and serve packages.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_DB_PATH = Path(".tabstore") / "tabstore.db"
DEFAULT_PAGE_SIZE = 50
DEFAULT_MAX_WORKERS = 4
DEFAULT_RAGGED_POLICY = "pad"
SUPPORTED_RAGGED_POLICIES = ("pad", "reject")
DEFAULT_DATASET_NAME = "dataset"
IMPORT_CELL_BATCH_SIZE = 5000
SQLITE_BUSY_TIMEOUT_SECONDS = 30.0
SPREADSHEET_EXTENSIONS = (".xlsx", ".xlsm")
CSV_ENCODING = "utf-8-sig"
GENERATED_COLUMN_PREFIX = "column_"
DATASET_TABLE_COLUMNS = ("id", "row_count", "column_count", "name", "created_at")
COLUMN_NAME_TABLE_COLUMNS = ("dataset_id", "col_idx", "name")
CELL_TABLE_COLUMNS = ("dataset_id", "row_idx", "col_idx", "value")
