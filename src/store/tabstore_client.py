"""Python SDK for tabular dataset operations.

This module exposes high-level APIs for import, listing, paging, and
deletion backed by one store handle and a task dispatcher.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import replace
from pathlib import Path
from typing import Any, Iterable, Sequence

from core.config import TabstoreConfig
from core.run_spec_execution import execute_run_spec_file
from core.types import Dataset, Page, RaggedPolicy
from dispatch.task_dispatcher import TaskDispatcher
from dispatch.task_types import CompletionListener, TaskCompletion
from ingest.import_pipeline import import_dataset
from ingest.input_reader import read_tabular_source
from store.dataset_registry import DatasetRegistry, RegistryListener
from store.store_manager import StoreHandle, open_store


class TabstoreClient:
    """Primary SDK entry point for tabular datasets."""

    def __init__(self, config: TabstoreConfig | None = None) -> None:
        """Create SDK client and open its store.

        Args:
            config: Optional runtime configuration.

        Raises:
            TabstoreStorageError: If the store cannot be opened.
        """
        self._config = config or TabstoreConfig.from_env()
        self._handle = open_store(self._config.db_path)
        self._registry = DatasetRegistry(self._handle)
        self._dispatcher = TaskDispatcher(max_workers=self._config.max_workers)

    def __enter__(self) -> "TabstoreClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def config(self) -> TabstoreConfig:
        """Return the runtime configuration."""
        return self._config

    @property
    def handle(self) -> StoreHandle:
        """Return the open store handle."""
        return self._handle

    @property
    def registry(self) -> DatasetRegistry:
        """Return the dataset registry."""
        return self._registry

    @property
    def dispatcher(self) -> TaskDispatcher:
        """Return the task dispatcher."""
        return self._dispatcher

    def subscribe(self, listener: RegistryListener) -> None:
        """Register a listener for dataset commit and delete events."""
        self._registry.subscribe(listener)

    def unsubscribe(self, listener: RegistryListener) -> None:
        """Remove a registry event listener."""
        self._registry.unsubscribe(listener)

    def import_rows(
        self,
        name: str,
        header: Sequence[object],
        rows: Iterable[Sequence[object]],
        ragged_policy: RaggedPolicy | None = None,
    ) -> Dataset:
        """Import an in-memory or streamed table as a new dataset.

        Args:
            name: Dataset display name.
            header: Ordered column names.
            rows: Row stream consumed once.
            ragged_policy: Override for the configured ragged policy.

        Returns:
            Committed dataset descriptor.

        Raises:
            TabstoreImportError: If the header is empty or rows are malformed.
            TabstoreStorageError: If the write transaction fails.
        """
        return _wait(self.submit_import_rows(name, header, rows, ragged_policy))

    def submit_import_rows(
        self,
        name: str,
        header: Sequence[object],
        rows: Iterable[Sequence[object]],
        ragged_policy: RaggedPolicy | None = None,
        on_complete: CompletionListener | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue a row import; see ``import_rows``."""
        return self._dispatcher.submit_import(
            self._handle,
            name,
            header,
            rows,
            ragged_policy or self._config.ragged_policy,
            self._registry,
            on_complete=on_complete,
        )

    def import_file(
        self,
        source_uri: str,
        name: str | None = None,
        sheet_name: str | None = None,
        ragged_policy: RaggedPolicy | None = None,
    ) -> Dataset:
        """Import a CSV, spreadsheet, or S3 CSV source as a new dataset.

        Args:
            source_uri: Local path or ``s3://`` URI.
            name: Dataset display name; derived from the source when omitted.
            sheet_name: Spreadsheet sheet to import.
            ragged_policy: Override for the configured ragged policy.

        Returns:
            Committed dataset descriptor.
        """
        return _wait(self.submit_import_file(source_uri, name, sheet_name, ragged_policy))

    def submit_import_file(
        self,
        source_uri: str,
        name: str | None = None,
        sheet_name: str | None = None,
        ragged_policy: RaggedPolicy | None = None,
        on_complete: CompletionListener | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue a file import; the source is opened on the writer lane."""
        return self._dispatcher.submit_write(
            self._handle,
            "import",
            self._import_source,
            source_uri,
            name,
            sheet_name,
            ragged_policy or self._config.ragged_policy,
            on_complete=on_complete,
        )

    def list_datasets(self) -> list[Dataset]:
        """List datasets, most recent first."""
        return _wait(self.submit_list_datasets())

    def submit_list_datasets(
        self, on_complete: CompletionListener | None = None
    ) -> "Future[TaskCompletion]":
        """Queue a dataset listing."""
        return self._dispatcher.submit_list(self._registry, on_complete=on_complete)

    def get_dataset(self, dataset_id: int) -> Dataset:
        """Load one dataset descriptor.

        Raises:
            TabstoreNotFoundError: If the dataset does not exist.
        """
        return _wait(self._dispatcher.submit_get(self._registry, dataset_id))

    def delete_dataset(self, dataset_id: int) -> None:
        """Delete a dataset; unknown ids are a no-op."""
        _wait(self.submit_delete_dataset(dataset_id))

    def submit_delete_dataset(
        self,
        dataset_id: int,
        on_complete: CompletionListener | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue a dataset delete."""
        return self._dispatcher.submit_delete(self._registry, dataset_id, on_complete=on_complete)

    def page(
        self,
        dataset_id: int,
        page_index: int = 0,
        page_size: int | None = None,
    ) -> Page:
        """Return one page of dataset rows.

        Args:
            dataset_id: Dataset identifier.
            page_index: 0-based page number.
            page_size: Rows per page; the configured default when omitted.

        Returns:
            Page of row-major values.
        """
        return _wait(self.submit_page(dataset_id, page_index, page_size))

    def submit_page(
        self,
        dataset_id: int,
        page_index: int = 0,
        page_size: int | None = None,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue a page query."""
        return self._dispatcher.submit_query(
            self._handle,
            dataset_id,
            page_index,
            self._config.page_size if page_size is None else page_size,
            on_complete=on_complete,
            generation=generation,
        )

    def with_db_path(self, db_path: str) -> "TabstoreClient":
        """Clone the client with a different store location.

        Args:
            db_path: New SQLite store path.

        Returns:
            New SDK client instance; the caller owns closing it.
        """
        resolved_path = Path(db_path).expanduser().resolve()
        return TabstoreClient(replace(self._config, db_path=resolved_path))

    def run_spec(self, spec_file: str) -> tuple[str, ...]:
        """Execute a YAML run-spec through the shared execution engine.

        Args:
            spec_file: Path to YAML run-spec file.

        Returns:
            Ordered command output lines.
        """
        return execute_run_spec_file(self, spec_file)

    def close(self) -> None:
        """Drain queued work and close the store."""
        self._dispatcher.shutdown(wait=True)
        self._handle.close()

    def _import_source(
        self,
        source_uri: str,
        name: str | None,
        sheet_name: str | None,
        ragged_policy: RaggedPolicy,
    ) -> Dataset:
        source = read_tabular_source(source_uri, self._config, sheet_name=sheet_name)
        try:
            return import_dataset(
                self._handle,
                name or source.name,
                source.header,
                source.rows,
                ragged_policy,
                self._registry,
            )
        finally:
            source.rows.close()


def _wait(future: "Future[TaskCompletion]") -> Any:
    return future.result().unwrap()
