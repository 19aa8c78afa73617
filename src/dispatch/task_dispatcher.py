"""Task dispatcher for blocking store work.

This module keeps the caller's thread responsive by running imports,
deletes, page queries, and listings on worker threads. Writers for one
store run on a dedicated single-thread lane so they commit strictly in
submission order; readers share a bounded pool and rely on the store
handle's reader/writer lock to stay out of active write transactions.
"""

from __future__ import annotations

import itertools
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence

from core.constants import DEFAULT_MAX_WORKERS, DEFAULT_PAGE_SIZE, DEFAULT_RAGGED_POLICY
from core.errors import TabstoreDispatchError
from core.logging_config import get_logger
from core.types import RaggedPolicy
from dispatch.task_types import CompletionListener, TaskCompletion
from ingest.import_pipeline import import_dataset
from serve.page_query import query_page
from store.dataset_registry import DatasetRegistry
from store.store_manager import StoreHandle

_LOGGER = get_logger(__name__)


class TaskDispatcher:
    """Work queue plus worker pools with per-store writer serialization."""

    def __init__(self, max_workers: int = DEFAULT_MAX_WORKERS) -> None:
        """Create dispatcher pools.

        Args:
            max_workers: Size of the shared reader pool.
        """
        self._reader_pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="tabstore-reader"
        )
        self._writer_lanes: dict[Path, ThreadPoolExecutor] = {}
        self._state_lock = threading.Lock()
        self._task_ids = itertools.count(1)
        self._generation = 0
        self._listeners: list[CompletionListener] = []
        self._closed = False

    def __enter__(self) -> "TaskDispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown(wait=True)

    @property
    def current_generation(self) -> int:
        """Return the latest generation token."""
        with self._state_lock:
            return self._generation

    def next_generation(self) -> int:
        """Advance and return the generation token.

        Completions of tasks submitted under an older token are stale for
        the caller but still finish, so storage stays consistent.
        """
        with self._state_lock:
            self._generation += 1
            return self._generation

    def is_current(self, completion: TaskCompletion) -> bool:
        """Return whether a completion belongs to the latest generation."""
        return completion.generation == self.current_generation

    def subscribe(self, listener: CompletionListener) -> None:
        """Register a listener that receives every completion."""
        with self._state_lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: CompletionListener) -> None:
        """Remove a completion listener if present."""
        with self._state_lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def submit_write(
        self,
        handle: StoreHandle,
        operation: str,
        fn: Callable[..., Any],
        *args: Any,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
        **kwargs: Any,
    ) -> "Future[TaskCompletion]":
        """Queue a writer task on the store's serialized lane.

        Args:
            handle: Store the task writes to.
            operation: Label carried by the completion.
            fn: Callable executed on the writer lane.
            on_complete: Optional callback invoked with the completion.
            generation: Token to stamp; defaults to the current generation.

        Returns:
            Future resolving to the task completion.
        """
        return self._submit(
            handle, True, operation, fn, args, kwargs, on_complete, generation
        )

    def submit_read(
        self,
        handle: StoreHandle,
        operation: str,
        fn: Callable[..., Any],
        *args: Any,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
        **kwargs: Any,
    ) -> "Future[TaskCompletion]":
        """Queue a reader task on the shared reader pool.

        Args:
            handle: Store the task reads from.
            operation: Label carried by the completion.
            fn: Callable executed on a reader worker.
            on_complete: Optional callback invoked with the completion.
            generation: Token to stamp; defaults to the current generation.

        Returns:
            Future resolving to the task completion.
        """
        return self._submit(
            handle, False, operation, fn, args, kwargs, on_complete, generation
        )

    def submit_import(
        self,
        handle: StoreHandle,
        dataset_name: str,
        header: Sequence[object],
        rows: Iterable[Sequence[object]],
        ragged_policy: RaggedPolicy = DEFAULT_RAGGED_POLICY,
        registry: DatasetRegistry | None = None,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue an import; the completion value is the new ``Dataset``."""
        return self.submit_write(
            handle,
            "import",
            import_dataset,
            handle,
            dataset_name,
            header,
            rows,
            ragged_policy,
            registry,
            on_complete=on_complete,
            generation=generation,
        )

    def submit_delete(
        self,
        registry: DatasetRegistry,
        dataset_id: int,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue an idempotent dataset delete."""
        return self.submit_write(
            registry.handle,
            "delete",
            registry.delete,
            dataset_id,
            on_complete=on_complete,
            generation=generation,
        )

    def submit_query(
        self,
        handle: StoreHandle,
        dataset_id: int,
        page_index: int,
        page_size: int = DEFAULT_PAGE_SIZE,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue a page query; the completion value is a ``Page``."""
        return self.submit_read(
            handle,
            "query",
            query_page,
            handle,
            dataset_id,
            page_index,
            page_size,
            on_complete=on_complete,
            generation=generation,
        )

    def submit_list(
        self,
        registry: DatasetRegistry,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue a registry listing; the completion value is a dataset list."""
        return self.submit_read(
            registry.handle,
            "list",
            registry.list_datasets,
            on_complete=on_complete,
            generation=generation,
        )

    def submit_get(
        self,
        registry: DatasetRegistry,
        dataset_id: int,
        on_complete: CompletionListener | None = None,
        generation: int | None = None,
    ) -> "Future[TaskCompletion]":
        """Queue a single dataset lookup."""
        return self.submit_read(
            registry.handle,
            "get",
            registry.get,
            dataset_id,
            on_complete=on_complete,
            generation=generation,
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work and drain queued tasks.

        Args:
            wait: Block until queued tasks finish.
        """
        with self._state_lock:
            self._closed = True
            lanes = tuple(self._writer_lanes.values())
        for lane in lanes:
            lane.shutdown(wait=wait)
        self._reader_pool.shutdown(wait=wait)

    def _executor_for(self, handle: StoreHandle, writer: bool) -> ThreadPoolExecutor:
        """Pick the executor for a task; caller must hold ``_state_lock``."""
        if self._closed:
            raise TabstoreDispatchError(
                f"Dispatcher is shut down; cannot queue work for {handle.db_path}. "
                "Create a new dispatcher."
            )
        if not writer:
            return self._reader_pool
        lane = self._writer_lanes.get(handle.db_path)
        if lane is None:
            lane = ThreadPoolExecutor(max_workers=1, thread_name_prefix="tabstore-writer")
            self._writer_lanes[handle.db_path] = lane
        return lane

    def _submit(
        self,
        handle: StoreHandle,
        writer: bool,
        operation: str,
        fn: Callable[..., Any],
        args: tuple[Any, ...],
        kwargs: dict[str, Any],
        on_complete: CompletionListener | None,
        generation: int | None,
    ) -> "Future[TaskCompletion]":
        def _run(task_id: int, task_generation: int) -> TaskCompletion:
            try:
                value = fn(*args, **kwargs)
            except Exception as error:
                _LOGGER.warning(
                    "task_failed",
                    task_id=task_id,
                    operation=operation,
                    error_type=type(error).__name__,
                    error=str(error),
                )
                completion = TaskCompletion(
                    task_id=task_id,
                    operation=operation,
                    generation=task_generation,
                    error=error,
                )
            else:
                completion = TaskCompletion(
                    task_id=task_id,
                    operation=operation,
                    generation=task_generation,
                    value=value,
                )
            self._deliver(completion, on_complete)
            return completion

        # Queue under the same lock hold as the closed check.
        with self._state_lock:
            executor = self._executor_for(handle, writer)
            task_id = next(self._task_ids)
            task_generation = self._generation if generation is None else generation
            return executor.submit(_run, task_id, task_generation)

    def _deliver(
        self,
        completion: TaskCompletion,
        on_complete: CompletionListener | None,
    ) -> None:
        with self._state_lock:
            listeners = tuple(self._listeners)
        if on_complete is not None:
            listeners = (on_complete,) + listeners
        for listener in listeners:
            try:
                listener(completion)
            except Exception as error:
                _LOGGER.error(
                    "completion_listener_failed",
                    task_id=completion.task_id,
                    operation=completion.operation,
                    error=str(error),
                )
