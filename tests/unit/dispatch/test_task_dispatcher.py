"""Unit tests for the task dispatcher."""

from __future__ import annotations

import threading
import time

import pytest

from core.errors import TabstoreDispatchError, TabstoreNotFoundError
from dispatch.task_dispatcher import TaskDispatcher
from dispatch.task_types import TaskCompletion
from store.dataset_registry import DatasetRegistry
from store.store_manager import open_store


def test_submit_query_runs_off_the_calling_thread(tmp_path) -> None:
    """Storage work should execute on a worker thread."""
    handle = open_store(tmp_path / "store.db")
    caller_thread = threading.get_ident()
    worker_threads: list[int] = []

    with TaskDispatcher(max_workers=2) as dispatcher:
        future = dispatcher.submit_read(
            handle, "record_thread", lambda: worker_threads.append(threading.get_ident())
        )
        future.result()

    assert worker_threads and worker_threads[0] != caller_thread


def test_submit_returns_without_waiting_for_the_task(tmp_path) -> None:
    """Submission should return before a slow task completes."""
    handle = open_store(tmp_path / "store.db")
    release = threading.Event()

    with TaskDispatcher() as dispatcher:
        future = dispatcher.submit_write(handle, "slow", release.wait, 5)
        pending = not future.done()
        release.set()
        future.result()

    assert pending


def test_concurrent_imports_are_serialized_and_retained(tmp_path) -> None:
    """Concurrent imports should commit as distinct datasets without interleaving."""
    handle = open_store(tmp_path / "store.db")
    registry = DatasetRegistry(handle)
    order: list[str] = []

    def _rows(label: str):
        order.append(f"{label}-start")
        for index in range(200):
            yield [label, str(index)]
        time.sleep(0.05)
        order.append(f"{label}-end")

    with TaskDispatcher(max_workers=4) as dispatcher:
        first = dispatcher.submit_import(
            handle, "first", ["label", "n"], _rows("first"), registry=registry
        )
        second = dispatcher.submit_import(
            handle, "second", ["label", "n"], _rows("second"), registry=registry
        )
        datasets = [first.result().unwrap(), second.result().unwrap()]

    assert order == ["first-start", "first-end", "second-start", "second-end"] and {
        item.name for item in registry.list_datasets()
    } == {"first", "second"} and datasets[0].dataset_id != datasets[1].dataset_id


def test_reads_do_not_overlap_an_active_write(tmp_path) -> None:
    """A read submitted during a write should run after the write commits."""
    handle = open_store(tmp_path / "store.db")
    registry = DatasetRegistry(handle)
    write_started = threading.Event()

    def _slow_rows():
        write_started.set()
        time.sleep(0.1)
        yield ["1"]

    with TaskDispatcher() as dispatcher:
        import_future = dispatcher.submit_import(
            handle, "slow", ["a"], _slow_rows(), registry=registry
        )
        write_started.wait()
        list_future = dispatcher.submit_list(registry)
        listed = list_future.result().unwrap()
        dataset = import_future.result().unwrap()

    assert listed == [dataset]


def test_failed_task_returns_error_completion(tmp_path) -> None:
    """Task exceptions should be delivered as typed completion errors."""
    handle = open_store(tmp_path / "store.db")

    with TaskDispatcher() as dispatcher:
        completion = dispatcher.submit_query(handle, 42, 0, 50).result()

    assert not completion.ok and isinstance(completion.error, TabstoreNotFoundError)


def test_unwrap_reraises_task_error(tmp_path) -> None:
    """Unwrapping a failed completion should raise the original error."""
    handle = open_store(tmp_path / "store.db")

    with TaskDispatcher() as dispatcher:
        completion = dispatcher.submit_get(DatasetRegistry(handle), 7).result()

    with pytest.raises(TabstoreNotFoundError):
        completion.unwrap()
    assert completion.operation == "get"


def test_completion_callbacks_and_subscribers_receive_results(tmp_path) -> None:
    """Both the per-task callback and subscribers should see each completion."""
    handle = open_store(tmp_path / "store.db")
    registry = DatasetRegistry(handle)
    received: list[tuple[str, str]] = []

    with TaskDispatcher() as dispatcher:
        dispatcher.subscribe(
            lambda completion: received.append(("subscriber", completion.operation))
        )
        dispatcher.submit_list(
            registry,
            on_complete=lambda completion: received.append(("callback", completion.operation)),
        ).result()

    assert received == [("callback", "list"), ("subscriber", "list")]


def test_stale_generation_is_detectable(tmp_path) -> None:
    """Completions from an older generation should be marked stale."""
    handle = open_store(tmp_path / "store.db")
    registry = DatasetRegistry(handle)

    with TaskDispatcher() as dispatcher:
        stale = dispatcher.submit_list(registry, generation=dispatcher.next_generation()).result()
        dispatcher.next_generation()
        current = dispatcher.submit_list(registry).result()

    assert (dispatcher.is_current(stale), dispatcher.is_current(current)) == (False, True)


def test_failing_listener_does_not_lose_completion(tmp_path) -> None:
    """A raising callback should not prevent the future from resolving."""
    handle = open_store(tmp_path / "store.db")

    def _broken(completion: TaskCompletion) -> None:
        raise RuntimeError("listener failed")

    with TaskDispatcher() as dispatcher:
        completion = dispatcher.submit_list(DatasetRegistry(handle), on_complete=_broken).result()

    assert completion.ok and completion.value == []


def test_submit_after_shutdown_raises(tmp_path) -> None:
    """A shut down dispatcher should reject new work."""
    handle = open_store(tmp_path / "store.db")
    dispatcher = TaskDispatcher()
    dispatcher.shutdown()

    with pytest.raises(TabstoreDispatchError):
        dispatcher.submit_list(DatasetRegistry(handle))
    assert True


def test_task_ids_increase_per_submission(tmp_path) -> None:
    """Each submission should receive a larger task id."""
    handle = open_store(tmp_path / "store.db")
    registry = DatasetRegistry(handle)

    with TaskDispatcher() as dispatcher:
        first = dispatcher.submit_list(registry).result()
        second = dispatcher.submit_list(registry).result()

    assert second.task_id > first.task_id


def test_submissions_racing_shutdown_are_accepted_or_rejected_cleanly(tmp_path) -> None:
    """Work submitted during shutdown should either run or raise a dispatch error."""
    handles = [open_store(tmp_path / f"store-{index}.db") for index in range(4)]
    unexpected: list[BaseException] = []
    accepted: list[object] = []

    for _ in range(25):
        dispatcher = TaskDispatcher(max_workers=2)
        start = threading.Event()

        def _submitter(handle) -> None:
            start.wait()
            for _ in range(10):
                try:
                    accepted.append(dispatcher.submit_write(handle, "noop", lambda: None))
                    accepted.append(dispatcher.submit_read(handle, "noop", lambda: None))
                except TabstoreDispatchError:
                    return
                except Exception as error:
                    unexpected.append(error)
                    return

        threads = [threading.Thread(target=_submitter, args=(handle,)) for handle in handles]
        for thread in threads:
            thread.start()
        start.set()
        dispatcher.shutdown(wait=True)
        for thread in threads:
            thread.join()

    assert unexpected == [] and all(future.result().ok for future in accepted)
