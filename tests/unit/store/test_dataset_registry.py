"""Unit tests for the dataset registry."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from core.errors import TabstoreNotFoundError
from core.types import Dataset, DatasetCommitted, DatasetDeleted
from ingest.import_pipeline import import_dataset
from store.dataset_registry import DatasetRegistry, choose_next_after_delete
from store.store_manager import open_store


def _registry(tmp_path) -> DatasetRegistry:
    return DatasetRegistry(open_store(tmp_path / "store.db"))


def _dataset(dataset_id: int) -> Dataset:
    return Dataset(
        dataset_id=dataset_id,
        name=f"d{dataset_id}",
        row_count=0,
        column_count=1,
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


def test_list_datasets_returns_most_recent_first(tmp_path) -> None:
    """Datasets should be listed newest first."""
    registry = _registry(tmp_path)
    first = import_dataset(registry.handle, "first", ["a"], [["1"]])
    second = import_dataset(registry.handle, "second", ["a"], [["2"]])

    listed = registry.list_datasets()

    assert [item.dataset_id for item in listed] == [second.dataset_id, first.dataset_id]


def test_get_returns_stored_descriptor(tmp_path) -> None:
    """Lookup should return the committed dataset descriptor."""
    registry = _registry(tmp_path)
    dataset = import_dataset(registry.handle, "people", ["a", "b"], [["1", "2"]])

    assert registry.get(dataset.dataset_id) == dataset


def test_get_missing_dataset_raises_not_found(tmp_path) -> None:
    """Lookup of an unknown id should raise a not-found error."""
    registry = _registry(tmp_path)

    with pytest.raises(TabstoreNotFoundError) as error_info:
        registry.get(404)

    assert error_info.value.kind == "not_found"


def test_delete_removes_dataset_columns_and_cells(tmp_path) -> None:
    """Delete should remove every row belonging to the dataset."""
    registry = _registry(tmp_path)
    dataset = import_dataset(registry.handle, "people", ["a", "b"], [["1", "2"], ["3", "4"]])

    registry.delete(dataset.dataset_id)

    with registry.handle.read() as conn:
        counts = [
            conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
            for table in ("dataset", "column_name", "cell")
        ]
    assert counts == [0, 0, 0]


def test_delete_leaves_other_datasets_untouched(tmp_path) -> None:
    """Deleting one dataset should not affect another."""
    registry = _registry(tmp_path)
    kept = import_dataset(registry.handle, "kept", ["a"], [["1"]])
    removed = import_dataset(registry.handle, "removed", ["a"], [["2"]])

    registry.delete(removed.dataset_id)

    assert registry.list_datasets() == [kept]


def test_delete_missing_dataset_is_a_no_op(tmp_path) -> None:
    """Deleting an unknown id should succeed without changes or events."""
    registry = _registry(tmp_path)
    dataset = import_dataset(registry.handle, "people", ["a"], [["1"]])
    events: list[object] = []
    registry.subscribe(events.append)

    registry.delete(dataset.dataset_id + 100)

    assert registry.list_datasets() == [dataset] and events == []


def test_registry_publishes_commit_and_delete_events(tmp_path) -> None:
    """Subscribers should receive discrete commit and delete events."""
    registry = _registry(tmp_path)
    events: list[object] = []
    registry.subscribe(events.append)

    dataset = import_dataset(registry.handle, "people", ["a"], [["1"]], registry=registry)
    registry.delete(dataset.dataset_id)

    assert events == [
        DatasetCommitted(dataset=dataset),
        DatasetDeleted(dataset_id=dataset.dataset_id),
    ]


def test_failing_listener_does_not_break_delete(tmp_path) -> None:
    """A raising subscriber should not fail the registry operation."""
    registry = _registry(tmp_path)
    dataset = import_dataset(registry.handle, "people", ["a"], [["1"]])

    def _broken(event: object) -> None:
        raise RuntimeError("listener failed")

    registry.subscribe(_broken)
    registry.delete(dataset.dataset_id)

    assert registry.list_datasets() == []


def test_unsubscribe_stops_event_delivery(tmp_path) -> None:
    """Unsubscribed listeners should not receive later events."""
    registry = _registry(tmp_path)
    events: list[object] = []
    registry.subscribe(events.append)
    registry.unsubscribe(events.append)

    import_dataset(registry.handle, "people", ["a"], [["1"]], registry=registry)

    assert events == []


def test_choose_next_after_delete_prefers_following_dataset() -> None:
    """Selection should move to the next dataset when one exists."""
    datasets = [_dataset(3), _dataset(2), _dataset(1)]

    assert choose_next_after_delete(datasets, 2) == 1


def test_choose_next_after_delete_falls_back_to_previous() -> None:
    """Selection should move back when the last dataset is deleted."""
    datasets = [_dataset(3), _dataset(2), _dataset(1)]

    assert choose_next_after_delete(datasets, 1) == 2


def test_choose_next_after_delete_returns_none_for_only_dataset() -> None:
    """No selection remains after deleting the only dataset."""
    assert choose_next_after_delete([_dataset(1)], 1) is None
