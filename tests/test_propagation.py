"""
Unit tests for the propagation module.

Tests cover:
- move_task: one-hop shifting of direct dependents, write order, skipped tasks
- move_task failures: source failure stops everything, dependent failure does not roll back
- resize_task: end-only updates and inverted-range rejection
"""

import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dependencies import DependencyGraph
from errors import ExternalWriteFailed, PartialPropagation, ValidationRejected
from propagation import move_task, resize_task
from store import InMemoryTaskStore


class RecordingStore(InMemoryTaskStore):
    """Records every update call and fails the ones listed in fail_for."""

    def __init__(self, *args, fail_for=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.calls = []
        self.fail_for = set(fail_for)

    def update_task(self, task_id, fields):
        self.calls.append((task_id, dict(fields)))
        if task_id in self.fail_for:
            raise ExternalWriteFailed(f"update of {task_id} failed")
        return super().update_task(task_id, fields)


def chain_store(fail_for=(), extra_edges=()):
    """A -> B -> C, plus D also depending on A, plus an undated U depending on A."""
    tasks = [
        {"id": "A", "title": "A", "start_date": "2024-01-01", "end_date": "2024-01-05"},
        {"id": "B", "title": "B", "start_date": "2024-01-06", "end_date": "2024-01-10"},
        {"id": "C", "title": "C", "start_date": "2024-01-11", "end_date": "2024-01-12"},
        {"id": "D", "title": "D", "start_date": "2024-01-08", "end_date": "2024-01-09"},
        {"id": "U", "title": "U", "start_date": None, "end_date": None},
    ]
    edges = [
        {"id": "e1", "task_id": "B", "depends_on_id": "A"},
        {"id": "e2", "task_id": "C", "depends_on_id": "B"},
        {"id": "e3", "task_id": "U", "depends_on_id": "A"},
        {"id": "e4", "task_id": "D", "depends_on_id": "A"},
    ] + list(extra_edges)
    store = RecordingStore(tasks, edges, fail_for=fail_for)
    graph = DependencyGraph(store)
    graph.refresh()
    return store, graph


def dates(store, task_id):
    task = store.get_task(task_id)
    return task["start_date"], task["end_date"]


class TestMoveTask:
    """Tests for move_task on the happy path."""

    def test_moves_task_and_direct_dependent(self):
        """Moving A by +3 days shifts B by +3 days as well."""
        store, graph = chain_store()
        move_task(store, graph, store.list_tasks(), "A", "2024-01-04", "2024-01-08")
        assert dates(store, "A") == ("2024-01-04", "2024-01-08")
        assert dates(store, "B") == ("2024-01-09", "2024-01-13")

    def test_propagation_stops_after_one_hop(self):
        """B's own dependent C is not shifted."""
        store, graph = chain_store()
        move_task(store, graph, store.list_tasks(), "A", "2024-01-04", "2024-01-08")
        assert dates(store, "C") == ("2024-01-11", "2024-01-12")

    def test_negative_delta(self):
        """Moving earlier shifts dependents earlier by the same amount."""
        store, graph = chain_store()
        move_task(store, graph, store.list_tasks(), "A", "2023-12-30", "2024-01-03")
        assert dates(store, "B") == ("2024-01-04", "2024-01-08")
        assert dates(store, "D") == ("2024-01-06", "2024-01-07")

    def test_writes_are_sequential_in_edge_order(self):
        """The moved task is written first, then each dated dependent in edge order."""
        store, graph = chain_store()
        move_task(store, graph, store.list_tasks(), "A", "2024-01-04", "2024-01-08")
        assert [task_id for task_id, _ in store.calls] == ["A", "B", "D"]

    def test_returns_updated_tasks(self):
        store, graph = chain_store()
        updated = move_task(store, graph, store.list_tasks(), "A", "2024-01-02", "2024-01-06")
        assert [t["id"] for t in updated] == ["A", "B", "D"]

    def test_undated_dependent_skipped(self):
        """A dependent without dates gets no update at all."""
        store, graph = chain_store()
        move_task(store, graph, store.list_tasks(), "A", "2024-01-04", "2024-01-08")
        assert "U" not in [task_id for task_id, _ in store.calls]
        assert dates(store, "U") == (None, None)

    def test_zero_delta_writes_nothing(self):
        store, graph = chain_store()
        assert move_task(store, graph, store.list_tasks(), "A", "2024-01-01", "2024-01-05") == []
        assert store.calls == []

    def test_duplicate_edges_shift_once(self):
        """A dependent linked twice is still only shifted once."""
        store, graph = chain_store(extra_edges=[{"id": "e5", "task_id": "B", "depends_on_id": "A"}])
        move_task(store, graph, store.list_tasks(), "A", "2024-01-04", "2024-01-08")
        assert dates(store, "B") == ("2024-01-09", "2024-01-13")
        assert [task_id for task_id, _ in store.calls].count("B") == 1

    def test_unknown_task_rejected(self):
        store, graph = chain_store()
        with pytest.raises(ValidationRejected):
            move_task(store, graph, store.list_tasks(), "missing", "2024-01-04", "2024-01-08")
        assert store.calls == []


class TestMoveTaskFailures:
    """Tests for move_task when the store fails."""

    def test_source_failure_stops_propagation(self):
        """If the moved task cannot be saved, no dependent is touched."""
        store, graph = chain_store(fail_for={"A"})
        with pytest.raises(ExternalWriteFailed):
            move_task(store, graph, store.list_tasks(), "A", "2024-01-04", "2024-01-08")
        assert [task_id for task_id, _ in store.calls] == ["A"]
        assert dates(store, "B") == ("2024-01-06", "2024-01-10")

    def test_dependent_failure_is_surfaced_without_rollback(self):
        """A failed dependent leaves the source moved and the other dependents shifted."""
        store, graph = chain_store(fail_for={"B"})
        with pytest.raises(PartialPropagation) as exc_info:
            move_task(store, graph, store.list_tasks(), "A", "2024-01-04", "2024-01-08")

        error = exc_info.value
        assert [t["id"] for t in error.updated] == ["A", "D"]
        assert [task_id for task_id, _ in error.failures] == ["B"]
        assert dates(store, "A") == ("2024-01-04", "2024-01-08")
        assert dates(store, "B") == ("2024-01-06", "2024-01-10")
        assert dates(store, "D") == ("2024-01-11", "2024-01-12")

    def test_partial_propagation_is_a_write_failure(self):
        """Callers catching ExternalWriteFailed also catch partial propagation."""
        assert issubclass(PartialPropagation, ExternalWriteFailed)


class TestResizeTask:
    """Tests for resize_task."""

    def test_updates_end_only(self):
        """Resizing sends just the end date and leaves dependents alone."""
        store, _ = chain_store()
        resize_task(store, store.list_tasks(), "A", "2024-01-07")
        assert store.calls == [("A", {"end_date": "2024-01-07"})]
        assert dates(store, "A") == ("2024-01-01", "2024-01-07")
        assert dates(store, "B") == ("2024-01-06", "2024-01-10")

    def test_end_equal_to_start_allowed(self):
        """A one-day task is a valid resize result."""
        store, _ = chain_store()
        resize_task(store, store.list_tasks(), "A", "2024-01-01")
        assert dates(store, "A") == ("2024-01-01", "2024-01-01")

    def test_inverted_range_rejected(self):
        """An end before the start issues no update and changes nothing."""
        store, _ = chain_store()
        with pytest.raises(ValidationRejected):
            resize_task(store, store.list_tasks(), "A", "2023-12-31")
        assert store.calls == []
        assert dates(store, "A") == ("2024-01-01", "2024-01-05")
