"""
Unit tests for the store module.

Tests cover:
- InMemoryTaskStore: partial updates, failures, cascade delete, project scoping
- load_project / save_project: .gantt JSON files
"""

import json
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from errors import ExternalWriteFailed
from store import InMemoryTaskStore, load_project, save_project


@pytest.fixture
def store():
    return InMemoryTaskStore(
        [
            {"id": "a", "title": "A", "project_id": "p1", "start_date": "2024-01-01", "end_date": "2024-01-05"},
            {"id": "b", "title": "B", "project_id": "p1"},
            {"id": "c", "title": "C", "project_id": "p2"},
        ],
        [
            {"id": "e1", "task_id": "b", "depends_on_id": "a"},
            {"id": "e2", "task_id": "c", "depends_on_id": "b"},
        ],
    )


class TestTasks:
    """Tests for task reads and writes."""

    def test_defaults_filled_in(self, store):
        """Missing fields are present with sensible defaults."""
        task = store.get_task("b")
        assert task["status"] == "todo"
        assert task["start_date"] is None
        assert task["estimated_hours"] is None
        assert task["created_at"]

    def test_partial_update(self, store):
        """Only the given fields change."""
        updated = store.update_task("a", {"end_date": "2024-01-09"})
        assert updated["start_date"] == "2024-01-01"
        assert updated["end_date"] == "2024-01-09"

    def test_returned_copies_are_detached(self, store):
        """Mutating a returned dict does not change the store."""
        store.list_tasks()[0]["title"] = "changed"
        assert store.get_task("a")["title"] == "A"

    def test_update_unknown_task_fails(self, store):
        with pytest.raises(ExternalWriteFailed):
            store.update_task("zzz", {"end_date": "2024-01-09"})

    def test_update_unknown_field_fails(self, store):
        with pytest.raises(ExternalWriteFailed):
            store.update_task("a", {"colour": "red"})
        with pytest.raises(ExternalWriteFailed):
            store.update_task("a", {"id": "other"})

    def test_project_scope(self, store):
        assert [t["id"] for t in store.list_tasks("p1")] == ["a", "b"]

    def test_create_assigns_id_and_order(self, store):
        task = store.create_task({"title": "New", "status": "todo"})
        assert task["id"]
        assert task["order"] == 3

    def test_delete_cascades_edges(self, store):
        """Deleting a task removes every edge that touches it."""
        store.delete_task("b")
        assert store.list_dependency_edges() == []


class TestEdges:
    """Tests for dependency edge storage."""

    def test_project_scope_follows_dependent(self, store):
        assert [e["id"] for e in store.list_dependency_edges("p1")] == ["e1"]
        assert [e["id"] for e in store.list_dependency_edges("p2")] == ["e2"]

    def test_create_requires_both_tasks(self, store):
        with pytest.raises(ExternalWriteFailed):
            store.create_dependency_edge("a", "missing")

    def test_delete_unknown_edge_is_quiet(self, store):
        store.delete_dependency_edge("nope")
        assert len(store.list_dependency_edges()) == 2


class TestProjectFiles:
    """Tests for saving and loading .gantt files."""

    def test_save_then_load(self, store, tmp_path):
        filepath = tmp_path / "plan.gantt"
        save_project(store, str(filepath), "Launch")

        data = json.loads(filepath.read_text())
        assert data["project_name"] == "Launch"
        assert len(data["tasks"]) == 3

        loaded, name = load_project(str(filepath))
        assert name == "Launch"
        assert loaded.get_task("a")["end_date"] == "2024-01-05"
        assert [e["id"] for e in loaded.list_dependency_edges()] == ["e1", "e2"]
