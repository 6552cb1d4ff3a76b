"""
Unit tests for the dependencies module.

Tests cover:
- add_edge: self-loop and either-direction duplicate rejection
- remove_edge: store-confirmed removal, unknown ids
- dependents_of: direct successors only
- find_cycle: reporting loops without rejecting them
"""

import logging
import pytest
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dependencies import DependencyGraph
from errors import ExternalWriteFailed, ValidationRejected
from store import InMemoryTaskStore


def make_store(**kwargs):
    tasks = [
        {"id": "a", "title": "A", "project_id": "p1"},
        {"id": "b", "title": "B", "project_id": "p1"},
        {"id": "c", "title": "C", "project_id": "p2"},
    ]
    return InMemoryTaskStore(tasks, **kwargs)


class BrokenStore(InMemoryTaskStore):
    """Accepts reads, fails every edge write."""

    def create_dependency_edge(self, task_id, depends_on_id):
        raise ExternalWriteFailed("insert failed")

    def delete_dependency_edge(self, edge_id):
        raise ExternalWriteFailed("delete failed")


class TestAddEdge:
    """Tests for DependencyGraph.add_edge."""

    def test_adds_edge_through_store(self):
        """A new edge lands in the store and in the local cache."""
        store = make_store()
        graph = DependencyGraph(store)
        edge = graph.add_edge("b", "a")
        assert edge["task_id"] == "b"
        assert edge["depends_on_id"] == "a"
        assert graph.edges == [edge]
        assert store.list_dependency_edges() == [edge]

    def test_reverse_duplicate_rejected(self):
        """addEdge(a, b) then addEdge(b, a) fails on the second call."""
        store = make_store()
        graph = DependencyGraph(store)
        graph.add_edge("a", "b")
        with pytest.raises(ValidationRejected):
            graph.add_edge("b", "a")
        assert len(graph.edges) == 1
        assert len(store.list_dependency_edges()) == 1

    def test_same_direction_duplicate_rejected(self):
        """The same edge cannot be added twice."""
        graph = DependencyGraph(make_store())
        graph.add_edge("a", "b")
        with pytest.raises(ValidationRejected):
            graph.add_edge("a", "b")
        assert len(graph.edges) == 1

    def test_self_loop_rejected(self):
        """A task cannot depend on itself, and the store is never asked."""
        store = make_store()
        graph = DependencyGraph(store)
        with pytest.raises(ValidationRejected):
            graph.add_edge("a", "a")
        assert graph.edges == []
        assert store.list_dependency_edges() == []

    def test_store_failure_leaves_cache_alone(self):
        """A failed insert surfaces and adds nothing locally."""
        graph = DependencyGraph(BrokenStore([{"id": "a"}, {"id": "b"}]))
        with pytest.raises(ExternalWriteFailed):
            graph.add_edge("b", "a")
        assert graph.edges == []

    def test_cycle_is_allowed_but_reported(self, caplog):
        """Closing a loop succeeds and logs a warning."""
        graph = DependencyGraph(make_store())
        graph.add_edge("b", "a")
        graph.add_edge("c", "b")
        with caplog.at_level(logging.WARNING, logger="dependencies"):
            graph.add_edge("a", "c")
        assert len(graph.edges) == 3
        assert "cycle" in caplog.text.lower()


class TestRemoveEdge:
    """Tests for DependencyGraph.remove_edge."""

    def test_removes_edge(self):
        store = make_store()
        graph = DependencyGraph(store)
        edge = graph.add_edge("b", "a")
        graph.remove_edge(edge["id"])
        assert graph.edges == []
        assert store.list_dependency_edges() == []

    def test_unknown_id_is_noop(self):
        """Removing an id that does not exist leaves the cache as it was."""
        graph = DependencyGraph(make_store())
        edge = graph.add_edge("b", "a")
        graph.remove_edge("does-not-exist")
        assert graph.edges == [edge]

    def test_store_failure_keeps_local_edge(self):
        """The local copy only goes once the store confirms."""
        store = BrokenStore([{"id": "a"}, {"id": "b"}], [{"id": "e1", "task_id": "b", "depends_on_id": "a"}])
        graph = DependencyGraph(store)
        graph.refresh()
        with pytest.raises(ExternalWriteFailed):
            graph.remove_edge("e1")
        assert [e["id"] for e in graph.edges] == ["e1"]


class TestQueries:
    """Tests for dependents_of, refresh scoping and find_cycle."""

    def test_dependents_are_direct_only(self):
        """Only tasks whose edge names X as predecessor are returned."""
        graph = DependencyGraph(make_store())
        graph.add_edge("b", "a")
        graph.add_edge("c", "b")
        assert graph.dependents_of("a") == ["b"]
        assert graph.dependents_of("b") == ["c"]
        assert graph.dependents_of("c") == []

    def test_dependents_keep_edge_order(self):
        store = make_store(dependencies=[
            {"id": "e1", "task_id": "c", "depends_on_id": "a"},
            {"id": "e2", "task_id": "b", "depends_on_id": "a"},
        ])
        graph = DependencyGraph(store)
        graph.refresh()
        assert graph.dependents_of("a") == ["c", "b"]
        assert graph.predecessors_of("b") == ["a"]

    def test_refresh_scoped_to_project(self):
        """A project-scoped graph only loads edges whose dependent is in the project."""
        store = make_store(dependencies=[
            {"id": "e1", "task_id": "b", "depends_on_id": "a"},
            {"id": "e2", "task_id": "c", "depends_on_id": "a"},
        ])
        graph = DependencyGraph(store, project_id="p1")
        graph.refresh()
        assert [e["id"] for e in graph.edges] == ["e1"]

    def test_find_cycle(self):
        """A three-task loop is found; the first id is repeated at the end."""
        graph = DependencyGraph(make_store(), edges=[
            {"id": "e1", "task_id": "b", "depends_on_id": "a"},
            {"id": "e2", "task_id": "c", "depends_on_id": "b"},
            {"id": "e3", "task_id": "a", "depends_on_id": "c"},
        ])
        cycle = graph.find_cycle()
        assert cycle[0] == cycle[-1]
        assert set(cycle) == {"a", "b", "c"}
        assert len(cycle) == 4

    def test_no_cycle(self):
        graph = DependencyGraph(make_store(), edges=[
            {"id": "e1", "task_id": "b", "depends_on_id": "a"},
            {"id": "e2", "task_id": "c", "depends_on_id": "a"},
            {"id": "e3", "task_id": "c", "depends_on_id": "b"},
        ])
        assert graph.find_cycle() is None
