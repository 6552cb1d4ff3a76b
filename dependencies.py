"""Directed dependency edges between tasks.

An edge ``{'task_id': B, 'depends_on_id': A}`` reads "B cannot start before
A finishes". Nothing checks that the dates actually agree with that.
"""
import logging

from errors import ValidationRejected

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Local cache of dependency edges, written through a task store.

    The cache only changes after the store confirms a write; a failed
    write leaves it as it was until the next refresh().
    """

    def __init__(self, store, project_id=None, edges=None):
        self.store = store
        self.project_id = project_id
        self.edges = list(edges) if edges is not None else []

    def refresh(self):
        self.edges = list(self.store.list_dependency_edges(self.project_id))
        return self.edges

    def edge_between(self, task_a, task_b):
        """Returns the edge linking the two tasks in either direction, if any."""
        for edge in self.edges:
            pair = (edge['task_id'], edge['depends_on_id'])
            if pair == (task_a, task_b) or pair == (task_b, task_a):
                return edge
        return None

    def add_edge(self, task_id, depends_on_id):
        if task_id == depends_on_id:
            raise ValidationRejected(f"Task '{task_id}' cannot depend on itself.")
        if self.edge_between(task_id, depends_on_id) is not None:
            raise ValidationRejected(
                f"Tasks '{task_id}' and '{depends_on_id}' are already linked.")

        # Store errors propagate; the cache stays untouched.
        edge = self.store.create_dependency_edge(task_id, depends_on_id)
        self.edges.append(edge)
        logger.info("Added dependency %s: %s depends on %s", edge['id'], task_id, depends_on_id)

        cycle = self.find_cycle()
        if cycle:
            logger.warning("Dependency cycle detected: %s", " -> ".join(cycle))
        return edge

    def remove_edge(self, edge_id):
        self.store.delete_dependency_edge(edge_id)
        before = len(self.edges)
        self.edges = [e for e in self.edges if e['id'] != edge_id]
        if len(self.edges) == before:
            logger.debug("Edge %s was not in the local cache", edge_id)
        else:
            logger.info("Removed dependency %s", edge_id)

    def dependents_of(self, task_id):
        """Direct successors of task_id, in edge order. Not transitive."""
        return [e['task_id'] for e in self.edges if e['depends_on_id'] == task_id]

    def predecessors_of(self, task_id):
        return [e['depends_on_id'] for e in self.edges if e['task_id'] == task_id]

    def find_cycle(self):
        """Returns one cycle as a list of task ids (first id repeated at the end), or None.

        Only used for reporting; cycles are never rejected.
        """
        successors = {}
        for edge in self.edges:
            successors.setdefault(edge['depends_on_id'], []).append(edge['task_id'])

        visiting, done = set(), set()

        for root in list(successors):
            if root in done:
                continue
            # Iterative DFS; path mirrors the stack of nodes being visited.
            path = [root]
            stack = [iter(successors.get(root, []))]
            visiting.add(root)
            while stack:
                next_node = next(stack[-1], None)
                if next_node is None:
                    finished = path.pop()
                    stack.pop()
                    visiting.discard(finished)
                    done.add(finished)
                    continue
                if next_node in visiting:
                    return path[path.index(next_node):] + [next_node]
                if next_node in done:
                    continue
                visiting.add(next_node)
                path.append(next_node)
                stack.append(iter(successors.get(next_node, [])))
        return None
