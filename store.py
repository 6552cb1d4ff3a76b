"""Task store: the persistence collaborator the scheduling core writes through.

The core never mutates task or edge dicts it has been handed; every change
goes through a ``TaskStore`` and the caller refetches afterwards.
``InMemoryTaskStore`` backs the desktop app and the tests, and can be
loaded from and saved to a ``.gantt`` JSON project file.
"""
from datetime import datetime
import copy
import json
import logging
import uuid

from errors import ExternalWriteFailed

logger = logging.getLogger(__name__)

TASK_FIELDS = (
    'id', 'project_id', 'title', 'status', 'start_date', 'end_date',
    'estimated_hours', 'actual_hours', 'order', 'parent_task_id',
    'created_at', 'updated_at',
)


class TaskStore:
    """Interface expected by the core. Every write raises ExternalWriteFailed on failure."""

    def list_tasks(self, project_id=None):
        raise NotImplementedError

    def update_task(self, task_id, fields):
        raise NotImplementedError

    def create_task(self, fields):
        raise NotImplementedError

    def delete_task(self, task_id):
        raise NotImplementedError

    def list_dependency_edges(self, project_id=None):
        raise NotImplementedError

    def create_dependency_edge(self, task_id, depends_on_id):
        raise NotImplementedError

    def delete_dependency_edge(self, edge_id):
        raise NotImplementedError


def _now():
    return datetime.now().isoformat(timespec='seconds')

def _new_id():
    return uuid.uuid4().hex


class InMemoryTaskStore(TaskStore):
    def __init__(self, tasks=None, dependencies=None):
        self._tasks = []
        self._edges = []
        for task in tasks or []:
            self._tasks.append(self._normalise_task(task))
        for edge in dependencies or []:
            self._edges.append({
                'id': edge.get('id') or _new_id(),
                'task_id': edge['task_id'],
                'depends_on_id': edge['depends_on_id'],
            })

    def _normalise_task(self, task):
        normalised = {field: None for field in TASK_FIELDS}
        normalised.update(copy.deepcopy(task))
        normalised['id'] = normalised['id'] or _new_id()
        normalised['title'] = normalised['title'] or "Untitled"
        normalised['status'] = normalised['status'] or 'todo'
        if normalised['order'] is None:
            normalised['order'] = sum(1 for t in self._tasks if t['status'] == normalised['status'])
        normalised['created_at'] = normalised['created_at'] or _now()
        normalised['updated_at'] = normalised['updated_at'] or normalised['created_at']
        return normalised

    def _find_task(self, task_id):
        for task in self._tasks:
            if task['id'] == task_id:
                return task
        return None

    # --- Tasks ---

    def list_tasks(self, project_id=None):
        return [copy.deepcopy(t) for t in self._tasks
                if project_id is None or t.get('project_id') == project_id]

    def get_task(self, task_id):
        task = self._find_task(task_id)
        return copy.deepcopy(task) if task else None

    def update_task(self, task_id, fields):
        task = self._find_task(task_id)
        if task is None:
            raise ExternalWriteFailed(f"Task '{task_id}' does not exist.")
        rejected = set(fields) - set(TASK_FIELDS)
        if 'id' in fields:
            rejected.add('id')
        if rejected:
            raise ExternalWriteFailed(f"Cannot update {', '.join(sorted(rejected))} on task '{task_id}'.")
        task.update(copy.deepcopy(fields))
        task['updated_at'] = _now()
        logger.debug("Updated task %s with %s", task_id, fields)
        return copy.deepcopy(task)

    def create_task(self, fields):
        task = self._normalise_task(fields)
        if self._find_task(task['id']) is not None:
            raise ExternalWriteFailed(f"Task '{task['id']}' already exists.")
        self._tasks.append(task)
        return copy.deepcopy(task)

    def delete_task(self, task_id):
        task = self._find_task(task_id)
        if task is None:
            raise ExternalWriteFailed(f"Task '{task_id}' does not exist.")
        self._tasks.remove(task)
        # Cascade: edges touching the task go with it.
        self._edges = [e for e in self._edges
                       if e['task_id'] != task_id and e['depends_on_id'] != task_id]

    # --- Dependency Edges ---

    def list_dependency_edges(self, project_id=None):
        if project_id is None:
            return [dict(e) for e in self._edges]
        in_project = {t['id'] for t in self._tasks if t.get('project_id') == project_id}
        return [dict(e) for e in self._edges if e['task_id'] in in_project]

    def create_dependency_edge(self, task_id, depends_on_id):
        for needed in (task_id, depends_on_id):
            if self._find_task(needed) is None:
                raise ExternalWriteFailed(f"Task '{needed}' does not exist.")
        edge = {'id': _new_id(), 'task_id': task_id, 'depends_on_id': depends_on_id}
        self._edges.append(edge)
        return dict(edge)

    def delete_dependency_edge(self, edge_id):
        self._edges = [e for e in self._edges if e['id'] != edge_id]


# --- Project Files ---

def load_project(filepath):
    """Reads a .gantt file and returns (store, project_name)."""
    with open(filepath, 'r') as f:
        project_data = json.load(f)
    store = InMemoryTaskStore(project_data.get("tasks", []), project_data.get("dependencies", []))
    return store, project_data.get("project_name", "Untitled Project")

def save_project(store, filepath, project_name):
    project_data = {
        "project_name": project_name,
        "tasks": store.list_tasks(),
        "dependencies": store.list_dependency_edges(),
    }
    with open(filepath, 'w') as f:
        json.dump(project_data, f, indent=4)
