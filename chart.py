"""The scheduling core as the UI sees it.

``GanttChart`` owns the current task list, the dependency graph and the
zoom level, and exposes the four commit callbacks the timeline drives:
``on_task_move``, ``on_task_resize``, ``on_dependency_create`` and
``on_dependency_remove``. Every commit refetches from the store afterwards,
whether it succeeded or not, so the view always shows the store's truth.
"""
import logging

from config import ROW_HEIGHT
from core_logic import (day_width_for_zoom, header_height_for_zoom, header_rows, tasks_with_dates,
                        timeline_window, today_offset, total_days)
from dependencies import DependencyGraph
from errors import ValidationRejected
from layout import bar_rects, dependency_arrows
from propagation import move_task, resize_task

logger = logging.getLogger(__name__)


class GanttChart:
    def __init__(self, store, project_id=None, zoom='day'):
        self.store = store
        self.project_id = project_id
        self.zoom = zoom
        day_width_for_zoom(zoom)
        self.tasks = []
        self.graph = DependencyGraph(store, project_id)
        self.refresh()

    # --- State ---

    def refresh(self):
        self.refresh_tasks()
        self.graph.refresh()

    def refresh_tasks(self):
        self.tasks = self.store.list_tasks(self.project_id)
        return self.tasks

    @property
    def dependencies(self):
        return self.graph.edges

    @property
    def dated_tasks(self):
        return tasks_with_dates(self.tasks)

    @property
    def day_width(self):
        return day_width_for_zoom(self.zoom)

    @property
    def header_height(self):
        return header_height_for_zoom(self.zoom)

    def window(self, today=None):
        return timeline_window(self.tasks, today)

    def set_zoom(self, zoom):
        day_width_for_zoom(zoom)
        self.zoom = zoom

    def get_task(self, task_id):
        for task in self.tasks:
            if task['id'] == task_id:
                return task
        return None

    # --- Commit Callbacks ---

    def on_task_move(self, task_id, new_start, new_end):
        """Moves a task and shifts its direct dependents. Store errors propagate."""
        try:
            return move_task(self.store, self.graph, self.tasks, task_id, new_start, new_end)
        finally:
            self.refresh_tasks()

    def on_task_resize(self, task_id, new_end):
        try:
            return resize_task(self.store, self.tasks, task_id, new_end)
        finally:
            self.refresh_tasks()

    def on_dependency_create(self, task_id, depends_on_id):
        """Links two tasks. Returns the new edge, or None if the link was refused."""
        try:
            return self.graph.add_edge(task_id, depends_on_id)
        except ValidationRejected as e:
            logger.debug("Link refused: %s", e)
            return None
        finally:
            self.refresh()

    def on_dependency_remove(self, edge_id):
        try:
            self.graph.remove_edge(edge_id)
        finally:
            self.refresh()

    def commit(self, outcome):
        """Dispatches a released gesture's outcome to the matching callback."""
        if outcome is None:
            return None
        action = outcome['action']
        if action == 'move':
            return self.on_task_move(outcome['task_id'], outcome['start_date'], outcome['end_date'])
        if action == 'resize':
            return self.on_task_resize(outcome['task_id'], outcome['end_date'])
        if action == 'link':
            return self.on_dependency_create(outcome['task_id'], outcome['depends_on_id'])
        return None

    # --- Layout ---

    def layout(self, today=None, row_height=ROW_HEIGHT):
        """Everything the renderer needs for one frame."""
        start, end = self.window(today)
        day_width = self.day_width
        dated = self.dated_tasks
        return {
            'timeline_start': start,
            'timeline_end': end,
            'day_width': day_width,
            'width': total_days(start, end) * day_width,
            'height': len(dated) * row_height,
            'header_height': self.header_height,
            'header_rows': header_rows(start, end, self.zoom, day_width),
            'today_x': today_offset(start, end, day_width, today),
            'tasks': dated,
            'bars': bar_rects(dated, start, day_width, row_height),
            'arrows': dependency_arrows(dated, self.graph.edges, start, day_width, row_height),
        }
