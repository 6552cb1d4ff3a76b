"""Applies committed moves and resizes through the task store.

A move shifts the task and then each of its *direct* dependents by the same
number of days. Dependents of those dependents stay where they are: the
shift goes one hop only.
"""
import logging

from core_logic import day_offset, has_dates, parse_date, format_date, shift_date
from errors import ExternalWriteFailed, PartialPropagation, ValidationRejected

logger = logging.getLogger(__name__)


def _tasks_by_id(tasks):
    return {t['id']: t for t in tasks}

def _require_task(tasks_by_id, task_id):
    task = tasks_by_id.get(task_id)
    if task is None:
        raise ValidationRejected(f"Task '{task_id}' is not in the current task list.")
    if not has_dates(task):
        raise ValidationRejected(f"Task '{task_id}' has no start and end date.")
    return task


def move_task(store, graph, tasks, task_id, new_start, new_end):
    """Moves a task to new dates and shifts its direct dependents by the same delta.

    Writes are sequential: the moved task first, then each dependent in
    edge order. If the moved task fails, ExternalWriteFailed propagates and
    nothing else is written. If a dependent fails the others are still
    attempted, nothing is rolled back, and PartialPropagation is raised at
    the end. Returns the updated task dicts otherwise.
    """
    tasks_by_id = _tasks_by_id(tasks)
    task = _require_task(tasks_by_id, task_id)

    delta_days = day_offset(new_start, task['start_date'])
    if delta_days == 0 and parse_date(new_end) == parse_date(task['end_date']):
        return []

    updated = [store.update_task(task_id, {
        'start_date': format_date(new_start),
        'end_date': format_date(new_end),
    })]
    logger.info("Moved task %s by %+d day(s)", task_id, delta_days)

    if delta_days == 0:
        return updated

    failures = []
    seen = {task_id}
    for dependent_id in graph.dependents_of(task_id):
        if dependent_id in seen:
            continue
        seen.add(dependent_id)

        dependent = tasks_by_id.get(dependent_id)
        if dependent is None or not has_dates(dependent):
            continue

        fields = {
            'start_date': shift_date(dependent['start_date'], delta_days),
            'end_date': shift_date(dependent['end_date'], delta_days),
        }
        try:
            updated.append(store.update_task(dependent_id, fields))
        except ExternalWriteFailed as e:
            logger.warning("Could not shift dependent %s of %s: %s", dependent_id, task_id, e)
            failures.append((dependent_id, e))

    if failures:
        failed_ids = ", ".join(dep_id for dep_id, _ in failures)
        raise PartialPropagation(
            f"Task '{task_id}' moved but dependent(s) {failed_ids} could not be shifted.",
            updated, failures)
    return updated


def resize_task(store, tasks, task_id, new_end):
    """Changes only the end date of a task. Never touches dependents."""
    task = _require_task(_tasks_by_id(tasks), task_id)
    if parse_date(new_end) < parse_date(task['start_date']):
        raise ValidationRejected(
            f"End date {format_date(new_end)} is before start date {task['start_date']}.")

    updated = store.update_task(task_id, {'end_date': format_date(new_end)})
    logger.info("Resized task %s to end %s", task_id, updated['end_date'])
    return updated
