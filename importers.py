import logging

import pandas as pd

from config import TASK_STATUSES, TASK_STATUS_LABELS
from core_logic import format_date
from errors import ExternalWriteFailed

logger = logging.getLogger(__name__)

# (field_name, required)
IMPORT_FIELDS = [
    ("Title", True),
    ("Start Date", False),
    ("End Date", False),
    ("Status", False),
    ("Estimated Hours", False),
    ("Actual Hours", False),
    ("Depends On", False),
]

_STATUS_BY_LABEL = {label.lower(): key for key, label in TASK_STATUS_LABELS.items()}


def read_table(filepath):
    """Reads a CSV or Excel file into a DataFrame."""
    lowered = filepath.lower()
    if lowered.endswith('.csv'):
        return pd.read_csv(filepath)
    if lowered.endswith('.xls') or lowered.endswith('.xlsx'):
        return pd.read_excel(filepath)
    raise ValueError("Unsupported file type. Please select a CSV or Excel file.")

def _cell(row, mapping, field):
    column = mapping.get(field)
    if not column:
        return None
    value = row[column]
    if pd.isna(value):
        return None
    return value

def _to_status(value):
    if value is None:
        return 'todo'
    text = str(value).strip().lower()
    if text in TASK_STATUSES:
        return text
    if text in _STATUS_BY_LABEL:
        return _STATUS_BY_LABEL[text]
    normalised = text.replace('-', '_').replace(' ', '_')
    if normalised in TASK_STATUSES:
        return normalised
    logger.debug("Unknown status %r, defaulting to todo", value)
    return 'todo'

def _to_hours(value):
    if value is None:
        return None
    hours = float(value)
    return hours if hours >= 0 else None

def rows_to_tasks(df, mapping):
    """Converts DataFrame rows into task dicts using a field -> column mapping.

    Returns (tasks, links) where links are (title, depends_on_title) pairs
    taken from the "Depends On" column. Rows without a title are skipped.
    """
    if not mapping.get("Title"):
        raise ValueError("You must map a column to 'Title'.")

    tasks, links = [], []
    for index, row in df.iterrows():
        try:
            title = _cell(row, mapping, "Title")
            if title is None or not str(title).strip():
                continue
            title = str(title).strip()

            start = _cell(row, mapping, "Start Date")
            end = _cell(row, mapping, "End Date")
            tasks.append({
                "title": title,
                "status": _to_status(_cell(row, mapping, "Status")),
                "start_date": format_date(str(start)) if start is not None else None,
                "end_date": format_date(str(end)) if end is not None else None,
                "estimated_hours": _to_hours(_cell(row, mapping, "Estimated Hours")),
                "actual_hours": _to_hours(_cell(row, mapping, "Actual Hours")),
            })

            depends_on = _cell(row, mapping, "Depends On")
            if depends_on is not None and str(depends_on).strip():
                links.append((title, str(depends_on).strip()))

        except KeyError as e:
            raise ValueError(f"The column {e} selected in the mapping does not exist in the file.")
        except ValueError as e:
            raise ValueError(f"An error occurred while processing row {index + 2}: {e}")

    return tasks, links

def import_into_store(store, tasks, links, project_id=None):
    """Creates the imported tasks and their dependency edges in the store.

    Links naming an unknown title, or a task itself, are skipped.
    """
    created, ids_by_title = [], {}
    for task in tasks:
        fields = dict(task)
        fields['project_id'] = project_id
        new_task = store.create_task(fields)
        created.append(new_task)
        ids_by_title.setdefault(new_task['title'], new_task['id'])

    edges = []
    for title, depends_on_title in links:
        task_id = ids_by_title.get(title)
        depends_on_id = ids_by_title.get(depends_on_title)
        if task_id is None or depends_on_id is None or task_id == depends_on_id:
            logger.warning("Skipping dependency %r -> %r: unknown or same task", depends_on_title, title)
            continue
        try:
            edges.append(store.create_dependency_edge(task_id, depends_on_id))
        except ExternalWriteFailed as e:
            logger.warning("Could not link %r to %r: %s", title, depends_on_title, e)
    return created, edges
