import collections

# --- Timeline Scale ---

# Pixels per calendar day for each zoom level.
ZOOM_CONFIG = collections.OrderedDict([
    ('day', 40),
    ('week', 20),
    ('month', 8),
])

# Height of the header block above the first row, per zoom level.
HEADER_HEIGHT = {
    'day': 63,    # month row + day row
    'week': 98,   # month row + week row
    'month': 49,  # single month row
}

ROW_HEIGHT = 36

# Padding around the dated tasks when deriving the visible window.
TIMELINE_LEAD_DAYS = 7
TIMELINE_TAIL_DAYS = 14
EMPTY_TIMELINE_DAYS = 30

# --- Interaction ---

# Cumulative pointer travel (px) beyond which a press is a drag, not a click.
DRAG_THRESHOLD_PX = 3

# Horizontal run of an arrow before it turns toward the successor's row.
ARROW_ELBOW_OFFSET = 10

# Distance (px) within which a press counts as a click on a dependency arrow.
ARROW_PICK_PX = 4

# Width (px) of the grab zones at the ends of a bar.
RESIZE_HANDLE_PX = 8
LINK_HANDLE_PX = 6

# --- Tasks ---

TASK_STATUSES = ['backlog', 'todo', 'in_progress', 'in_review', 'done']

TASK_STATUS_LABELS = collections.OrderedDict([
    ('backlog', 'Backlog'),
    ('todo', 'To Do'),
    ('in_progress', 'In Progress'),
    ('in_review', 'In Review'),
    ('done', 'Done'),
])

status_colors = {
    'backlog': '#94a3b8',
    'todo': '#60a5fa',
    'in_progress': '#fbbf24',
    'in_review': '#a78bfa',
    'done': '#4ade80',
}

today_color = '#ef4444'
arrow_color = '#555555'

# --- Default Data ---

# Starter project shown on a fresh launch. Dates are YYYY-MM-DD.
default_project = {
    "project_name": "New Project",
    "tasks": [
        {"id": "t1", "title": "Requirements workshop", "status": "done",
         "start_date": "2025-01-06", "end_date": "2025-01-08",
         "estimated_hours": 16, "actual_hours": 16},
        {"id": "t2", "title": "Data model", "status": "in_progress",
         "start_date": "2025-01-09", "end_date": "2025-01-15",
         "estimated_hours": 24, "actual_hours": 10},
        {"id": "t3", "title": "API endpoints", "status": "todo",
         "start_date": "2025-01-16", "end_date": "2025-01-24",
         "estimated_hours": 40, "actual_hours": None},
        {"id": "t4", "title": "Board UI", "status": "todo",
         "start_date": "2025-01-16", "end_date": "2025-01-29",
         "estimated_hours": 48, "actual_hours": None},
        {"id": "t5", "title": "Release", "status": "backlog",
         "start_date": "2025-01-30", "end_date": "2025-01-30",
         "estimated_hours": 4, "actual_hours": None},
        {"id": "t6", "title": "Retrospective notes", "status": "backlog",
         "start_date": None, "end_date": None,
         "estimated_hours": None, "actual_hours": None},
    ],
    "dependencies": [
        {"id": "d1", "task_id": "t2", "depends_on_id": "t1"},
        {"id": "d2", "task_id": "t3", "depends_on_id": "t2"},
        {"id": "d3", "task_id": "t4", "depends_on_id": "t2"},
        {"id": "d4", "task_id": "t5", "depends_on_id": "t3"},
    ],
}
