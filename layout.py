"""Geometry of the timeline body: bar rectangles and dependency arrows.

Coordinates are content pixels: x grows right from the first day of the
timeline, y grows down from the top of the first row. Rows follow the
order the tasks arrive in; nothing is sorted by date.
"""
import logging

from config import ARROW_ELBOW_OFFSET, ARROW_PICK_PX, ROW_HEIGHT
from core_logic import bar_geometry, day_offset, progress_percent, tasks_with_dates
from interaction import hit_test

logger = logging.getLogger(__name__)

BAR_PADDING = 4


def row_index(tasks):
    rows = {}
    for i, task in enumerate(tasks):
        rows.setdefault(task['id'], i)
    return rows

def row_center(row, row_height=ROW_HEIGHT):
    return row * row_height + row_height / 2

def bar_rects(tasks, timeline_start, day_width, row_height=ROW_HEIGHT):
    """One rectangle per dated task, in row order."""
    rects = []
    for row, task in enumerate(tasks_with_dates(tasks)):
        left, width = bar_geometry(task, timeline_start, day_width)
        rects.append({
            'task_id': task['id'],
            'row': row,
            'left': left,
            'width': width,
            'top': row * row_height + BAR_PADDING,
            'height': row_height - 2 * BAR_PADDING,
            'progress': progress_percent(task),
        })
    return rects

def arrow_points(predecessor, successor, predecessor_row, successor_row, timeline_start,
                 day_width, row_height=ROW_HEIGHT, elbow=ARROW_ELBOW_OFFSET):
    """Routes an arrow from the right edge of predecessor to the left edge of successor.

    Same row: a straight segment. Otherwise: out by `elbow` px, down or up
    to the successor's row, then across to its start.
    """
    source_x = (day_offset(predecessor['end_date'], timeline_start) + 1) * day_width
    source_y = row_center(predecessor_row, row_height)
    target_x = day_offset(successor['start_date'], timeline_start) * day_width
    target_y = row_center(successor_row, row_height)

    if predecessor_row == successor_row:
        return [(source_x, source_y), (target_x, target_y)]

    elbow_x = source_x + elbow
    return [
        (source_x, source_y),
        (elbow_x, source_y),
        (elbow_x, target_y),
        (target_x, target_y),
    ]

def dependency_arrows(tasks, edges, timeline_start, day_width, row_height=ROW_HEIGHT):
    """Arrow polylines for every edge whose two tasks are both on the timeline.

    Edges pointing at a task that is missing or undated are skipped.
    """
    dated = tasks_with_dates(tasks)
    rows = row_index(dated)
    by_id = {t['id']: t for t in dated}

    arrows = []
    for edge in edges:
        predecessor = by_id.get(edge['depends_on_id'])
        successor = by_id.get(edge['task_id'])
        if predecessor is None or successor is None:
            logger.debug("Skipping edge %s: endpoint not on the timeline", edge.get('id'))
            continue
        arrows.append({
            'edge_id': edge['id'],
            'task_id': edge['task_id'],
            'depends_on_id': edge['depends_on_id'],
            'points': arrow_points(predecessor, successor, rows[predecessor['id']],
                                   rows[successor['id']], timeline_start, day_width, row_height),
        })
    return arrows

def rubber_band(task, handle, row, pointer, timeline_start, day_width, row_height=ROW_HEIGHT,
                origin=(0, 0), scroll=(0, 0)):
    """Line from the grabbed link handle to the pointer.

    `pointer` is in screen/window coordinates; `origin` is where the
    scrollable container's top-left sits in that space and `scroll` how far
    it is scrolled, so the free end lands in content coordinates.
    """
    if handle == 'end':
        anchor_x = (day_offset(task['end_date'], timeline_start) + 1) * day_width
    else:
        anchor_x = day_offset(task['start_date'], timeline_start) * day_width
    anchor = (anchor_x, row_center(row, row_height))
    free_end = (pointer[0] - origin[0] + scroll[0], pointer[1] - origin[1] + scroll[1])
    return [anchor, free_end]

def task_at(rects, x, y):
    """Task id of the bar containing the content point (x, y), or None."""
    for rect in reversed(rects):
        if rect['left'] <= x <= rect['left'] + rect['width'] and rect['top'] <= y <= rect['top'] + rect['height']:
            return rect['task_id']
    return None

def bar_zone_at(rects, x, y, row_height=ROW_HEIGHT):
    """(rect, zone) for the bar on the row under y, zone as hit_test names it."""
    if y < 0:
        return None, None
    row = int(y // row_height)
    for rect in rects:
        if rect['row'] == row:
            return rect, hit_test(x, rect['left'], rect['width'])
    return None, None

def _distance_to_segment(x, y, a, b):
    (x1, y1), (x2, y2) = a, b
    dx, dy = x2 - x1, y2 - y1
    if dx == 0 and dy == 0:
        return ((x - x1) ** 2 + (y - y1) ** 2) ** 0.5
    t = max(0.0, min(1.0, ((x - x1) * dx + (y - y1) * dy) / (dx * dx + dy * dy)))
    px, py = x1 + t * dx, y1 + t * dy
    return ((x - px) ** 2 + (y - py) ** 2) ** 0.5

def arrow_at(arrows, x, y, tolerance=ARROW_PICK_PX):
    """Edge id of the first arrow passing within `tolerance` px of (x, y), or None."""
    for arrow in arrows:
        points = arrow['points']
        for a, b in zip(points, points[1:]):
            if _distance_to_segment(x, y, a, b) <= tolerance:
                return arrow['edge_id']
    return None

def press_target(rects, arrows, x, y, row_height=ROW_HEIGHT, tolerance=ARROW_PICK_PX):
    """What a press at (x, y) grabs.

    Returns ('bar', rect, zone), ('arrow', edge_id) or None. Arrows start and
    end on bar edges, so a bar zone always wins over an arrow passing
    through it.
    """
    rect, zone = bar_zone_at(rects, x, y, row_height)
    if zone is not None:
        return ('bar', rect, zone)
    edge_id = arrow_at(arrows, x, y, tolerance)
    if edge_id is not None:
        return ('arrow', edge_id)
    return None
