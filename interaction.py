"""Pointer gestures over task bars: move, resize and dependency linking.

A gesture is pressed, tracked and released. While it is in flight only a
preview is produced; the task dicts are never touched. On release the
gesture reports what should be committed and the caller decides how.
"""
import logging
import math

from config import DRAG_THRESHOLD_PX, RESIZE_HANDLE_PX, LINK_HANDLE_PX
from core_logic import parse_date, shift_date

logger = logging.getLogger(__name__)

IDLE = 'idle'
DRAGGING = 'dragging'


def round_half_up(value):
    # Halves round away from zero on the positive side, like a browser's Math.round.
    return int(math.floor(value + 0.5))

def hit_test(pointer_x, left, width, resize_px=RESIZE_HANDLE_PX, link_px=LINK_HANDLE_PX):
    """Names the part of a bar under the pointer.

    Link handles sit just outside each end of the bar, the resize strip is
    the inner right edge, everything else moves the bar.
    """
    right = left + width
    if left - link_px <= pointer_x < left:
        return 'link_start'
    if right < pointer_x <= right + link_px:
        return 'link_end'
    if right - resize_px <= pointer_x <= right:
        return 'resize'
    if left <= pointer_x < right - resize_px:
        return 'move'
    return None


class BarGesture:
    """Move or resize of a single bar, from press to release."""

    def __init__(self, task, mode, pointer_x, day_width, threshold=DRAG_THRESHOLD_PX):
        if mode not in ('move', 'resize'):
            raise ValueError(f"Unknown gesture mode '{mode}'.")
        self.task_id = task['id']
        self.mode = mode
        self.origin_start = task['start_date']
        self.origin_end = task['end_date']
        self.origin_width = ((parse_date(self.origin_end) - parse_date(self.origin_start)).days + 1) * day_width
        self.pointer_start_x = pointer_x
        self.day_width = day_width
        self.threshold = threshold
        self.did_drag = False
        self.state = DRAGGING

    def delta_days(self, pointer_x):
        return round_half_up((pointer_x - self.pointer_start_x) / self.day_width)

    def _track(self, pointer_x):
        if abs(pointer_x - self.pointer_start_x) > self.threshold:
            self.did_drag = True

    def motion(self, pointer_x):
        """Returns the preview for the current pointer position.

        ``left_offset`` is how far the bar is drawn from its committed
        position and ``width`` its drawn width, both whole-day multiples.
        """
        if self.state != DRAGGING:
            raise RuntimeError("Gesture is not in progress.")
        self._track(pointer_x)
        delta = self.delta_days(pointer_x)
        if self.mode == 'move':
            return {'delta_days': delta, 'left_offset': delta * self.day_width, 'width': self.origin_width}
        return {
            'delta_days': delta,
            'left_offset': 0,
            'width': max(self.day_width, self.origin_width + delta * self.day_width),
        }

    def release(self, pointer_x):
        """Ends the gesture and returns what to commit, or None.

        A press that never travelled past the drag threshold and moved no
        whole day is a click. A resize whose end would fall before the
        start is dropped.
        """
        if self.state != DRAGGING:
            raise RuntimeError("Gesture is not in progress.")
        self._track(pointer_x)
        self.state = IDLE
        delta = self.delta_days(pointer_x)

        if delta == 0:
            if not self.did_drag:
                return {'action': 'click', 'task_id': self.task_id}
            return None

        if self.mode == 'move':
            return {
                'action': 'move',
                'task_id': self.task_id,
                'delta_days': delta,
                'start_date': shift_date(self.origin_start, delta),
                'end_date': shift_date(self.origin_end, delta),
            }

        new_end = shift_date(self.origin_end, delta)
        if parse_date(new_end) < parse_date(self.origin_start):
            logger.debug("Resize of %s to %s rejected: before start %s",
                         self.task_id, new_end, self.origin_start)
            return None
        return {'action': 'resize', 'task_id': self.task_id, 'delta_days': delta, 'end_date': new_end}


class LinkGesture:
    """Rubber-band drag from a bar's link handle onto another bar.

    From the ``end`` handle of A onto B means B depends on A; from the
    ``start`` handle of A onto B means A depends on B.
    """

    def __init__(self, task_id, handle, pointer_x, pointer_y):
        if handle not in ('start', 'end'):
            raise ValueError(f"Unknown link handle '{handle}'.")
        self.task_id = task_id
        self.handle = handle
        self.pointer = (pointer_x, pointer_y)
        self.state = DRAGGING

    def motion(self, pointer_x, pointer_y):
        if self.state != DRAGGING:
            raise RuntimeError("Gesture is not in progress.")
        self.pointer = (pointer_x, pointer_y)
        return self.pointer

    def release(self, target_task_id):
        """Returns (task_id, depends_on_id) for the new edge, or None."""
        if self.state != DRAGGING:
            raise RuntimeError("Gesture is not in progress.")
        self.state = IDLE
        if target_task_id is None or target_task_id == self.task_id:
            return None
        if self.handle == 'end':
            return target_task_id, self.task_id
        return self.task_id, target_task_id
