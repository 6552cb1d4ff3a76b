"""Exceptions raised by the scheduling core.

Nothing here is fatal to the app: every failure is scoped to the gesture
or commit that raised it.
"""


class GanttError(Exception):
    """Base class for scheduling errors."""


class ValidationRejected(GanttError, ValueError):
    """A gesture or edge was refused before anything was written.

    Raised for self-loop edges, duplicate edges (either direction) and
    resizes that would put the end date before the start date.
    """


class ExternalWriteFailed(GanttError, RuntimeError):
    """The task store refused or failed an insert, update or delete."""


class PartialPropagation(ExternalWriteFailed):
    """The moved task was saved but one or more dependents were not.

    Nothing is rolled back. ``updated`` holds the task dicts the store
    accepted, ``failures`` holds ``(task_id, error)`` pairs.
    """

    def __init__(self, message, updated, failures):
        super().__init__(message)
        self.updated = updated
        self.failures = failures
