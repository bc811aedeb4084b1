"""Exception types for ztask."""

from typing import Optional

from ztask.models.constants import ID_DISPLAY_LENGTH


class ZTaskError(Exception):
    """Base class for all ztask errors."""


class AmbiguousReferenceError(ZTaskError):
    """A task id prefix matched zero or more than one task."""

    def __init__(self, prefix: str, match_count: int, *, reason: Optional[str] = None):
        message = f"Id '{prefix}' does not uniquely match one task. It matches {match_count}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.prefix = prefix
        self.match_count = match_count
        self.reason = reason


class DurationParseError(ZTaskError, ValueError):
    """A duration string could not be parsed."""


class InvalidTransitionError(ZTaskError):
    """A status change is not allowed from the task's current status."""

    def __init__(self, task_id: str, current: str, target: str):
        super().__init__(f"Task {task_id[:ID_DISPLAY_LENGTH]} is {current}; cannot move it to {target}")
        self.task_id = task_id
        self.current = current
        self.target = target


class EditorError(ZTaskError):
    """The external editor could not be run or exited with an error."""


class PersistenceError(ZTaskError):
    """The task file could not be written."""
