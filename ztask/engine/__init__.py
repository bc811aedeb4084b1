"""Task engine for ztask: ordering, state machine and duration parsing."""

from ztask.engine.ordering import rank_tasks, most_urgent
from ztask.engine.duration import parse_duration, format_duration
from ztask.engine import lifecycle

__all__ = [
    "rank_tasks",
    "most_urgent",
    "parse_duration",
    "format_duration",
    "lifecycle",
]
