"""Urgency ordering for ztask.

Sorts tasks most-urgent-first. Two active tasks are ordered by creation time
alone (oldest first); any other pair is ordered by status rank, then
priority, then creation time. The task id is the final tie-break, which makes
the order a strict total order suitable for a heap.
"""

from typing import Iterable, List, Optional

from ztask.models.task import Task, TaskStatus


def rank_tasks(tasks: Iterable[Task], statuses: Optional[Iterable[TaskStatus]] = None) -> List[Task]:
    """Return tasks sorted most-urgent-first, optionally filtered by status.

    This function is deterministic - same inputs always produce same outputs.

    Args:
        tasks: Tasks to rank
        statuses: If given, keep only tasks whose status is in this collection

    Returns:
        New list of tasks in urgency order
    """
    if statuses is not None:
        wanted = set(statuses)
        tasks = [task for task in tasks if task.status in wanted]
    return sorted(tasks, key=Task.sort_key)


def most_urgent(tasks: Iterable[Task], statuses: Optional[Iterable[TaskStatus]] = None) -> Optional[Task]:
    """Return the single most urgent task (optionally within some statuses), or None."""
    if statuses is not None:
        wanted = set(statuses)
        tasks = (task for task in tasks if task.status in wanted)
    return min(tasks, key=Task.sort_key, default=None)
