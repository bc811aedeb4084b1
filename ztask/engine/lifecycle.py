"""Status state machine and maintenance rules for ztask.

Every function here is pure: it takes a Task and returns a new Task (or None
when nothing changes). The store decides which task to apply them to.

    Backlog --start--> Active
    Active  --stop/sleep--> Sleeping | Backlog
    Active|Backlog --block(on: other_id)--> Blocked
    Blocked --(unblock maintenance)--> Backlog
    Sleeping --(wake maintenance)--> Backlog
    any --complete--> Completed   (terminal)
"""

from datetime import datetime, timedelta
from typing import AbstractSet, FrozenSet, Iterable, Optional

from ztask.exceptions import InvalidTransitionError
from ztask.models.task import Task, TaskStatus


def _ensure_not_completed(task: Task, target: TaskStatus) -> None:
    if task.status == TaskStatus.COMPLETED:
        raise InvalidTransitionError(task.id, task.status.value, target.value)


def start(task: Task) -> Task:
    """Make a task active. Clears any blockers or sleep timer it carried."""
    _ensure_not_completed(task, TaskStatus.ACTIVE)
    return task.model_copy(update={"status": TaskStatus.ACTIVE, "blocked_by": frozenset(), "wake_at": None})


def suspend(task: Task, now: datetime, seconds: int) -> Task:
    """Put a task to sleep until ``now + seconds``.

    A non-positive duration yields a sleep that has already expired, so the
    next wake pass returns the task to the backlog.
    """
    _ensure_not_completed(task, TaskStatus.SLEEPING)
    return task.model_copy(update={
        "status": TaskStatus.SLEEPING,
        "blocked_by": frozenset(),
        "wake_at": now + timedelta(seconds=seconds),
    })


def complete(task: Task) -> Task:
    """Mark a task completed. blocked_by and wake_at are left untouched."""
    return task.model_copy(update={"status": TaskStatus.COMPLETED})


def block_on(task: Task, blocker_id: str) -> Task:
    """Block ``task`` on ``blocker_id``. Additive: existing blockers are kept."""
    _ensure_not_completed(task, TaskStatus.BLOCKED)
    if blocker_id == task.id:
        raise InvalidTransitionError(task.id, task.status.value, "blocked on itself")
    return task.model_copy(update={
        "status": TaskStatus.BLOCKED,
        "blocked_by": task.blocked_by | {blocker_id},
        "wake_at": None,
    })


def check_edit_allowed(original: Task, edited: Task) -> None:
    """Reject edits that would move a task out of the terminal Completed status."""
    if original.status == TaskStatus.COMPLETED and edited.status != TaskStatus.COMPLETED:
        raise InvalidTransitionError(original.id, original.status.value, edited.status.value)


def normalize(task: Task, now: datetime) -> Task:
    """Bring a hand-edited task back in line with the status invariants.

    - only sleeping tasks carry a wake time; a sleeping task without one wakes at ``now``
    - only blocked tasks carry blockers; a blocked task without blockers returns to the backlog
    - a task never blocks itself
    Completed tasks are returned unchanged.
    """
    if task.status == TaskStatus.COMPLETED:
        return task
    update = {}
    blocked_by = task.blocked_by - {task.id}
    if task.status == TaskStatus.BLOCKED:
        if not blocked_by:
            update["status"] = TaskStatus.BACKLOG
        if blocked_by != task.blocked_by:
            update["blocked_by"] = blocked_by
    elif task.blocked_by:
        update["blocked_by"] = frozenset()
    if task.status == TaskStatus.SLEEPING:
        if task.wake_at is None:
            update["wake_at"] = now
    elif task.wake_at is not None:
        update["wake_at"] = None
    return task.model_copy(update=update) if update else task


# ---- maintenance ----

def wake(task: Task, now: datetime) -> Optional[Task]:
    """Return the woken task if its sleep timer has expired, else None.

    Args:
        task: Task to check
        now: Current time

    Returns:
        Copy of the task moved to BACKLOG with wake_at cleared, or None if the
        task is not sleeping or its timer is still running
    """
    if task.status != TaskStatus.SLEEPING:
        return None
    if task.wake_at is not None and task.wake_at > now:
        return None
    # A sleeping task without a timer is treated as expired.
    return task.model_copy(update={"status": TaskStatus.BACKLOG, "wake_at": None})


def blocking_capable_ids(tasks: Iterable[Task]) -> FrozenSet[str]:
    """Ids of tasks that can still block others: every task that is not completed.

    Deleted tasks are simply absent from ``tasks`` and therefore never block.
    """
    return frozenset(task.id for task in tasks if task.status != TaskStatus.COMPLETED)


def unblock(task: Task, capable_ids: AbstractSet[str]) -> Optional[Task]:
    """Drop blockers that can no longer block; release the task when none remain.

    Args:
        task: Task to check
        capable_ids: Result of blocking_capable_ids() for the whole store

    Returns:
        Updated task (pruned blockers, and BACKLOG status if no blocker remains),
        or None if nothing changed
    """
    if task.status != TaskStatus.BLOCKED:
        return None
    remaining = frozenset(task.blocked_by & capable_ids)
    if not remaining:
        return task.model_copy(update={"status": TaskStatus.BACKLOG, "blocked_by": frozenset()})
    if remaining != task.blocked_by:
        return task.model_copy(update={"blocked_by": remaining})
    return None
