"""Task creation factory for ztask.

This module centralizes task creation logic so every new task gets a fresh
id, a local creation timestamp and consistent default values.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from ztask.models.constants import DEFAULT_CATEGORY, DEFAULT_PRIORITY
from ztask.models.task import Task, TaskStatus


def local_now() -> datetime:
    """Current local time as a timezone-aware datetime (the default clock)."""
    return datetime.now().astimezone()


def new_task_id() -> str:
    """Generate a task id: a random 128-bit value as 32 lowercase hex characters."""
    return uuid.uuid4().hex


def initial_status(is_interrupt: bool) -> TaskStatus:
    """Determine the status of a newly added task.

    Interrupts go straight to the active list; everything else waits in the
    backlog.

    Args:
        is_interrupt: Whether the task interrupts the current work

    Returns:
        ACTIVE for interrupts, BACKLOG otherwise
    """
    return TaskStatus.ACTIVE if is_interrupt else TaskStatus.BACKLOG


def create_task_defaults() -> Dict[str, Any]:
    """Get default task values as a dictionary."""
    return {
        "details": "",
        "priority": DEFAULT_PRIORITY,
        "category": DEFAULT_CATEGORY,
        "blocked_by": frozenset(),
        "wake_at": None,
    }


def create_task(
    summary: str,
    category: Optional[str] = None,
    is_interrupt: bool = False,
    priority: Optional[int] = None,
    details: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Task:
    """Create a task with defaults, allowing overrides.

    Args:
        summary: Task summary (required, must not be blank)
        category: Category tag (defaults to "quick")
        is_interrupt: Create the task as ACTIVE instead of BACKLOG
        priority: Importance, 1 (highest) to 9 (defaults to constant)
        details: Free-text details
        now: Creation timestamp (defaults to current local time)

    Returns:
        Task object with defaults applied

    Raises:
        ValueError: If the summary is blank or a field fails validation
    """
    if not summary or not summary.strip():
        raise ValueError("summary is required")

    defaults = create_task_defaults()
    return Task(
        id=new_task_id(),
        summary=summary.strip(),
        details=details if details is not None else defaults["details"],
        priority=priority if priority is not None else defaults["priority"],
        category=category if category is not None else defaults["category"],
        created_at=now if now is not None else local_now(),
        status=initial_status(is_interrupt),
        blocked_by=defaults["blocked_by"],
        wake_at=defaults["wake_at"],
    )
