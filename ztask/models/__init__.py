"""Data models for ztask."""

from ztask.models.task import Task, TaskPayload, TaskStatus, PAYLOAD_FIELDS
from ztask.models.task_factory import create_task, local_now, new_task_id

__all__ = [
    "Task",
    "TaskPayload",
    "TaskStatus",
    "PAYLOAD_FIELDS",
    "create_task",
    "local_now",
    "new_task_id",
]
