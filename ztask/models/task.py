"""Task data model for ztask."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from ztask.models.constants import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    ID_DISPLAY_LENGTH,
    MAX_PRIORITY,
    MIN_PRIORITY,
    TASK_ID_LENGTH,
)


class TaskStatus(str, Enum):
    """Task status enumeration, declared in sort order (most urgent first)."""
    ACTIVE = "active"
    BACKLOG = "backlog"
    BLOCKED = "blocked"
    SLEEPING = "sleeping"
    COMPLETED = "completed"

    @property
    def rank(self) -> int:
        """Position of the status in the urgency order (0 = most urgent)."""
        return _STATUS_ORDER.index(self)

    def __str__(self) -> str:
        return self.value


_STATUS_ORDER: Tuple[TaskStatus, ...] = tuple(TaskStatus)

# Fields an edit is allowed to replace; id and created_at never change.
PAYLOAD_FIELDS: Tuple[str, ...] = (
    "summary",
    "details",
    "priority",
    "category",
    "status",
    "blocked_by",
    "wake_at",
)


def as_local(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive timestamps as local time so every stored timestamp is comparable."""
    if value is not None and value.tzinfo is None:
        return value.astimezone()
    return value


class TaskPayload(BaseModel):
    """The mutable part of a task, as produced by an edit."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    summary: str = Field(..., min_length=1, description="Short task summary")
    details: str = Field("", description="Free-text details")
    priority: int = Field(DEFAULT_PRIORITY, ge=MIN_PRIORITY, le=MAX_PRIORITY, description="Importance (1 = highest)")
    category: str = Field(DEFAULT_CATEGORY, description="Free-text category tag")
    status: TaskStatus = Field(TaskStatus.BACKLOG, description="Task status")
    blocked_by: FrozenSet[str] = Field(default_factory=frozenset, description="Ids of tasks blocking this one")
    wake_at: Optional[datetime] = Field(None, description="When a sleeping task returns to the backlog")

    @field_validator("summary")
    @classmethod
    def _strip_summary(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("summary must not be blank")
        return value

    @field_validator("wake_at")
    @classmethod
    def _localize_wake_at(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_local(value)

    @field_serializer("blocked_by")
    def _serialize_blocked_by(self, value: FrozenSet[str]) -> List[str]:
        return sorted(value)


class Task(BaseModel):
    """Canonical Task model.

    Tasks are immutable values; every change produces a new Task via
    ``model_copy(update=...)`` or :meth:`with_payload`.

    Ordering (``<``) follows the urgency rule: two active tasks are ordered by
    creation time alone; otherwise status rank, then priority, then creation
    time. The id breaks any remaining tie, so distinct tasks never compare equal.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str = Field(..., pattern=f"^[0-9a-f]{{{TASK_ID_LENGTH}}}$", description="Unique task identifier (uuid4 hex)")
    summary: str = Field(..., min_length=1, description="Short task summary")
    details: str = Field("", description="Free-text details")
    priority: int = Field(DEFAULT_PRIORITY, ge=MIN_PRIORITY, le=MAX_PRIORITY, description="Importance (1 = highest)")
    category: str = Field(DEFAULT_CATEGORY, description="Free-text category tag")
    created_at: datetime = Field(..., description="Task creation timestamp (local time)")
    status: TaskStatus = Field(TaskStatus.BACKLOG, description="Task status")
    blocked_by: FrozenSet[str] = Field(default_factory=frozenset, description="Ids of tasks blocking this one")
    wake_at: Optional[datetime] = Field(None, description="When a sleeping task returns to the backlog")

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value: Any) -> Any:
        # Accept canonical uuid strings ("8c1f...-...") as well as bare hex.
        if isinstance(value, str):
            return value.replace("-", "").strip().lower()
        return value

    @field_validator("created_at", "wake_at")
    @classmethod
    def _localize(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_local(value)

    @field_serializer("blocked_by")
    def _serialize_blocked_by(self, value: FrozenSet[str]) -> List[str]:
        return sorted(value)

    # ---- ordering ----

    def sort_key(self) -> tuple:
        """Key implementing the urgency order (ascending = most urgent first)."""
        if self.status == TaskStatus.ACTIVE:
            # Priority is ignored between active tasks: oldest active task first.
            return (self.status.rank, 0, self.created_at, self.id)
        return (self.status.rank, self.priority, self.created_at, self.id)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Task):
            return NotImplemented
        return other.sort_key() < self.sort_key()

    # ---- edit support ----

    def payload(self) -> TaskPayload:
        """Return the editable part of this task."""
        return TaskPayload(**{name: getattr(self, name) for name in PAYLOAD_FIELDS})

    def with_payload(self, payload: TaskPayload) -> "Task":
        """Return a copy of this task with its editable fields replaced by ``payload``."""
        return self.model_copy(update={name: getattr(payload, name) for name in PAYLOAD_FIELDS})

    def to_json_dict(self) -> Dict[str, Any]:
        """Serialize to the JSON-compatible dict stored in the task file."""
        return self.model_dump(mode="json")

    @property
    def short_id(self) -> str:
        return self.id[:ID_DISPLAY_LENGTH]
