"""The task store: an ordered, persistent collection of tasks.

A TaskStore is opened from a JSON file, mutated in memory through
prefix-addressed operations, and written back by ``close()`` (or by leaving a
``with`` block). Tasks are kept in a binary min-heap ordered by urgency, so
the most urgent task is always at the root.

Concurrency: there is no locking. Two processes that open the same file and
both close it race, and the last writer wins.
"""

import heapq
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Union

from pydantic import ValidationError

from ztask.config import get_min_prefix_length
from ztask.engine import lifecycle, ordering
from ztask.engine.duration import parse_duration
from ztask.engine.ordering import rank_tasks
from ztask.exceptions import AmbiguousReferenceError, DurationParseError, EditorError, InvalidTransitionError
from ztask.models.task import Task, TaskPayload, TaskStatus, as_local
from ztask.models.task_factory import create_task, local_now
from ztask.storage.json_file import load_tasks, save_tasks

logger = logging.getLogger(__name__)

StatusFilter = Optional[Union[TaskStatus, Iterable[TaskStatus]]]


class TaskEditor(Protocol):
    """Something that lets the user edit a piece of text."""

    def edit_text(self, text: str, suffix: str = ".txt") -> str:
        """Return the edited version of ``text``.

        Raises:
            EditorError: If editing could not be carried out
        """
        ...


def _status_set(status: StatusFilter) -> Optional[List[TaskStatus]]:
    if status is None:
        return None
    if isinstance(status, TaskStatus):
        return [status]
    return [TaskStatus(s) for s in status]


class TaskStore:
    """Ordered task collection backed by a JSON file.

    Every operation that addresses an existing task takes an id prefix. If the
    prefix does not match exactly one task, the operation logs a warning,
    changes nothing and returns 0.
    """

    def __init__(
        self,
        path: Union[str, Path],
        *,
        clock: Optional[Callable[[], datetime]] = None,
        editor: Optional[TaskEditor] = None,
        min_prefix_length: Optional[int] = None,
    ):
        self.path = Path(path)
        self._clock = clock or local_now
        self._editor = editor
        if min_prefix_length is None:
            min_prefix_length = get_min_prefix_length()
        self.min_prefix_length = max(0, min_prefix_length)

        self._heap: List[Task] = self._repair(load_tasks(self.path))
        heapq.heapify(self._heap)

        # The CLI reports these counts to the user.
        self.woken_on_load = self.wake_tasks()
        if self.woken_on_load:
            logger.debug(f"Awakened {self.woken_on_load} task(s)")
        self.unblocked_on_load = self.unblock_tasks()
        if self.unblocked_on_load:
            logger.debug(f"Unblocked {self.unblocked_on_load} task(s)")

    def now(self) -> datetime:
        """Current time according to the store's clock, as an aware local time."""
        return as_local(self._clock())

    def _repair(self, tasks: List[Task]) -> List[Task]:
        """Bring hand-edited tasks back in line with their status."""
        now = self.now()
        repaired = []
        for task in tasks:
            fixed = lifecycle.normalize(task, now)
            if fixed is not task:
                logger.warning(f"Repaired task {task.short_id}: fields did not match status {task.status}")
            repaired.append(fixed)
        return repaired

    # ---- context manager ----

    def __enter__(self) -> "TaskStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ---- id resolution ----

    def _match_indexes(self, prefix: str) -> List[int]:
        return [i for i, task in enumerate(self._heap) if task.id.startswith(prefix)]

    def _resolve_index(self, prefix: str) -> int:
        prefix = (prefix or "").strip().lower()
        matches = self._match_indexes(prefix)
        if len(prefix) < self.min_prefix_length:
            raise AmbiguousReferenceError(
                prefix,
                len(matches),
                reason=f"use at least {self.min_prefix_length} character(s)",
            )
        if len(matches) != 1:
            raise AmbiguousReferenceError(prefix, len(matches))
        return matches[0]

    def resolve(self, prefix: str) -> Task:
        """Return the one task whose id starts with ``prefix``.

        Raises:
            AmbiguousReferenceError: If zero or several tasks match, or the
                prefix is shorter than ``min_prefix_length``
        """
        return self._heap[self._resolve_index(prefix)]

    def _replace(self, index: int, task: Task) -> None:
        self._heap[index] = task
        heapq.heapify(self._heap)

    def _transform(self, prefix: str, change: Callable[[Task], Task], action: str) -> int:
        """Resolve ``prefix`` and replace the task with ``change(task)``."""
        try:
            index = self._resolve_index(prefix)
            updated = change(self._heap[index])
        except (AmbiguousReferenceError, InvalidTransitionError) as e:
            logger.warning(str(e))
            return 0
        self._replace(index, updated)
        logger.debug(f"{action} task {updated.id}: {updated.summary[:50]}")
        return 1

    # ---- mutations ----

    def add(
        self,
        summary: str,
        category: Optional[str] = None,
        is_interrupt: bool = False,
        priority: Optional[int] = None,
        details: Optional[str] = None,
    ) -> str:
        """Create a task and return its id.

        Raises:
            ValueError: If the summary is blank or priority is out of range
        """
        task = create_task(
            summary,
            category=category,
            is_interrupt=is_interrupt,
            priority=priority,
            details=details,
            now=self.now(),
        )
        heapq.heappush(self._heap, task)
        logger.debug(f"Added task {task.id}: {task.summary[:50]}")
        return task.id

    def remove(self, prefix: str) -> int:
        """Delete the task matching ``prefix``, whatever its status."""
        try:
            index = self._resolve_index(prefix)
        except AmbiguousReferenceError as e:
            logger.warning(str(e))
            return 0
        task = self._heap.pop(index)
        heapq.heapify(self._heap)
        logger.debug(f"Removed task {task.id}: {task.summary[:50]}")
        return 1

    def start(self, prefix: str) -> int:
        return self._transform(prefix, lifecycle.start, "Started")

    def stop(self, prefix: str) -> int:
        """Stop working on a task: sleep it for zero seconds so it returns to the backlog."""
        return self.suspend(prefix, "0")

    def suspend(self, prefix: str, duration: Union[str, int, float, timedelta]) -> int:
        """Put a task to sleep for ``duration``.

        Args:
            prefix: Id prefix of the task
            duration: Duration string (see parse_duration), seconds, or a timedelta

        Returns:
            Number of tasks put to sleep (0 or 1)

        Raises:
            DurationParseError: If ``duration`` cannot be parsed or is not a
                string, number or timedelta
        """
        if isinstance(duration, timedelta):
            seconds = int(duration.total_seconds())
        elif isinstance(duration, bool):
            raise DurationParseError(f"invalid duration: {duration!r}")
        elif isinstance(duration, (int, float)):
            seconds = int(duration)
        elif isinstance(duration, str):
            seconds = parse_duration(duration)
        else:
            raise DurationParseError(f"invalid duration: {duration!r}")
        now = self.now()
        return self._transform(prefix, lambda task: lifecycle.suspend(task, now, seconds), "Suspended")

    def complete(self, prefix: str) -> int:
        return self._transform(prefix, lifecycle.complete, "Completed")

    def block(self, blockee_prefix: str, blocker_prefix: str) -> int:
        """Block one task on another. Both prefixes must resolve to exactly one task."""
        try:
            index = self._resolve_index(blockee_prefix)
        except AmbiguousReferenceError as e:
            logger.warning(f"Blockee {e}")
            return 0
        try:
            blocker = self.resolve(blocker_prefix)
        except AmbiguousReferenceError as e:
            logger.warning(f"Blocker {e}")
            return 0
        try:
            updated = lifecycle.block_on(self._heap[index], blocker.id)
        except InvalidTransitionError as e:
            logger.warning(str(e))
            return 0
        self._replace(index, updated)
        logger.debug(f"Blocked task {updated.id} on {blocker.id}")
        return 1

    def _require_editor(self) -> TaskEditor:
        if self._editor is None:
            raise EditorError("no editor configured")
        return self._editor

    def edit(self, prefix: str) -> int:
        """Let the user edit a task's fields as a JSON document.

        An edited document that is not valid JSON, fails validation, or moves
        a completed task to another status is rejected with a warning and the
        original task is kept.

        Raises:
            EditorError: If the editor could not be run
        """
        try:
            index = self._resolve_index(prefix)
        except AmbiguousReferenceError as e:
            logger.warning(str(e))
            return 0
        original = self._heap[index]
        editor = self._require_editor()
        text = json.dumps(original.payload().model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"
        edited_text = editor.edit_text(text, suffix=".json")

        try:
            payload = TaskPayload.model_validate(json.loads(edited_text))
        except json.JSONDecodeError as e:
            logger.warning(f"Edit of task {original.short_id} rejected, not valid JSON: {str(e)}")
            return 0
        except ValidationError as e:
            logger.warning(f"Edit of task {original.short_id} rejected: {e.error_count()} invalid field(s)")
            return 0

        edited = lifecycle.normalize(original.with_payload(payload), self.now())
        try:
            lifecycle.check_edit_allowed(original, edited)
        except InvalidTransitionError as e:
            logger.warning(str(e))
            return 0
        if edited == original:
            logger.info(f"Task {original.short_id} unchanged")
            return 0
        self._replace(index, edited)
        logger.debug(f"Edited task {edited.id}: {edited.summary[:50]}")
        return 1

    def edit_details(self, prefix: str) -> int:
        """Let the user edit only the free-text details of a task.

        Raises:
            EditorError: If the editor could not be run
        """
        try:
            index = self._resolve_index(prefix)
        except AmbiguousReferenceError as e:
            logger.warning(str(e))
            return 0
        original = self._heap[index]
        editor = self._require_editor()
        details = editor.edit_text(original.details, suffix=".md").rstrip()
        if details == original.details:
            logger.info(f"Task {original.short_id} unchanged")
            return 0
        self._replace(index, original.model_copy(update={"details": details}))
        logger.debug(f"Edited details of task {original.id}")
        return 1

    # ---- maintenance ----

    def wake_tasks(self) -> int:
        """Return sleeping tasks whose timer has expired to the backlog.

        Returns:
            Number of tasks woken
        """
        now = self.now()
        woken = 0
        for i, task in enumerate(self._heap):
            updated = lifecycle.wake(task, now)
            if updated is not None:
                self._heap[i] = updated
                woken += 1
        if woken:
            heapq.heapify(self._heap)
        return woken

    def unblock_tasks(self) -> int:
        """Drop blockers that are completed or gone; release tasks left with none.

        Returns:
            Number of tasks moved back to the backlog
        """
        capable = lifecycle.blocking_capable_ids(self._heap)
        changed = False
        unblocked = 0
        for i, task in enumerate(self._heap):
            updated = lifecycle.unblock(task, capable)
            if updated is None:
                continue
            self._heap[i] = updated
            changed = True
            if updated.status == TaskStatus.BACKLOG:
                unblocked += 1
        if changed:
            heapq.heapify(self._heap)
        return unblocked

    # ---- views ----

    def tasks(self, status: StatusFilter = None) -> List[Task]:
        """Tasks in urgency order, optionally limited to one status or a collection of statuses."""
        return rank_tasks(self._heap, _status_set(status))

    def get(self, prefix: str) -> Optional[Task]:
        """Return the task matching ``prefix``, or None (with a warning) if there is no unique match."""
        try:
            return self.resolve(prefix)
        except AmbiguousReferenceError as e:
            logger.warning(str(e))
            return None

    def most_urgent(self, status: StatusFilter = None) -> Optional[Task]:
        if status is None:
            return self._heap[0] if self._heap else None
        return ordering.most_urgent(self._heap, _status_set(status))

    def pop_most_urgent(self) -> Optional[Task]:
        """Remove and return the most urgent task, or None if the store is empty."""
        if not self._heap:
            return None
        task = heapq.heappop(self._heap)
        logger.debug(f"Removed task {task.id}: {task.summary[:50]}")
        return task

    def count(self, status: StatusFilter = None) -> int:
        if status is None:
            return len(self._heap)
        wanted = set(_status_set(status))
        return sum(1 for task in self._heap if task.status in wanted)

    def __len__(self) -> int:
        return len(self._heap)

    def __iter__(self):
        return iter(self.tasks())

    # ---- persistence ----

    def save(self) -> int:
        """Write all tasks to the backing file.

        Returns:
            Number of tasks written

        Raises:
            PersistenceError: If the file cannot be written
        """
        return save_tasks(self.path, self.tasks())

    def close(self) -> int:
        """Save the store. The store stays usable; closing again saves again."""
        return self.save()
