"""Text rendering of tasks for the terminal.

Colour handling:
- Disabled when stdout is not a TTY, unless FORCE_COLOR is set.
- NO_COLOR disables colour completely.
Every function returns a string; printing is left to the caller.
"""

import os
import sys
from datetime import datetime
from typing import Callable, Iterable, List, Optional

from ztask.engine.duration import format_duration
from ztask.models.constants import ID_DISPLAY_LENGTH
from ztask.models.task import Task, TaskStatus

RESET = "0"
BOLD = "1"
DIM = "2"
UNDERLINE = "4"
STRIKE = "9"
RED = "91"
GREEN = "92"
GREY = "90"
WHITE = "37"
BRIGHT_WHITE = "97"
SLATE_BLUE = "38;5;62"

HEADINGS = (
    (TaskStatus.ACTIVE, "Active Tasks"),
    (TaskStatus.BACKLOG, "Backlog Tasks"),
    (TaskStatus.BLOCKED, "Blocked Tasks"),
    (TaskStatus.SLEEPING, "Sleeping Tasks"),
    (TaskStatus.COMPLETED, "Completed Tasks"),
)

_ID_STYLE = {
    TaskStatus.ACTIVE: (GREEN,),
    TaskStatus.BACKLOG: (WHITE,),
    TaskStatus.BLOCKED: (RED,),
    TaskStatus.SLEEPING: (GREY,),
    TaskStatus.COMPLETED: (GREY,),
}

DETAIL_LABEL_WIDTH = 11


def colors_enabled(stream=None) -> bool:
    """Decide whether to emit ANSI colour codes on ``stream`` (stdout by default)."""
    if os.environ.get("NO_COLOR") is not None:
        return False
    if os.environ.get("FORCE_COLOR", "").lower() in {"1", "true", "yes", "on"}:
        return True
    stream = stream if stream is not None else sys.stdout
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


class Painter:
    """Wraps text in ANSI codes, or returns it untouched when colour is off."""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = colors_enabled() if enabled is None else enabled

    def __call__(self, text: str, *codes: str) -> str:
        if not self.enabled or not codes or not text:
            return text
        return f"\033[{';'.join(codes)}m{text}\033[{RESET}m"


def short_id(task_id: str) -> str:
    return task_id[:ID_DISPLAY_LENGTH]


def format_blockers(task: Task) -> str:
    """Blocker ids as "[abc123def, 0123abcd9]", or "" when the task is not blocked."""
    if not task.blocked_by:
        return ""
    return "[" + ", ".join(short_id(i) for i in sorted(task.blocked_by)) + "]"


def format_wake_at(wake_at: datetime, now: datetime) -> str:
    """Wake time with the remaining time, e.g. "2024-02-15 22:38:39 (1h 5m)".

    Past wake times read "(overdue by 5m)".
    """
    remaining = int((wake_at - now).total_seconds())
    prefix = "overdue by " if remaining <= 0 else ""
    return f"{wake_at.strftime('%Y-%m-%d %H:%M:%S')} ({prefix}{format_duration(remaining)})"


def render_oneline(
    task: Task,
    now: datetime,
    *,
    show_status: bool = True,
    paint: Optional[Painter] = None,
    style: Iterable[str] = (),
) -> str:
    """One line per task: id, priority, status, created date, summary, blockers, wake info.

    Args:
        task: Task to render
        now: Current time (for the wake countdown)
        show_status: Include the status column
        paint: Colour painter (auto-detected when omitted)
        style: ANSI codes applied to every column, overriding the per-status colours

    Returns:
        The rendered line (no trailing newline)
    """
    paint = paint or Painter()
    style = tuple(style)

    def col(text: str, *codes: str) -> str:
        return paint(text, *(style or codes))

    parts = [
        col(task.short_id, *_ID_STYLE[task.status]),
        col(str(task.priority), GREY),
    ]
    if show_status:
        parts.append(col(task.status.value, GREY))
    parts.append(col(task.created_at.strftime("%Y-%m-%d"), GREY))
    parts.append(col(task.summary, WHITE))
    if task.blocked_by:
        parts.append(col(format_blockers(task), RED))
    if task.wake_at is not None:
        parts.append(col(format_wake_at(task.wake_at, now), GREY))
    return "  " + "  ".join(parts)


def render_detailed(task: Task, now: datetime, *, paint: Optional[Painter] = None) -> str:
    """Labelled multi-line view of a task."""
    paint = paint or Painter()
    width = DETAIL_LABEL_WIDTH

    def row(label: str, value: str) -> str:
        return f"  {paint(label.ljust(width), BRIGHT_WHITE)} {paint(value, GREY)}"

    lines = [
        row("summary:", task.summary),
        row("id:", task.short_id),
        row("priority:", str(task.priority)),
        row("status:", task.status.value),
        row("category:", task.category),
        row("created:", task.created_at.strftime("%Y-%m-%d %H:%M:%S")),
    ]
    if task.blocked_by:
        lines.append(f"  {paint('blocked by:'.ljust(width), BRIGHT_WHITE)} {paint(format_blockers(task)[1:-1], SLATE_BLUE)}")
    if task.wake_at is not None:
        lines.append(row("wake at:", format_wake_at(task.wake_at, now)))
    if task.details:
        # Continuation lines line up under the first line of the details.
        details = task.details.replace("\n", "\n  " + " " * width + " ")
        lines.append(row("details:", details))
    return "\n".join(lines)


def render_grouped(tasks: Iterable[Task], now: datetime, *, paint: Optional[Painter] = None) -> str:
    """All tasks under one heading per status, each group most urgent first.

    Within the Active group the first task is highlighted and the rest dimmed;
    completed tasks are struck through. Empty groups are omitted.
    """
    paint = paint or Painter()
    ordered = sorted(tasks, key=Task.sort_key)
    lines: List[str] = []
    for status, heading in HEADINGS:
        group = [task for task in ordered if task.status == status]
        if not group:
            continue
        lines.append(paint(heading, BRIGHT_WHITE, UNDERLINE) + ":")
        for position, task in enumerate(group):
            lines.append(render_oneline(task, now, show_status=False, paint=paint, style=_group_style(status, position)))
    return "\n".join(lines)


def _group_style(status: TaskStatus, position: int) -> tuple:
    if status == TaskStatus.ACTIVE:
        return () if position == 0 else (GREY,)
    if status == TaskStatus.BACKLOG:
        return ()
    if status == TaskStatus.COMPLETED:
        return (GREY, STRIKE)
    return (GREY,)


def render_many(tasks: Iterable[Task], now: datetime, *, detailed: bool = False,
                paint: Optional[Painter] = None) -> str:
    """Render several tasks, one-line or detailed, separated by newlines."""
    paint = paint or Painter()
    render: Callable[..., str] = render_detailed if detailed else render_oneline
    return "\n".join(render(task, now, paint=paint) for task in tasks)
