"""Pytest fixtures and configuration for ztask tests."""

import logging
import pytest
from datetime import datetime, timedelta, timezone
import uuid

from ztask.models.task import Task, TaskStatus
from ztask.storage.json_file import save_tasks
from ztask.storage.store import TaskStore


# All tests run against one fixed instant so ordering and wake times are deterministic.
FIXED_NOW = datetime(2024, 2, 15, 12, 0, 0, tzinfo=timezone.utc)

_ZTASK_ENV = (
    "ZTASK_DB",
    "ZTASK_MIN_PREFIX_LENGTH",
    "ZTASK_DEFAULT_CATEGORY",
    "ZTASK_LOG_LEVEL",
    "ZTASK_LOG_FILE",
    "VISUAL",
    "EDITOR",
    "FORCE_COLOR",
    "NO_COLOR",
)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakeEditor:
    """TaskEditor that returns canned text (or applies a function) instead of running a program."""

    def __init__(self, result=None):
        self.result = result
        self.calls = []

    def edit_text(self, text: str, suffix: str = ".txt") -> str:
        self.calls.append((text, suffix))
        if callable(self.result):
            return self.result(text)
        return text if self.result is None else self.result


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the developer's environment (and any .env file) out of the tests."""
    for name in _ZTASK_ENV:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fixed_now():
    """The instant every test starts at."""
    return FIXED_NOW


@pytest.fixture
def clock():
    """A fixed, manually advanced clock."""
    return FakeClock()


@pytest.fixture
def editor():
    """An editor that hands the text back unchanged."""
    return FakeEditor()


@pytest.fixture
def store_path(tmp_path):
    """Path of a task file that does not exist yet."""
    return tmp_path / "ztask" / "taskdb.json"


@pytest.fixture
def store(store_path, clock, editor):
    """An empty TaskStore on a temporary file."""
    return TaskStore(store_path, clock=clock, editor=editor, min_prefix_length=1)


@pytest.fixture
def sample_task_base():
    """Base task data for creating test tasks.

    Returns a dict with default task attributes that can be overridden.
    """
    return {
        "id": uuid.uuid4().hex,
        "summary": "Test Task",
        "details": "",
        "priority": 5,
        "category": "quick",
        "created_at": FIXED_NOW - timedelta(days=1),
        "status": TaskStatus.BACKLOG,
        "blocked_by": frozenset(),
        "wake_at": None,
    }


@pytest.fixture
def make_task(sample_task_base):
    """Factory for tasks: make_task(id="ab...", status=TaskStatus.ACTIVE, ...)."""
    def _make(**overrides):
        data = {**sample_task_base, "id": uuid.uuid4().hex, **overrides}
        return Task(**data)
    return _make


@pytest.fixture
def seeded_store(store_path, clock, editor):
    """Write tasks to the store file, then open a store on it."""
    def _open(*tasks, min_prefix_length=1):
        save_tasks(store_path, tasks)
        return TaskStore(store_path, clock=clock, editor=editor, min_prefix_length=min_prefix_length)
    return _open


@pytest.fixture
def restore_root_logging():
    """Undo setup_logging() changes to the root logger after a test."""
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            handler.close()
        root.removeHandler(handler)
    for handler in saved_handlers:
        root.addHandler(handler)
    root.setLevel(saved_level)
    logging.captureWarnings(False)
