"""Tests for the JSON task file and store save/close behaviour."""

import json
import logging
import pytest
from datetime import datetime

from ztask.exceptions import PersistenceError
from ztask.models.task import TaskStatus
from ztask.storage.json_file import dump_tasks, load_tasks, save_tasks
from ztask.storage.store import TaskStore


class TestLoad:
    """Test forgiving loads."""

    def test_missing_file_is_empty(self, store_path, caplog):
        with caplog.at_level(logging.INFO, logger="ztask"):
            assert load_tasks(store_path) == []
        assert "does not exist yet" in caplog.text

    @pytest.mark.parametrize("content", ["", "{not json", '{"tasks": []}', "\xff\xfe"])
    def test_unreadable_file_is_empty(self, store_path, content, caplog):
        store_path.parent.mkdir(parents=True)
        store_path.write_bytes(content.encode("latin-1"))

        with caplog.at_level(logging.WARNING, logger="ztask"):
            assert load_tasks(store_path) == []
        assert caplog.records

    def test_malformed_entries_skipped(self, store_path, make_task):
        good = make_task()
        store_path.parent.mkdir(parents=True)
        store_path.write_text(json.dumps([good.to_json_dict(), {"summary": "no id"}, good.to_json_dict()]))

        assert load_tasks(store_path) == [good]

    def test_naive_timestamps_accepted(self, store_path, make_task):
        data = make_task().to_json_dict()
        data["created_at"] = "2024-01-01T09:30:00"
        store_path.parent.mkdir(parents=True)
        store_path.write_text(json.dumps([data]))

        (task,) = load_tasks(store_path)
        assert task.created_at.tzinfo is not None


class TestSave:
    """Test atomic saves."""

    def test_creates_parent_directories(self, tmp_path, make_task):
        path = tmp_path / "a" / "b" / "tasks.json"

        assert save_tasks(path, [make_task(), make_task()]) == 2
        assert path.exists()
        assert not path.with_name("tasks.json.tmp").exists()

    def test_file_is_pretty_printed_array(self, store_path, make_task):
        save_tasks(store_path, [make_task(summary="Ünïcode")])

        text = store_path.read_text(encoding="utf-8")
        assert text.startswith("[\n  {")
        assert "Ünïcode" in text
        assert text == dump_tasks(load_tasks(store_path))

    def test_unwritable_target_raises(self, tmp_path, make_task):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")

        with pytest.raises(PersistenceError):
            save_tasks(blocker / "tasks.json", [make_task()])

    def test_failed_save_leaves_no_temp_file(self, store_path, make_task, monkeypatch):
        def refuse(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr("ztask.storage.json_file.os.replace", refuse)

        with pytest.raises(PersistenceError):
            save_tasks(store_path, [make_task()])

        assert list(store_path.parent.iterdir()) == []


class TestStorePersistence:
    """Test the store's load/close cycle."""

    def test_round_trip_without_clock_change(self, store_path, clock, editor):
        with TaskStore(store_path, clock=clock, editor=editor) as store:
            x = store.add("X", priority=2, details="notes")
            y = store.add("Y")
            z = store.add("Z", is_interrupt=True)
            store.block(x, y)
            store.suspend(z, "1h")
            before = store.tasks()

        reopened = TaskStore(store_path, clock=clock, editor=editor)

        assert reopened.tasks() == before
        assert reopened.get(x).blocked_by == {y}

    def test_close_returns_count(self, store):
        store.add("a")
        store.add("b")

        assert store.close() == 2
        assert len(json.loads(store.path.read_text())) == 2

    def test_close_on_exception_still_saves(self, store_path, clock):
        with pytest.raises(RuntimeError):
            with TaskStore(store_path, clock=clock) as store:
                store.add("saved anyway")
                raise RuntimeError("boom")

        assert [t.summary for t in load_tasks(store_path)] == ["saved anyway"]

    def test_wake_applied_after_time_passes(self, store_path, clock):
        with TaskStore(store_path, clock=clock) as store:
            task_id = store.add("nap")
            store.suspend(task_id, "10m")

        clock.advance(minutes=10)
        store = TaskStore(store_path, clock=clock)

        assert store.get(task_id).status == TaskStatus.BACKLOG

    def test_reload_with_naive_local_clock(self, store_path):
        with TaskStore(store_path, clock=datetime.now) as store:
            task_id = store.add("nap")
            store.suspend(task_id, "-5s")

        store = TaskStore(store_path, clock=datetime.now)

        assert store.get(task_id).status == TaskStatus.BACKLOG
        assert store.now().tzinfo is not None

    def test_aware_file_opened_with_naive_clock(self, store_path, clock):
        with TaskStore(store_path, clock=clock) as store:
            task_id = store.add("nap")
            store.suspend(task_id, "1h")

        store = TaskStore(store_path, clock=datetime.now)

        # The fixed clock is in the past, so the timer has long expired.
        assert store.get(task_id).status == TaskStatus.BACKLOG

    def test_close_failure_raises(self, tmp_path, clock):
        blocker = tmp_path / "file"
        blocker.write_text("")
        store = TaskStore(blocker / "tasks.json", clock=clock)
        store.add("nowhere to go")

        with pytest.raises(PersistenceError):
            store.close()

    def test_last_writer_wins(self, store_path, clock):
        first = TaskStore(store_path, clock=clock)
        second = TaskStore(store_path, clock=clock)
        first.add("from first")
        second.add("from second")

        first.close()
        second.close()

        assert [t.summary for t in load_tasks(store_path)] == ["from second"]


def test_sleep_invariant_holds_after_reload(store_path, clock):
    """Sleeping tasks always carry a wake time, and only they do."""
    with TaskStore(store_path, clock=clock) as store:
        a = store.add("a", is_interrupt=True)
        b = store.add("b")
        store.suspend(a, "2h")
        store.suspend(b, "1m")
        store.start(b)

    clock.advance(minutes=5)
    for task in TaskStore(store_path, clock=clock).tasks():
        assert (task.status == TaskStatus.SLEEPING) == (task.wake_at is not None)
