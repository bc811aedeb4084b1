"""Tests for the ztask command line."""

import json
import pytest

from ztask.cli.main import build_parser, main, summaries_from_words
from ztask.models.task import TaskStatus
from ztask.storage.json_file import load_tasks

pytestmark = pytest.mark.usefixtures("restore_root_logging")


@pytest.fixture
def run(store_path, clock, editor):
    """Run the CLI against the temporary task file; returns the exit status."""
    def _run(*argv):
        return main(["--db", str(store_path), *argv], editor=editor, clock=clock, color=False)
    return _run


@pytest.fixture
def saved(store_path):
    """Tasks currently in the task file, most urgent first."""
    def _saved():
        return sorted(load_tasks(store_path), key=lambda task: task.sort_key())
    return _saved


class TestSummariesFromWords:
    """Test how `add` arguments become task summaries."""

    def test_single_words_joined(self):
        assert summaries_from_words(["buy", "milk"], 0) == ["buy milk"]

    def test_multi_word_args_are_separate_tasks(self):
        assert summaries_from_words(["buy milk", "walk"], 0) == ["buy milk", "walk"]

    def test_no_args_gives_numbered_placeholder(self):
        assert summaries_from_words([], 3) == ["New task #4"]


class TestAdd:
    """Test the add command."""

    def test_add_prints_and_saves(self, run, saved, capsys):
        assert run("add", "buy", "milk") == 0

        (task,) = saved()
        assert task.summary == "buy milk"
        assert task.category == "quick"
        assert task.short_id in capsys.readouterr().out

    def test_add_several(self, run, saved):
        run("add", "buy milk", "walk the dog")

        assert sorted(t.summary for t in saved()) == ["buy milk", "walk the dog"]

    def test_add_placeholder(self, run, saved):
        run("add")
        run("add")

        assert sorted(t.summary for t in saved()) == ["New task #1", "New task #2"]

    def test_add_options(self, run, saved, monkeypatch):
        monkeypatch.setenv("ZTASK_DEFAULT_CATEGORY", "home")

        run("add", "-i", "-p", "2", "urgent")
        run("add", "-c", "work", "report")

        by_summary = {t.summary: t for t in saved()}
        assert by_summary["urgent"].status == TaskStatus.ACTIVE
        assert by_summary["urgent"].priority == 2
        assert by_summary["urgent"].category == "home"
        assert by_summary["report"].category == "work"

    def test_add_and_edit(self, run, saved, editor):
        def rename(text):
            data = json.loads(text)
            data["summary"] = "renamed"
            return json.dumps(data)

        editor.result = rename

        run("add", "-e", "draft")

        assert [t.summary for t in saved()] == ["renamed"]

    def test_bad_priority_rejected_by_parser(self, run):
        with pytest.raises(SystemExit):
            run("add", "-p", "10", "nope")


class TestWorkflow:
    """Test the commands that move tasks between statuses."""

    def test_show_starts_next_backlog_task(self, run, saved, capsys):
        run("add", "-p", "3", "first")
        run("add", "second")
        capsys.readouterr()

        assert run() == 0

        tasks = saved()
        assert [(t.summary, t.status) for t in tasks] == [
            ("first", TaskStatus.ACTIVE),
            ("second", TaskStatus.BACKLOG),
        ]
        assert "first" in capsys.readouterr().out

    def test_start_refuses_when_something_is_active(self, run, saved, capsys):
        run("add", "-i", "busy")
        run("add", "waiting")

        assert run("start") == 0

        assert saved()[1].status == TaskStatus.BACKLOG
        assert "Can't activate" in capsys.readouterr().err

    def test_start_by_prefix(self, run, saved):
        run("add", "task")
        task_id = saved()[0].id

        run("start", task_id[:6])

        assert saved()[0].status == TaskStatus.ACTIVE

    def test_complete_defaults_to_active_task(self, run, saved):
        run("add", "-i", "doing")
        run("add", "later")

        run("complete")

        by_summary = {t.summary: t.status for t in saved()}
        assert by_summary == {"doing": TaskStatus.COMPLETED, "later": TaskStatus.BACKLOG}

    def test_stop_then_next_run_returns_to_backlog(self, run, saved):
        run("add", "-i", "doing")

        run("stop")
        run("list")

        assert saved()[0].status == TaskStatus.BACKLOG

    def test_sleep_with_duration(self, run, saved, clock):
        run("add", "-i", "nap")

        run("sleep", "-d", "2h")

        (task,) = saved()
        assert task.status == TaskStatus.SLEEPING
        assert (task.wake_at - clock.now).total_seconds() == 7200

    def test_bad_duration_exits_nonzero(self, run, saved, capsys):
        run("add", "-i", "nap")

        assert run("sleep", "-d", "12") == 1

        assert saved()[0].status == TaskStatus.ACTIVE
        assert "invalid duration" in capsys.readouterr().err

    def test_block(self, run, saved):
        run("add", "blockee")
        run("add", "blocker")
        blockee, blocker = sorted(saved(), key=lambda t: t.summary)

        run("block", blockee.id[:8], blocker.id[:8])

        by_summary = {t.summary: t for t in saved()}
        assert by_summary["blockee"].status == TaskStatus.BLOCKED
        assert by_summary["blockee"].blocked_by == {blocker.id}

    def test_block_needs_two_ids(self, run):
        with pytest.raises(SystemExit):
            run("block", "abc")

    def test_del_without_ids_removes_most_urgent(self, run, saved):
        run("add", "-p", "1", "top")
        run("add", "rest")

        run("del")

        assert [t.summary for t in saved()] == ["rest"]

    def test_ambiguous_prefix_reported(self, run, saved, capsys):
        run("add", "a")
        run("add", "b")

        run("del", "")

        assert len(saved()) == 2
        assert "does not uniquely match" in capsys.readouterr().err

    def test_edit_details(self, run, saved, editor):
        run("add", "-i", "notes")
        editor.result = "some details\n"

        run("edit", "-d")

        assert saved()[0].details == "some details"


class TestOutput:
    """Test list/show output and verbosity."""

    def test_list_groups_by_status(self, run, capsys):
        run("add", "-i", "doing")
        run("add", "todo")
        capsys.readouterr()

        run("list")

        out = capsys.readouterr().out
        assert out.index("Active Tasks:") < out.index("doing") < out.index("Backlog Tasks:") < out.index("todo")
        assert "Completed Tasks" not in out

    def test_verbose_reports_counts(self, run, capsys):
        run("add", "task")
        capsys.readouterr()

        run("-v", "start")

        assert "1 task(s) started" in capsys.readouterr().out

    def test_maintenance_reported_once(self, run, capsys):
        run("add", "-i", "doing")
        run("stop")
        capsys.readouterr()

        run("-v", "list")

        captured = capsys.readouterr()
        assert (captured.out + captured.err).count("Awakened 1 task(s)") == 1
        assert "Awakened 1 task(s)" in captured.out

    def test_show_detailed(self, run, capsys):
        run("add", "-i", "look at me")
        capsys.readouterr()

        run("show", "-v")

        out = capsys.readouterr().out
        assert "summary:" in out
        assert "look at me" in out


def test_unwritable_task_file_exits_nonzero(tmp_path, clock, editor, capsys):
    blocker = tmp_path / "file"
    blocker.write_text("")

    status = main(["--db", str(blocker / "tasks.json"), "add", "x"], editor=editor, clock=clock, color=False)

    assert status == 1
    assert "could not save tasks" in capsys.readouterr().err


def test_db_from_environment(monkeypatch, store_path, clock, editor, saved):
    monkeypatch.setenv("ZTASK_DB", str(store_path))

    main(["add", "env", "task"], editor=editor, clock=clock, color=False)

    assert [t.summary for t in saved()] == ["env task"]


def test_parser_has_every_command():
    parser = build_parser()

    extra = {"block": ["a", "b"], "sleep": ["-d", "1h"]}
    for command in ("show", "list", "add", "del", "edit", "start", "stop", "sleep", "block", "complete"):
        assert parser.parse_args([command] + extra.get(command, [])).func is not None
