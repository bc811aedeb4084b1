"""ztask command line.

    ztask [--db PATH] [-v] [command] [args...]

With no command, shows the task to work on now.
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ztask import __version__
from ztask.cli.render import Painter, render_grouped, render_many, render_oneline
from ztask.config import get_db_path, get_default_category, get_log_file, get_log_level
from ztask.exceptions import ZTaskError
from ztask.integrations.editor import ExternalEditor
from ztask.logging_setup import setup_logging
from ztask.models.constants import MAX_PRIORITY, MIN_PRIORITY
from ztask.models.task import TaskStatus
from ztask.storage.store import TaskEditor, TaskStore

logger = logging.getLogger(__name__)


class CommandContext:
    """What a command handler needs besides its parsed arguments."""

    def __init__(self, store: TaskStore, now: Callable[[], datetime], paint: Painter, verbosity: int):
        self.store = store
        self.now = now
        self.paint = paint
        self.verbosity = verbosity

    def out(self, text: str) -> None:
        if text:
            print(text)

    def report(self, count: int, what: str) -> None:
        if self.verbosity > 0:
            print(f"{count} task(s) {what}")


def _default_active_id(store: TaskStore) -> Optional[str]:
    task = store.most_urgent(TaskStatus.ACTIVE)
    return task.id if task else None


def _targets(ctx: CommandContext, ids: Sequence[str]) -> List[str]:
    """The ids given on the command line, or the most urgent active task."""
    if ids:
        return list(ids)
    default = _default_active_id(ctx.store)
    if default is None:
        logger.warning("There's no active task to act on")
        return []
    return [default]


def summaries_from_words(words: Sequence[str], existing_count: int) -> List[str]:
    """Turn `add` arguments into task summaries.

    Single words are joined into one summary; if any argument contains a
    space, every argument is its own summary. No arguments gives a
    placeholder summary numbered after the existing tasks.
    """
    if not words:
        return [f"New task #{existing_count + 1}"]
    if any(" " in word for word in words):
        return [word for word in words if word.strip()]
    return [" ".join(words)]


# ---- command handlers ----

def cmd_show(ctx: CommandContext, args: argparse.Namespace) -> int:
    detailed = ctx.verbosity > 0
    if args.task_ids:
        shown = [task for task in (ctx.store.get(i) for i in args.task_ids) if task is not None]
        ctx.out(render_many(shown, ctx.now(), detailed=detailed, paint=ctx.paint))
        return len(shown)

    if ctx.store.count(TaskStatus.ACTIVE) == 0:
        _start_next_backlog(ctx)
    task = ctx.store.most_urgent(TaskStatus.ACTIVE)
    if task is None:
        logger.info("Nothing to do")
        return 0
    ctx.out(render_many([task], ctx.now(), detailed=detailed, paint=ctx.paint))
    return 1


def cmd_list(ctx: CommandContext, args: argparse.Namespace) -> int:
    ctx.out(render_grouped(ctx.store.tasks(), ctx.now(), paint=ctx.paint))
    ctx.report(len(ctx.store), "found")
    return len(ctx.store)


def cmd_add(ctx: CommandContext, args: argparse.Namespace) -> int:
    category = args.category or get_default_category()
    ids = []
    for summary in summaries_from_words(args.task_names, len(ctx.store)):
        task_id = ctx.store.add(summary, category=category, is_interrupt=args.interrupt, priority=args.priority)
        ids.append(task_id)
        ctx.out(render_oneline(ctx.store.get(task_id), ctx.now(), paint=ctx.paint))
    if ctx.verbosity > 0:
        print(f"created task(s) {ids}")
    if args.edit:
        edited = sum(ctx.store.edit(task_id) for task_id in ids)
        ctx.report(edited, "edited")
    return len(ids)


def cmd_del(ctx: CommandContext, args: argparse.Namespace) -> int:
    if args.task_ids:
        count = sum(ctx.store.remove(i) for i in args.task_ids)
    else:
        count = 1 if ctx.store.pop_most_urgent() is not None else 0
    ctx.report(count, "removed")
    return count


def cmd_edit(ctx: CommandContext, args: argparse.Namespace) -> int:
    edit = ctx.store.edit_details if args.details_only else ctx.store.edit
    count = sum(edit(i) for i in _targets(ctx, args.task_ids))
    ctx.report(count, "updated")
    return count


def _start_next_backlog(ctx: CommandContext) -> int:
    task = ctx.store.most_urgent(TaskStatus.BACKLOG)
    if task is None:
        return 0
    return ctx.store.start(task.id)


def cmd_start(ctx: CommandContext, args: argparse.Namespace) -> int:
    if args.task_id:
        count = ctx.store.start(args.task_id)
    elif ctx.store.count(TaskStatus.ACTIVE) == 0:
        count = _start_next_backlog(ctx)
    else:
        logger.warning("Can't activate the next backlog task while tasks are active; "
                       "finish them or start a task by id")
        count = 0
    ctx.report(count, "started")
    return count


def cmd_stop(ctx: CommandContext, args: argparse.Namespace) -> int:
    count = sum(ctx.store.stop(i) for i in _targets(ctx, [args.task_id] if args.task_id else []))
    ctx.report(count, "stopped")
    return count


def cmd_sleep(ctx: CommandContext, args: argparse.Namespace) -> int:
    count = sum(ctx.store.suspend(i, args.duration) for i in _targets(ctx, args.task_ids))
    ctx.report(count, "suspended")
    return count


def cmd_block(ctx: CommandContext, args: argparse.Namespace) -> int:
    count = sum(ctx.store.block(args.blockee, blocker) for blocker in args.blockers)
    ctx.report(count, "updated")
    return count


def cmd_complete(ctx: CommandContext, args: argparse.Namespace) -> int:
    count = sum(ctx.store.complete(i) for i in _targets(ctx, args.task_ids))
    ctx.report(count, "updated")
    return count


# ---- argument parsing ----

def _priority(value: str) -> int:
    priority = int(value)
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise argparse.ArgumentTypeError(f"priority must be between {MIN_PRIORITY} and {MAX_PRIORITY}")
    return priority


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ztask", description="A very simple task manager")
    parser.add_argument("--db", help="Task file (default: $ZTASK_DB or $HOME/.ztask/taskdb.json)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.set_defaults(func=cmd_show, task_ids=[], sub_verbose=0)
    subparsers = parser.add_subparsers(dest="command")

    show = subparsers.add_parser("show", help="Show the current task, or the given tasks")
    show.add_argument("task_ids", nargs="*", help="Id prefix(es) of task(s) to show")
    show.add_argument("-v", "--verbose", dest="sub_verbose", action="count", default=0)
    show.set_defaults(func=cmd_show)

    list_parser = subparsers.add_parser("list", help="List all tasks grouped by status")
    list_parser.add_argument("-v", "--verbose", dest="sub_verbose", action="count", default=0)
    list_parser.set_defaults(func=cmd_list)

    add = subparsers.add_parser("add", help="Add one or more new tasks")
    add.add_argument("task_names", nargs="*", help="Summary words, or one quoted summary per task")
    add.add_argument("-i", "--interrupt", action="store_true", help="Add as an active task")
    add.add_argument("-e", "--edit", action="store_true", help="Open the new task(s) in the editor")
    add.add_argument("-c", "--category", help="Category tag")
    add.add_argument("-p", "--priority", type=_priority, help=f"Priority {MIN_PRIORITY} (highest) to {MAX_PRIORITY}")
    add.set_defaults(func=cmd_add)

    delete = subparsers.add_parser("del", help="Delete tasks (default: the most urgent task)")
    delete.add_argument("task_ids", nargs="*")
    delete.set_defaults(func=cmd_del)

    edit = subparsers.add_parser("edit", help="Edit tasks (default: the current task)")
    edit.add_argument("task_ids", nargs="*")
    edit.add_argument("-d", "--details-only", action="store_true", help="Edit only the details text")
    edit.set_defaults(func=cmd_edit)

    start = subparsers.add_parser("start", help="Start a task (default: the next backlog task)")
    start.add_argument("task_id", nargs="?")
    start.set_defaults(func=cmd_start)

    stop = subparsers.add_parser("stop", help="Stop a task (default: the current task)")
    stop.add_argument("task_id", nargs="?")
    stop.set_defaults(func=cmd_stop)

    sleep = subparsers.add_parser("sleep", help="Put tasks to sleep (default: the current task)")
    sleep.add_argument("task_ids", nargs="*")
    sleep.add_argument("-d", "--duration", required=True, help='How long, e.g. "3h", "2m 10s", "1w"')
    sleep.set_defaults(func=cmd_sleep)

    block = subparsers.add_parser("block", help="Block a task on one or more other tasks")
    block.add_argument("blockee")
    block.add_argument("blockers", nargs="+")
    block.set_defaults(func=cmd_block)

    complete = subparsers.add_parser("complete", help="Complete tasks (default: the current task)")
    complete.add_argument("task_ids", nargs="*")
    complete.set_defaults(func=cmd_complete)

    return parser


def _console_level(verbosity: int) -> str:
    if verbosity >= 2:
        return "DEBUG"
    if verbosity == 1:
        return "INFO"
    return get_log_level()


def main(
    argv: Optional[Sequence[str]] = None,
    *,
    editor: Optional[TaskEditor] = None,
    clock: Optional[Callable[[], datetime]] = None,
    color: Optional[bool] = None,
) -> int:
    """Run the command line and return the process exit status."""
    args = build_parser().parse_args(argv)
    verbosity = max(args.verbose, args.sub_verbose)
    setup_logging(console_level=_console_level(verbosity), log_file=get_log_file())

    db_path = get_db_path(args.db)
    logger.debug(f"Using task file {db_path}")
    try:
        with TaskStore(db_path, clock=clock, editor=editor or ExternalEditor()) as store:
            ctx = CommandContext(store, store.now, Painter(color), verbosity)
            if store.woken_on_load:
                print(f"Awakened {store.woken_on_load} task(s)")
            if store.unblocked_on_load:
                print(f"Unblocked {store.unblocked_on_load} task(s)")
            args.func(ctx, args)
    except ZTaskError as e:
        logger.error(str(e))
        return 1
    except ValueError as e:
        logger.error(f"error: {str(e)}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
