"""JSON file persistence for the task store.

The whole task list lives in one pretty-printed JSON array. It is read once
when a store is opened and written back wholesale when the store is closed.

Loading is forgiving: a missing, unreadable or malformed file yields an empty
list (first run), and individual malformed entries are skipped. Saving is
strict: any failure raises PersistenceError, since silently losing the user's
tasks is not acceptable.
"""

import json
import logging
import os
from pathlib import Path
from typing import Iterable, List, Set, Union

from pydantic import ValidationError

from ztask.exceptions import PersistenceError
from ztask.models.task import Task

logger = logging.getLogger(__name__)


def load_tasks(path: Union[str, Path]) -> List[Task]:
    """Read tasks from ``path``.

    Returns:
        The tasks found in the file (possibly empty)
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"Task file {path} does not exist yet; starting with an empty list")
        return []

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read task file {path}: {type(e).__name__}: {str(e)}; starting empty")
        return []

    if not isinstance(raw, list):
        logger.warning(f"Task file {path} does not contain a JSON array; starting empty")
        return []

    tasks: List[Task] = []
    seen: Set[str] = set()
    for index, entry in enumerate(raw):
        try:
            task = Task.model_validate(entry)
        except ValidationError as e:
            logger.warning(f"Skipping malformed task #{index} in {path}: {e.error_count()} error(s)")
            continue
        if task.id in seen:
            logger.warning(f"Skipping duplicate task id {task.id} in {path}")
            continue
        seen.add(task.id)
        tasks.append(task)

    logger.debug(f"Loaded {len(tasks)} task(s) from {path}")
    return tasks


def dump_tasks(tasks: Iterable[Task]) -> str:
    """Serialize tasks to the on-disk JSON text."""
    return json.dumps([task.to_json_dict() for task in tasks], indent=2, ensure_ascii=False) + "\n"


def save_tasks(path: Union[str, Path], tasks: Iterable[Task]) -> int:
    """Write tasks to ``path`` atomically (temp file + rename).

    Returns:
        Number of tasks written

    Raises:
        PersistenceError: If the directory or file cannot be written
    """
    path = Path(path)
    tasks = list(tasks)
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp.write_text(dump_tasks(tasks), encoding="utf-8")
        os.replace(tmp, path)
    except OSError as e:
        logger.error(f"Failed to save {len(tasks)} task(s) to {path}: {type(e).__name__}: {str(e)}")
        try:
            tmp.unlink(missing_ok=True)
        except OSError as cleanup_error:
            logger.warning(f"Could not remove {tmp}: {str(cleanup_error)}")
        raise PersistenceError(f"could not save tasks to {path}: {e}") from e
    logger.debug(f"Saved {len(tasks)} task(s) to {path}")
    return len(tasks)
