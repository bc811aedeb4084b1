"""Configuration for ztask.

Settings come from environment variables, optionally loaded from a local
`.env` file. Accessors read the environment at call time so a test (or a
wrapper script) can change them without re-importing the module.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from ztask.models.constants import DEFAULT_CATEGORY, DEFAULT_MIN_PREFIX_LENGTH

load_dotenv()

# Default backing file; $HOME is expanded at runtime
DEFAULT_DB_PATH = "$HOME/.ztask/taskdb.json"
DEFAULT_EDITOR = "vi"
DEFAULT_LOG_LEVEL = "WARNING"


def expand_path(raw: str) -> Path:
    """Expand environment variables and ``~`` in a path string."""
    return Path(os.path.expanduser(os.path.expandvars(raw)))


def get_db_path(override: Optional[str] = None) -> Path:
    """Return the task file path: explicit override, then ZTASK_DB, then the default."""
    raw = override or os.getenv("ZTASK_DB") or DEFAULT_DB_PATH
    return expand_path(raw)


def get_min_prefix_length() -> int:
    """Minimum id prefix length accepted before resolving a task.

    Invalid or negative values fall back to the default.
    """
    raw = os.getenv("ZTASK_MIN_PREFIX_LENGTH", "")
    try:
        value = int(raw)
    except ValueError:
        return DEFAULT_MIN_PREFIX_LENGTH
    return value if value >= 0 else DEFAULT_MIN_PREFIX_LENGTH


def get_default_category() -> str:
    return os.getenv("ZTASK_DEFAULT_CATEGORY") or DEFAULT_CATEGORY


def get_log_level() -> str:
    return (os.getenv("ZTASK_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()


def get_log_file() -> Optional[Path]:
    raw = os.getenv("ZTASK_LOG_FILE")
    return expand_path(raw) if raw else None


def get_editor_command() -> str:
    """Editor command line: $VISUAL, then $EDITOR, then vi."""
    return os.getenv("VISUAL") or os.getenv("EDITOR") or DEFAULT_EDITOR
