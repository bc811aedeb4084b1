"""Run the user's text editor on a temporary file."""

import logging
import os
import shlex
import subprocess
import tempfile
from typing import Callable, List, Optional

from ztask.config import get_editor_command
from ztask.exceptions import EditorError

logger = logging.getLogger(__name__)


class ExternalEditor:
    """Edits text by opening it in $VISUAL / $EDITOR (default vi).

    The text is written to a temporary file, the editor is run on it and
    waited for, and the file is read back and deleted.
    """

    def __init__(self, command: Optional[str] = None, runner: Optional[Callable[..., subprocess.CompletedProcess]] = None):
        self.command = command or get_editor_command()
        self._run = runner or subprocess.run

    def _argv(self, path: str) -> List[str]:
        argv = shlex.split(self.command)
        if not argv:
            raise EditorError("editor command is empty")
        return argv + [path]

    def edit_text(self, text: str, suffix: str = ".txt") -> str:
        fd, path = tempfile.mkstemp(prefix="ztask-", suffix=suffix)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            argv = self._argv(path)
            logger.debug(f"Running editor: {' '.join(argv)}")
            try:
                completed = self._run(argv, check=False)
            except OSError as e:
                raise EditorError(f"could not run editor '{self.command}': {e}") from e
            if completed.returncode != 0:
                raise EditorError(f"editor '{self.command}' exited with status {completed.returncode}")
            with open(path, encoding="utf-8") as f:
                return f.read()
        finally:
            try:
                os.unlink(path)
            except OSError:
                logger.debug(f"Could not remove temporary file {path}")
