"""
Git binding — clone operations through the git CLI.

Uses the git CLI via the command runner, never a library client.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from solinstall.adapters.shell.command import CommandRunner
from solinstall.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class GitCli:
    """Version control operations needed by the installer."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def clone(self, repo_url: str, branch: str, dest: Path) -> Receipt:
        """Clone *branch* of *repo_url* into *dest*.

        Raises:
            CommandFailed: If git exits non-zero.
        """
        command = (
            f"git clone -b {shlex.quote(branch)} "
            f"{shlex.quote(repo_url)} {shlex.quote(str(dest))}"
        )
        return self.runner.run_with_progress(command, f"Cloning {repo_url} ({branch})")
