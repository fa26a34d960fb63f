"""Adapters — bindings for the host tools the installer drives.

Public re-exports for convenient access.
"""

from solinstall.adapters.containers.docker import DockerCli
from solinstall.adapters.mock import MockCommandRunner
from solinstall.adapters.shell.command import CommandRunner
from solinstall.adapters.vcs.git import GitCli

__all__ = [
    "CommandRunner",
    "DockerCli",
    "GitCli",
    "MockCommandRunner",
]
