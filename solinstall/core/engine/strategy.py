"""
Build strategy selection — a pure decision over a RepositoryStructure.

Strategies form a fallback chain, each assuming less about the
repository author's intent than the one before:

    COMPOSE                 a compose file at the root
    ROOT_DOCKERFILE         a Dockerfile at the root
    SUBDIRECTORY_DOCKERFILES  Dockerfiles in child directories
    DISCOVERED_DOCKERFILE   search the whole tree for any Dockerfile
"""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum

from solinstall.core.models.structure import RepositoryStructure

PREFERRED_RUN_TARGET = "frontend"


class BuildStrategy(str, Enum):
    COMPOSE = "compose"
    ROOT_DOCKERFILE = "root-dockerfile"
    SUBDIRECTORY_DOCKERFILES = "subdirectory-dockerfiles"
    DISCOVERED_DOCKERFILE = "discovered-dockerfile"


def select_strategy(
    structure: RepositoryStructure,
    *,
    allow_compose: bool = True,
) -> BuildStrategy:
    """Pick the richest build strategy the repository supports.

    Single-container installs pass ``allow_compose=False``: they build
    one image even when the repository also ships a compose file.
    """
    if allow_compose and structure.has_docker_compose:
        return BuildStrategy.COMPOSE
    if structure.has_root_dockerfile:
        return BuildStrategy.ROOT_DOCKERFILE
    if structure.dockerfiles:
        return BuildStrategy.SUBDIRECTORY_DOCKERFILES
    return BuildStrategy.DISCOVERED_DOCKERFILE


def select_run_target(directories: Sequence[str]) -> str:
    """Choose which subdirectory image to run: ``frontend``, else the first.

    Raises:
        ValueError: If *directories* is empty.
    """
    if not directories:
        raise ValueError("No subdirectory images to choose from")
    if PREFERRED_RUN_TARGET in directories:
        return PREFERRED_RUN_TARGET
    return directories[0]
