"""Repository structure detection — compose files, Dockerfiles, service dirs."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from solinstall.core.models.structure import RepositoryStructure

logger = logging.getLogger(__name__)

COMPOSE_FILENAMES = (
    "docker-compose.yml",
    "docker-compose.yaml",
    "compose.yml",
    "compose.yaml",
)

DOCKERFILE_NAME = "Dockerfile"

SERVICE_DIR_HINTS = ("frontend", "backend", "node", "python", "api", "web", "app")

SKIP_DIRS = {".git"}


def find_compose_file(repo_path: Path) -> str | None:
    """Return the name of the first compose file found at the root, or None."""
    for name in COMPOSE_FILENAMES:
        if (repo_path / name).is_file():
            return name
    return None


def iter_dockerfiles(repo_path: Path):
    """Yield every Dockerfile under *repo_path* in a stable walk order."""
    for dirpath, dirnames, filenames in os.walk(repo_path):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        if DOCKERFILE_NAME in filenames:
            path = Path(dirpath) / DOCKERFILE_NAME
            if path.is_file():
                yield path


def find_subdirectory_dockerfiles(repo_path: Path) -> list[str]:
    """Immediate child dirs that contain a Dockerfile at any depth.

    The root Dockerfile is excluded. Names are de-duplicated and kept in
    discovery order.
    """
    found: list[str] = []
    for path in iter_dockerfiles(repo_path):
        rel = path.relative_to(repo_path)
        if len(rel.parts) < 2:
            continue  # root Dockerfile
        top = rel.parts[0]
        if top not in found:
            found.append(top)
            logger.info("Found Dockerfile in: %s", top)
    return found


def is_dockerfile_variant(name: str) -> bool:
    """``Dockerfile``, ``Dockerfile.<suffix>`` or ``<prefix>.Dockerfile``."""
    return (
        name == DOCKERFILE_NAME
        or name.startswith(DOCKERFILE_NAME + ".")
        or name.endswith("." + DOCKERFILE_NAME)
    )


def find_any_dockerfile(repo_path: Path) -> Path | None:
    """First Dockerfile or Dockerfile variant anywhere in the tree.

    Last resort when the exact-name probes found nothing, so it also
    accepts ``Dockerfile.prod``, ``app.Dockerfile`` and the like.
    """
    for dirpath, dirnames, filenames in os.walk(repo_path):
        dirnames[:] = sorted(d for d in dirnames if d not in SKIP_DIRS)
        for name in sorted(filenames):
            path = Path(dirpath) / name
            if is_dockerfile_variant(name) and path.is_file():
                return path
    return None


def probe_repository(repo_path: Path) -> RepositoryStructure:
    """Classify how *repo_path* expects to be built.

    Every probe is a pure existence check; nothing on disk is touched.
    """
    logger.info("Analyzing repository structure of %s", repo_path)

    compose_file = find_compose_file(repo_path)
    if compose_file:
        logger.info("Found Docker Compose file: %s", compose_file)

    has_root_dockerfile = (repo_path / DOCKERFILE_NAME).is_file()
    if has_root_dockerfile:
        logger.info("Found root Dockerfile")

    dockerfiles = find_subdirectory_dockerfiles(repo_path)
    subdirectories = [d for d in SERVICE_DIR_HINTS if (repo_path / d).is_dir()]

    structure = RepositoryStructure(
        has_docker_compose=compose_file is not None,
        compose_file=compose_file,
        has_root_dockerfile=has_root_dockerfile,
        dockerfiles=tuple(dockerfiles),
        subdirectories=tuple(subdirectories),
    )
    logger.info("Repository structure detected: %s", structure.to_dict())
    return structure
