"""
Repository structure — how a freshly cloned repository expects to be built.

Produced once per installation attempt by the structure prober and
never mutated afterwards.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class RepositoryStructure(BaseModel):
    """Build shape of a cloned repository."""

    model_config = ConfigDict(frozen=True)

    has_docker_compose: bool = False
    compose_file: str | None = None
    has_root_dockerfile: bool = False
    dockerfiles: tuple[str, ...] = ()      # child dirs holding a Dockerfile, discovery order
    subdirectories: tuple[str, ...] = ()   # conventional service dirs (informational)

    @property
    def has_subdirectory_dockerfiles(self) -> bool:
        return bool(self.dockerfiles)

    def to_dict(self) -> dict:
        return {
            "hasDockerCompose": self.has_docker_compose,
            "composeFile": self.compose_file,
            "hasRootDockerfile": self.has_root_dockerfile,
            "dockerfiles": list(self.dockerfiles),
            "subdirectories": list(self.subdirectories),
        }
