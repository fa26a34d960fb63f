"""
Solution model — the declarative description of an installable repository.

Loaded from the solution registry (solutions.yml). Read-only for the
lifetime of an installation.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class InstallKind(str, Enum):
    """How a solution is built and run."""

    SINGLE_CONTAINER = "single-container"
    MULTI_SERVICE = "multi-service"


# Registry files may use the docker-flavoured names
_KIND_ALIASES = {
    "docker": InstallKind.SINGLE_CONTAINER,
    "docker-compose": InstallKind.MULTI_SERVICE,
}


class SolutionDescriptor(BaseModel):
    """A named third-party repository with its build/run settings."""

    model_config = ConfigDict(frozen=True)

    identifier: str
    repo_url: str
    repo_name: str = ""             # workspace directory name (default: identifier)
    branch: str = "main"
    image_name: str
    container_name: str
    port: str
    install_kind: InstallKind = InstallKind.SINGLE_CONTAINER
    env_file: str | None = None     # template copied to .env (single-container)
    additional_ports: tuple[str, ...] = ()
    env_defaults: dict[str, str] = Field(default_factory=dict)
    description: str = ""

    @field_validator("install_kind", mode="before")
    @classmethod
    def _normalize_kind(cls, value: object) -> object:
        if isinstance(value, str):
            return _KIND_ALIASES.get(value.strip().lower(), value)
        return value

    @field_validator("port", mode="before")
    @classmethod
    def _port_as_str(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    @field_validator("additional_ports", mode="before")
    @classmethod
    def _ports_as_str(cls, value: object) -> object:
        if value is None:
            return ()
        if isinstance(value, (list, tuple)):
            return tuple(str(p) for p in value)
        return value

    @model_validator(mode="before")
    @classmethod
    def _default_repo_name(cls, data: object) -> object:
        if isinstance(data, dict) and not data.get("repo_name"):
            data = {**data, "repo_name": data.get("identifier", "")}
        return data

    @property
    def is_multi_service(self) -> bool:
        return self.install_kind is InstallKind.MULTI_SERVICE
