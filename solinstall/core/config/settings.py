"""
Installer settings — host-level knobs resolved once at startup.

Values come from ``SOLINSTALL_*`` environment variables, falling back to
the defaults below.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError, field_validator

from solinstall.core.config.registry import ConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "SOLINSTALL_"


class InstallerSettings(BaseModel):
    """Where solutions are installed and how host commands behave."""

    workspace_root: Path = Path("/workspace")
    root_env_file: Path | None = None     # default: <workspace_root>/.env
    network: str = "weamai_app-network"
    command_timeout: int | None = Field(default=3600, ge=0)
    compose_version: str = "v2.20.2"
    compose_install_path: Path = Path("/usr/local/bin/docker-compose")
    registry_file: Path | None = None

    @field_validator("command_timeout")
    @classmethod
    def _zero_disables(cls, value: int | None) -> int | None:
        return value or None

    @property
    def root_env_path(self) -> Path:
        return self.root_env_file or self.workspace_root / ".env"

    def workspace_for(self, repo_name: str) -> Path:
        """Directory a solution is cloned into."""
        return self.workspace_root / repo_name


_ENV_FIELDS = {
    "WORKSPACE_ROOT": "workspace_root",
    "ROOT_ENV_FILE": "root_env_file",
    "NETWORK": "network",
    "COMMAND_TIMEOUT": "command_timeout",
    "COMPOSE_VERSION": "compose_version",
    "COMPOSE_INSTALL_PATH": "compose_install_path",
    "REGISTRY_FILE": "registry_file",
}


def load_settings(
    environ: Mapping[str, str] | None = None,
    **overrides: object,
) -> InstallerSettings:
    """Build settings from ``SOLINSTALL_*`` variables plus explicit overrides.

    Raises:
        ConfigError: If a variable holds an invalid value.
    """
    env = os.environ if environ is None else environ
    data: dict[str, object] = {}
    for suffix, field in _ENV_FIELDS.items():
        value = env.get(ENV_PREFIX + suffix)
        if value not in (None, ""):
            data[field] = value
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        settings = InstallerSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid installer settings: {e}") from e

    logger.debug("Installer settings: %s", settings.model_dump(mode="json"))
    return settings
