"""
Compose availability — detect a usable compose command, install one if not.

The resolved invocation (``docker-compose`` or ``docker compose``) is
handed to the orchestrator as an opaque string.
"""

from __future__ import annotations

import logging
import shlex
from dataclasses import dataclass

from solinstall.adapters.shell.command import CommandRunner
from solinstall.core.config.settings import InstallerSettings
from solinstall.core.errors import CommandFailed, ComposeInstallFailed

logger = logging.getLogger(__name__)

DEFAULT_COMPOSE_COMMAND = "docker-compose"

# (invocation, existence probe, version probe)
COMPOSE_CANDIDATES: tuple[tuple[str, str | None, str], ...] = (
    ("docker-compose", "command -v docker-compose", "docker-compose --version"),
    ("docker compose", None, "docker compose version"),
)

_RELEASE_URL = (
    "https://github.com/docker/compose/releases/download/"
    "{version}/docker-compose-$(uname -s)-$(uname -m)"
)


@dataclass(frozen=True)
class ComposeInfo:
    command: str
    needs_install: bool


def detect_compose(
    runner: CommandRunner,
    candidates: tuple[tuple[str, str | None, str], ...] = COMPOSE_CANDIDATES,
) -> ComposeInfo:
    """Find the first working compose invocation.

    The cheap existence probe runs before the version probe, so a binary
    that exists but answers ``--version`` flakily is not reinstalled.
    """
    for command, exists_probe, version_probe in candidates:
        if exists_probe and runner.probe(exists_probe):
            logger.info("%s found", command)
            return ComposeInfo(command=command, needs_install=False)
        if runner.probe(version_probe):
            logger.info("%s found", command)
            return ComposeInfo(command=command, needs_install=False)

    logger.info("No compose command found, will install %s", DEFAULT_COMPOSE_COMMAND)
    return ComposeInfo(command=DEFAULT_COMPOSE_COMMAND, needs_install=True)


def install_compose(runner: CommandRunner, settings: InstallerSettings) -> None:
    """Download the pinned compose release to ``settings.compose_install_path``.

    Raises:
        ComposeInstallFailed: If the download or chmod fails.
    """
    target = shlex.quote(str(settings.compose_install_path))
    url = _RELEASE_URL.format(version=settings.compose_version)
    command = f'wget -O {target} "{url}" && chmod +x {target}'
    try:
        runner.run_with_progress(
            command, f"Installing Docker Compose {settings.compose_version}"
        )
    except CommandFailed as e:
        raise ComposeInstallFailed(str(e)) from e
    logger.info("Docker Compose %s installed to %s", settings.compose_version, target)


def ensure_compose(runner: CommandRunner, settings: InstallerSettings) -> str:
    """Return a compose invocation, installing the fallback binary if needed.

    Installation failure is logged, not raised: the following compose
    step will fail on its own if the tool really is unusable.
    """
    info = detect_compose(runner)
    if not info.needs_install:
        return info.command

    try:
        install_compose(runner, settings)
    except ComposeInstallFailed as e:
        logger.error("Failed to install Docker Compose: %s", e)
        logger.warning("Continuing without a verified compose command")
        return info.command

    if not runner.probe(f"{info.command} --version"):
        logger.warning("Installed %s does not answer --version", info.command)
    return info.command
