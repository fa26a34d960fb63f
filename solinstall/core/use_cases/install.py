"""
Install use case — resolve config, run the orchestrator, shape the result.

Shared by the CLI and the web endpoint. Errors are captured on the
result object rather than raised, so each surface only decides how to
present them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from solinstall.adapters.shell.command import CommandRunner
from solinstall.core.config.registry import ConfigError, SolutionRegistry, load_registry
from solinstall.core.config.settings import InstallerSettings, load_settings
from solinstall.core.engine.orchestrator import SolutionInstaller
from solinstall.core.errors import (
    InstallationFailed,
    InstallationInProgress,
    UnknownSolution,
)
from solinstall.core.models.outcome import InstallationOutcome

logger = logging.getLogger(__name__)


@dataclass
class InstallResult:
    """Result of an install request."""

    solution_id: str | None = None
    outcome: InstallationOutcome | None = None
    error: str | None = None
    error_kind: str | None = None     # unknown-solution | in-progress | failed | config
    stage: str | None = None
    command: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not None and self.outcome.success

    def to_dict(self) -> dict:
        if self.outcome is not None:
            result = self.outcome.to_dict()
            if self.error_kind:
                result["errorKind"] = self.error_kind
            return result
        result = {
            "success": False,
            "solutionType": self.solution_id,
            "error": self.error,
            "errorKind": self.error_kind,
        }
        if self.stage:
            result["stage"] = self.stage
            result["command"] = self.command
        return result


def resolve_registry(
    registry_path: Path | None = None,
    settings: InstallerSettings | None = None,
) -> SolutionRegistry:
    """Load the registry named explicitly, by settings, or the packaged default."""
    if registry_path is None and settings is not None:
        registry_path = settings.registry_file
    return load_registry(registry_path)


def install_solution(
    solution_id: str | None,
    registry: SolutionRegistry | None = None,
    settings: InstallerSettings | None = None,
    runner: CommandRunner | None = None,
    installer: SolutionInstaller | None = None,
) -> InstallResult:
    """Install one solution and report the outcome.

    Args:
        solution_id: Registry identifier of the solution.
        registry: Optional pre-loaded registry.
        settings: Optional settings (default: from environment).
        runner: Optional command runner (tests pass a mock).
        installer: Optional long-lived installer (keeps per-solution locks
            across requests, as the web server does).
    """
    result = InstallResult(solution_id=solution_id)

    if installer is None:
        try:
            settings = settings or load_settings()
            registry = registry or resolve_registry(settings=settings)
        except ConfigError as e:
            result.error = str(e)
            result.error_kind = "config"
            return result
        installer = SolutionInstaller(registry, settings, runner=runner)

    try:
        result.outcome = installer.install(solution_id)
    except UnknownSolution as e:
        result.error = str(e)
        result.error_kind = "unknown-solution"
    except InstallationInProgress as e:
        result.error = str(e)
        result.error_kind = "in-progress"
    except InstallationFailed as e:
        logger.error("Installation failed: %s", e)
        result.error = str(e)
        result.error_kind = "failed"
        result.stage = e.stage
        result.command = e.command
        result.outcome = InstallationOutcome(
            success=False,
            solution_id=e.solution_id or (solution_id or ""),
            stage=e.stage,
            error=str(e),
            command=e.command,
        )

    return result
