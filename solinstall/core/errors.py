"""
Installer error hierarchy.

Fatal errors propagate out of the pipeline wrapped in
``InstallationFailed``. ``EnvironmentMergeFailed`` and
``ComposeInstallFailed`` are recovered where they are raised and only
logged.
"""

from __future__ import annotations


class InstallerError(Exception):
    """Base class for all installer errors."""


class UnknownSolution(InstallerError):
    """The requested solution identifier is not in the registry."""

    def __init__(self, identifier: str | None, available: list[str]):
        self.identifier = identifier
        self.available = list(available)
        if not identifier:
            message = "Solution type is required."
        else:
            message = f"Unknown solution type: {identifier}."
        super().__init__(f"{message} Available solutions: {', '.join(self.available)}")


class CommandFailed(InstallerError):
    """A spawned host command exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int, stderr: str = ""):
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr
        detail = f": {stderr.strip()}" if stderr and stderr.strip() else ""
        super().__init__(f"Command failed (exit {exit_code}): {command}{detail}")


class EnvironmentMergeFailed(InstallerError):
    """Root and local environment files could not be merged."""


class ComposeInstallFailed(InstallerError):
    """The fallback compose binary could not be installed."""


class NoBuildDescriptorFound(InstallerError):
    """The repository contains neither a compose file nor any Dockerfile."""

    def __init__(self, repository: str):
        self.repository = repository
        super().__init__(
            f"No suitable Docker configuration found in repository {repository}. "
            "Please ensure the repository contains either a docker-compose.yml "
            "file or at least one Dockerfile."
        )


class InstallationInProgress(InstallerError):
    """Another installation of the same solution is already running."""

    def __init__(self, identifier: str):
        self.identifier = identifier
        super().__init__(f"An installation of '{identifier}' is already in progress")


class InstallationFailed(InstallerError):
    """Umbrella error: a pipeline stage failed fatally."""

    def __init__(self, stage: str, cause: BaseException, solution_id: str = ""):
        self.stage = stage
        self.cause = cause
        self.solution_id = solution_id
        self.command: str | None = getattr(cause, "command", None)
        super().__init__(f"Installation failed during {stage}: {cause}")
