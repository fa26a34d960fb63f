"""
Installation orchestrator — the end-to-end pipeline for one solution.

Flow (strictly sequential, one attempt per request):

    clean → clone → env setup → structure detection
          → [compose resolution, multi-service only] → build/run

Each stage runs inside ``_stage()``; any fatal error escaping a stage is
wrapped in ``InstallationFailed`` carrying the stage name and, when the
cause was a host command, the failing command line. Best-effort steps
(stopping old stacks, freeing ports, removing stale containers) go
through the runner's tolerant path and never abort the pipeline.
"""

from __future__ import annotations

import logging
import shutil
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from solinstall.adapters.containers.docker import DockerCli
from solinstall.adapters.shell.command import CommandRunner
from solinstall.adapters.vcs.git import GitCli
from solinstall.core.config.registry import SolutionRegistry
from solinstall.core.config.settings import InstallerSettings
from solinstall.core.engine.strategy import BuildStrategy, select_run_target, select_strategy
from solinstall.core.errors import (
    InstallationFailed,
    InstallationInProgress,
    NoBuildDescriptorFound,
)
from solinstall.core.models.outcome import EnvironmentMergeResult, InstallationOutcome
from solinstall.core.models.solution import InstallKind, SolutionDescriptor
from solinstall.core.models.structure import RepositoryStructure
from solinstall.core.services import env_setup
from solinstall.core.services.compose_resolver import DEFAULT_COMPOSE_COMMAND, ensure_compose
from solinstall.core.services.env_reconciler import env_swap, merge_environment
from solinstall.core.services.structure_probe import (
    DOCKERFILE_NAME,
    find_any_dockerfile,
    probe_repository,
)

logger = logging.getLogger(__name__)


class Stage(str, Enum):
    IDLE = "idle"
    CLEANING = "cleaning"
    CLONING = "cloning"
    ENV_SETUP = "env-setup"
    STRUCTURE_DETECTION = "structure-detection"
    COMPOSE_RESOLUTION = "compose-resolution"
    BUILDING = "building"
    DONE = "done"
    FAILED = "failed"


@dataclass
class InstallationAttempt:
    """Mutable state of one pipeline run."""

    solution: SolutionDescriptor
    repo_path: Path
    stage: Stage = Stage.IDLE
    env: EnvironmentMergeResult = field(default_factory=EnvironmentMergeResult)
    structure: RepositoryStructure | None = None
    compose_command: str | None = None
    strategy: BuildStrategy | None = None
    stages_completed: list[Stage] = field(default_factory=list)

    @property
    def local_env_path(self) -> Path:
        return self.repo_path / env_setup.ENV_NAME


class SolutionInstaller:
    """Provision registered solutions as running containers.

    Args:
        registry: Read-only solution lookup.
        settings: Workspace, network and tooling settings.
        runner: Command runner (defaults to a real one honouring
            ``settings.command_timeout``).
    """

    def __init__(
        self,
        registry: SolutionRegistry,
        settings: InstallerSettings,
        runner: CommandRunner | None = None,
    ):
        self.registry = registry
        self.settings = settings
        self.runner = runner or CommandRunner(timeout=settings.command_timeout)
        self.git = GitCli(self.runner)
        self.docker = DockerCli(self.runner, network=settings.network)
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # ── Entry point ─────────────────────────────────────────────

    def install(self, identifier: str | None) -> InstallationOutcome:
        """Install one solution end to end.

        Raises:
            UnknownSolution: Before any filesystem change, if the
                identifier is not registered.
            InstallationInProgress: If the same solution is already
                being installed.
            InstallationFailed: If any stage fails fatally.
        """
        solution = self.registry.get(identifier)

        lock = self._lock_for(solution.identifier)
        if not lock.acquire(blocking=False):
            raise InstallationInProgress(solution.identifier)
        try:
            return self._run_pipeline(solution)
        finally:
            lock.release()

    def _lock_for(self, identifier: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(identifier, threading.Lock())

    # ── Pipeline ────────────────────────────────────────────────

    def _run_pipeline(self, solution: SolutionDescriptor) -> InstallationOutcome:
        attempt = InstallationAttempt(
            solution=solution,
            repo_path=self.settings.workspace_for(solution.repo_name),
        )
        logger.info(
            "Installing solution: %s (%s)",
            solution.identifier,
            solution.install_kind.value,
        )

        with self._stage(attempt, Stage.CLEANING):
            self._clean(attempt)

        with self._stage(attempt, Stage.CLONING):
            self.git.clone(solution.repo_url, solution.branch, attempt.repo_path)

        with self._stage(attempt, Stage.ENV_SETUP):
            attempt.env = self._setup_environment(attempt)

        try:
            with self._stage(attempt, Stage.STRUCTURE_DETECTION):
                attempt.structure = probe_repository(attempt.repo_path)

            if solution.is_multi_service:
                with self._stage(attempt, Stage.COMPOSE_RESOLUTION):
                    attempt.compose_command = ensure_compose(self.runner, self.settings)

            with self._stage(attempt, Stage.BUILDING):
                self._build_and_run(attempt)
        finally:
            self._discard_merged_env(attempt)

        attempt.stage = Stage.DONE
        logger.info(
            "Installation completed successfully! %s is now running at http://localhost:%s",
            solution.repo_name,
            solution.port,
        )
        return InstallationOutcome(
            success=True,
            solution_id=solution.identifier,
            port=solution.port,
            strategy=attempt.strategy.value if attempt.strategy else None,
        )

    @contextmanager
    def _stage(self, attempt: InstallationAttempt, stage: Stage) -> Iterator[None]:
        attempt.stage = stage
        logger.info("[%s] %s", attempt.solution.identifier, stage.value)
        try:
            yield
        except InstallationFailed:
            attempt.stage = Stage.FAILED
            raise
        except Exception as e:
            attempt.stage = Stage.FAILED
            logger.error(
                "Installation of %s failed during %s: %s",
                attempt.solution.identifier,
                stage.value,
                e,
            )
            raise InstallationFailed(stage.value, e, attempt.solution.identifier) from e
        attempt.stages_completed.append(stage)

    # ── Stages ──────────────────────────────────────────────────

    def _clean(self, attempt: InstallationAttempt) -> None:
        """Wipe any previous workspace so nothing leaks between attempts."""
        if attempt.repo_path.exists():
            shutil.rmtree(attempt.repo_path)
            logger.info("Removed previous workspace %s", attempt.repo_path)
        attempt.repo_path.parent.mkdir(parents=True, exist_ok=True)

    def _setup_environment(self, attempt: InstallationAttempt) -> EnvironmentMergeResult:
        solution = attempt.solution
        repo = attempt.repo_path

        if solution.install_kind is InstallKind.SINGLE_CONTAINER:
            if solution.env_file:
                env_setup.seed_from_template(repo, solution.env_file)
        else:
            env_setup.seed_example_files(repo)
            env_setup.inject_defaults(attempt.local_env_path, solution.env_defaults)

        return merge_environment(
            root_env=self.settings.root_env_path,
            local_env=attempt.local_env_path,
            kind=solution.install_kind,
            repo_path=repo,
        )

    def _build_and_run(self, attempt: InstallationAttempt) -> None:
        assert attempt.structure is not None
        strategy = select_strategy(
            attempt.structure,
            allow_compose=attempt.solution.is_multi_service,
        )
        attempt.strategy = strategy
        logger.info("Using build strategy: %s", strategy.value)

        if strategy is BuildStrategy.COMPOSE:
            self._run_compose(attempt)
        elif strategy is BuildStrategy.ROOT_DOCKERFILE:
            self._run_single(attempt, attempt.repo_path, attempt.solution.image_name)
        elif strategy is BuildStrategy.SUBDIRECTORY_DOCKERFILES:
            self._run_subdirectories(attempt)
        else:
            self._run_discovered(attempt)

    # ── Strategies ──────────────────────────────────────────────

    def _run_compose(self, attempt: InstallationAttempt) -> None:
        solution = attempt.solution
        command = attempt.compose_command or DEFAULT_COMPOSE_COMMAND
        logger.info(
            "Using Docker Compose (%s)",
            attempt.structure.compose_file if attempt.structure else "?",
        )

        self.docker.compose_down(command, attempt.repo_path)
        for port in solution.additional_ports:
            self.docker.stop_port_publishers(port)

        with env_swap(attempt.env.merged_env_path, attempt.local_env_path):
            self.docker.compose_up(command, attempt.repo_path)

    def _run_single(
        self,
        attempt: InstallationAttempt,
        context: Path,
        image: str,
        dockerfile: str | None = None,
    ) -> None:
        solution = attempt.solution
        self.docker.build_image(image, context, attempt.env.build_args, dockerfile)
        self.docker.run_container(solution.container_name, image, solution.port)

    def _run_subdirectories(self, attempt: InstallationAttempt) -> None:
        solution = attempt.solution
        assert attempt.structure is not None
        directories = attempt.structure.dockerfiles
        logger.info("Using subdirectory Dockerfiles: %s", ", ".join(directories))

        # One build at a time keeps log order and failure attribution clear
        for directory in directories:
            self.docker.build_image(
                f"{solution.image_name}-{directory}",
                attempt.repo_path / directory,
                attempt.env.build_args,
            )

        target = select_run_target(directories)
        logger.info("Running main service: %s", target)
        self.docker.run_container(
            solution.container_name,
            f"{solution.image_name}-{target}",
            solution.port,
        )

    def _run_discovered(self, attempt: InstallationAttempt) -> None:
        logger.info("Searching for any available Dockerfile...")
        dockerfile = find_any_dockerfile(attempt.repo_path)
        if dockerfile is None:
            raise NoBuildDescriptorFound(attempt.solution.repo_url)
        logger.info("Found Dockerfile at: %s", dockerfile)
        self._run_single(
            attempt,
            dockerfile.parent,
            attempt.solution.image_name,
            dockerfile=None if dockerfile.name == DOCKERFILE_NAME else dockerfile.name,
        )

    # ── Cleanup ─────────────────────────────────────────────────

    def _discard_merged_env(self, attempt: InstallationAttempt) -> None:
        """Delete the temporary merged env file on every exit path."""
        if not attempt.env.swaps_file or attempt.env.merged_env_path is None:
            return
        try:
            attempt.env.merged_env_path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not clean up %s: %s", attempt.env.merged_env_path, e)
