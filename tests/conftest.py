"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import shlex
from collections.abc import Callable
from pathlib import Path

import pytest

from solinstall.adapters.mock import MockCommandRunner
from solinstall.core.config.registry import StaticSolutionRegistry
from solinstall.core.config.settings import InstallerSettings
from solinstall.core.engine.orchestrator import SolutionInstaller
from solinstall.core.models.solution import InstallKind, SolutionDescriptor

from repo_fixtures import write_tree


@pytest.fixture
def settings(tmp_path: Path) -> InstallerSettings:
    """Settings rooted in a temporary workspace, with a host root .env."""
    root_env = tmp_path / "root.env"
    root_env.write_text("OPENAI_API_KEY=sk-root\nSHARED=from-root\n")
    return InstallerSettings(
        workspace_root=tmp_path / "workspace",
        root_env_file=root_env,
        network="test-net",
        command_timeout=0,
    )


@pytest.fixture
def runner() -> MockCommandRunner:
    return MockCommandRunner()


@pytest.fixture
def single_solution() -> SolutionDescriptor:
    return SolutionDescriptor(
        identifier="doc-editor",
        repo_url="https://example.com/doc-editor.git",
        image_name="doc-editor-img",
        container_name="doc-editor-container",
        port="3002",
        install_kind=InstallKind.SINGLE_CONTAINER,
        env_file="env.example",
    )


@pytest.fixture
def multi_solution() -> SolutionDescriptor:
    return SolutionDescriptor(
        identifier="stack",
        repo_url="https://example.com/stack.git",
        repo_name="stack-repo",
        image_name="stack-img",
        container_name="stack-container",
        port="4000",
        install_kind=InstallKind.MULTI_SERVICE,
        additional_ports=["9001", "9002"],
        env_defaults={"NODE_ENV": "production"},
    )


@pytest.fixture
def registry(single_solution, multi_solution) -> StaticSolutionRegistry:
    return StaticSolutionRegistry([single_solution, multi_solution])


@pytest.fixture
def installer(registry, settings, runner) -> SolutionInstaller:
    return SolutionInstaller(registry, settings, runner=runner)


@pytest.fixture
def clone_repo(runner: MockCommandRunner) -> Callable[[dict[str, str]], None]:
    """Make ``git clone`` materialize the given files at its destination."""

    def _configure(files: dict[str, str]) -> None:
        def _clone(command: str, cwd: Path | None) -> None:
            dest = Path(shlex.split(command)[-1])
            write_tree(dest, files)

        runner.on("git clone", side_effect=_clone)

    return _configure
