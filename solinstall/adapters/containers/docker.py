"""
Docker binding — image builds, container lifecycle, compose stacks.

Uses the docker CLI through the command runner — never the Docker API
directly. The compose invocation (``docker-compose`` or ``docker
compose``) is supplied by the caller and used opaquely.
"""

from __future__ import annotations

import logging
import shlex
from pathlib import Path

from solinstall.adapters.shell.command import CommandRunner
from solinstall.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class DockerCli:
    """Container operations needed by the installer.

    Fatal operations (build, run, compose up) raise ``CommandFailed``.
    Cleanup operations (rm, stop, compose down) are tolerant and return
    a receipt whatever the outcome.
    """

    def __init__(self, runner: CommandRunner, network: str):
        self.runner = runner
        self.network = network

    # ── Images & containers ─────────────────────────────────────

    def build_image(
        self,
        tag: str,
        context: Path,
        build_args: str = "",
        dockerfile: str | None = None,
    ) -> Receipt:
        """Build *context* into an image tagged *tag*.

        ``build_args`` is a pre-rendered ``--build-arg K="V" …`` string.
        ``dockerfile`` names a non-default build file inside *context*.
        """
        parts = ["docker build", "-t", shlex.quote(tag)]
        if dockerfile:
            parts += ["-f", shlex.quote(dockerfile)]
        if build_args:
            parts.append(build_args)
        parts.append(".")
        return self.runner.run_with_progress(
            " ".join(parts),
            f"Building image {tag} from {context}",
            cwd=context,
        )

    def remove_container(self, name: str) -> Receipt:
        """Force-remove a container; a missing container is not an error."""
        return self.runner.run_tolerant(
            f"docker rm -f {shlex.quote(name)}",
            f"Removing existing container {name}",
        )

    def run_container(self, name: str, image: str, port: str) -> Receipt:
        """Replace any container called *name* with a fresh detached one."""
        self.remove_container(name)
        command = (
            f"docker run -d --name {shlex.quote(name)} "
            f"--network {shlex.quote(self.network)} "
            f"-p {port}:{port} {shlex.quote(image)}"
        )
        return self.runner.run_with_progress(command, f"Starting container {name}")

    def stop_port_publishers(self, port: str) -> Receipt:
        """Stop whatever container currently publishes *port*."""
        return self.runner.run_tolerant(
            f'docker ps -q --filter "publish={port}" | xargs -r docker stop',
            f"Freeing port {port}",
        )

    # ── Compose ─────────────────────────────────────────────────

    def compose_down(self, compose_command: str, project_dir: Path) -> Receipt:
        return self.runner.run_tolerant(
            f"{compose_command} down",
            "Stopping existing compose stack",
            cwd=project_dir,
        )

    def compose_up(self, compose_command: str, project_dir: Path) -> Receipt:
        """Bring the stack up detached, building images on deploy."""
        return self.runner.run_with_progress(
            f"{compose_command} up -d --build",
            "Starting compose services",
            cwd=project_dir,
        )
