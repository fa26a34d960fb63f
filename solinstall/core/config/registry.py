"""
Solution registry — read-only lookup of installable solutions.

The orchestrator only sees the ``SolutionRegistry`` interface, so tests
can inject fixture solutions. Production registries are loaded from a
YAML file (``solutions.yml``) and validated against the Pydantic model:

    solutions:
      ai-doc-editor:
        repo_url: https://github.com/devweam-ai/ai-doc-editor.git
        image_name: ai-doc-editor-img
        container_name: ai-doc-editor-container
        port: 3002
        install_kind: docker
        env_file: env.example
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from pathlib import Path

import yaml

from solinstall.core.errors import UnknownSolution
from solinstall.core.models.solution import SolutionDescriptor

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when installer configuration is invalid or missing."""


class SolutionRegistry(ABC):
    """Read-only ``identifier → SolutionDescriptor`` lookup."""

    @abstractmethod
    def identifiers(self) -> list[str]:
        """All known solution identifiers, in declaration order."""

    @abstractmethod
    def find(self, identifier: str) -> SolutionDescriptor | None:
        """Look up a solution, or None if unknown."""

    def get(self, identifier: str | None) -> SolutionDescriptor:
        """Look up a solution.

        Raises:
            UnknownSolution: If *identifier* is empty or unknown.
        """
        solution = self.find(identifier) if identifier else None
        if solution is None:
            raise UnknownSolution(identifier, self.identifiers())
        return solution

    def __contains__(self, identifier: object) -> bool:
        return isinstance(identifier, str) and self.find(identifier) is not None


class StaticSolutionRegistry(SolutionRegistry):
    """Registry backed by an in-memory collection of descriptors."""

    def __init__(self, solutions: Iterable[SolutionDescriptor]):
        self._solutions: dict[str, SolutionDescriptor] = {}
        for solution in solutions:
            if solution.identifier in self._solutions:
                raise ConfigError(f"Duplicate solution identifier: {solution.identifier}")
            self._solutions[solution.identifier] = solution

    def identifiers(self) -> list[str]:
        return list(self._solutions)

    def find(self, identifier: str) -> SolutionDescriptor | None:
        return self._solutions.get(identifier)

    def __len__(self) -> int:
        return len(self._solutions)


def load_registry(path: Path | None = None) -> StaticSolutionRegistry:
    """Load and validate a solutions file.

    Args:
        path: Path to a solutions YAML file. None loads the packaged default.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    if path is None:
        from solinstall.core.data import DEFAULT_REGISTRY_FILE

        path = DEFAULT_REGISTRY_FILE

    if not path.is_file():
        raise ConfigError(f"Solutions file not found: {path}")

    logger.debug("Loading solutions from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    # Accept both a top-level "solutions:" key and a flat mapping
    entries = data.get("solutions", data)
    if not isinstance(entries, dict):
        raise ConfigError(f"'solutions' in {path} must be a mapping of identifier → settings")

    solutions = []
    for identifier, values in entries.items():
        if not isinstance(values, dict):
            raise ConfigError(f"Solution '{identifier}' in {path} must be a mapping")
        try:
            solutions.append(
                SolutionDescriptor.model_validate({"identifier": str(identifier), **values})
            )
        except Exception as e:
            raise ConfigError(f"Invalid solution '{identifier}' in {path}: {e}") from e

    registry = StaticSolutionRegistry(solutions)
    logger.info("Loaded %d solutions from %s", len(registry), path)
    return registry
