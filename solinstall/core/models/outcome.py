"""
Pipeline value types — environment merge result and installation outcome.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel


class EnvironmentMergeResult(BaseModel):
    """Result of reconciling the root and repository environment files.

    Single-container installs carry ``build_args``. Multi-service installs
    carry ``merged_env_path``; when it equals ``local_env_path`` the merge
    fell back to the untouched local file and no swap is needed.
    """

    build_args: str = ""
    merged_env_path: Path | None = None
    local_env_path: Path | None = None

    @property
    def swaps_file(self) -> bool:
        """Whether a distinct merged file must be swapped over the local one."""
        return (
            self.merged_env_path is not None
            and self.local_env_path is not None
            and self.merged_env_path != self.local_env_path
        )


class InstallationOutcome(BaseModel):
    """Terminal value of one installation attempt."""

    success: bool
    solution_id: str
    port: str | None = None
    strategy: str | None = None
    stage: str | None = None
    error: str | None = None
    command: str | None = None

    def to_dict(self) -> dict:
        result: dict = {
            "success": self.success,
            "port": self.port,
            "solutionType": self.solution_id,
        }
        if self.strategy:
            result["strategy"] = self.strategy
        if not self.success:
            result["error"] = self.error
            result["stage"] = self.stage
            result["command"] = self.command
        return result
