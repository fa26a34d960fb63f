"""
Receipt model — the normalized result of a host command.

Every command the installer issues ends in a Receipt. Fatal call sites
turn a failed receipt into ``CommandFailed``; tolerant call sites
(best-effort cleanup, existence probes) just inspect it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class Receipt(BaseModel):
    """Outcome of one command invocation."""

    command: str
    label: str = ""
    status: Literal["ok", "failed"] = "ok"
    return_code: int = 0

    started_at: str = Field(default_factory=_now_iso)
    duration_ms: int = 0

    output: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Whether the command exited with status 0."""
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, command: str, output: str = "", **kwargs: Any) -> Receipt:
        """Create a success receipt."""
        return cls(command=command, status="ok", output=output, **kwargs)

    @classmethod
    def failure(
        cls,
        command: str,
        error: str,
        return_code: int = 1,
        **kwargs: Any,
    ) -> Receipt:
        """Create a failure receipt."""
        return cls(
            command=command,
            status="failed",
            error=error,
            return_code=return_code,
            **kwargs,
        )
