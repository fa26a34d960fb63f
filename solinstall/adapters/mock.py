"""
Mock command runner — test double for every host command.

Records each command line instead of spawning it. By default every
command succeeds with empty output; rules keyed on a substring of the
command line can make specific commands fail, return output, or run a
side effect (e.g. materialize a fixture repository for ``git clone``).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from solinstall.adapters.shell.command import CommandRunner
from solinstall.core.models.receipt import Receipt

SideEffect = Callable[[str, Path | None], None]


@dataclass
class _Rule:
    match: str
    return_code: int = 0
    output: str = ""
    error: str = ""
    side_effect: SideEffect | None = None


@dataclass
class RecordedCall:
    command: str
    cwd: Path | None
    stream: bool
    label: str


class MockCommandRunner(CommandRunner):
    """CommandRunner that never touches the host."""

    def __init__(self) -> None:
        super().__init__(timeout=None)
        self._rules: list[_Rule] = []
        self._calls: list[RecordedCall] = []

    @property
    def calls(self) -> list[RecordedCall]:
        return self._calls

    @property
    def commands(self) -> list[str]:
        """Command lines in the order they were issued."""
        return [c.command for c in self._calls]

    @property
    def call_count(self) -> int:
        return len(self._calls)

    def on(
        self,
        match: str,
        *,
        return_code: int = 0,
        output: str = "",
        error: str = "",
        side_effect: SideEffect | None = None,
    ) -> None:
        """Configure the response for commands containing *match*.

        Later rules take precedence over earlier ones.
        """
        self._rules.append(_Rule(match, return_code, output, error, side_effect))

    def set_failure(self, match: str, return_code: int = 1, error: str = "Mock failure") -> None:
        """Make commands containing *match* exit non-zero."""
        self.on(match, return_code=return_code, error=error)

    def issued(self, fragment: str) -> list[str]:
        """All recorded command lines containing *fragment*."""
        return [c for c in self.commands if fragment in c]

    def reset(self) -> None:
        self._rules.clear()
        self._calls.clear()

    def _spawn(
        self,
        command: str,
        *,
        cwd: Path | str | None,
        timeout: int | None,
        stream: bool,
        label: str = "",
    ) -> Receipt:
        cwd_path = Path(cwd) if cwd else None
        self._calls.append(RecordedCall(command, cwd_path, stream, label))

        rule = next((r for r in reversed(self._rules) if r.match in command), None)
        if rule is None:
            return Receipt.success(command=command, label=label)

        if rule.side_effect is not None:
            rule.side_effect(command, cwd_path)

        if rule.return_code == 0:
            return Receipt.success(command=command, label=label, output=rule.output)
        return Receipt.failure(
            command=command,
            label=label,
            error=rule.error or f"Command exited with code {rule.return_code}",
            return_code=rule.return_code,
            output=rule.output,
        )
