"""
Shell command runner — the single place host commands are spawned.

Everything the installer does to the outside world (git, docker,
compose, downloads) goes through ``CommandRunner``. Commands run via
``sh -c`` and inherit the caller's environment.

Four entry points, differing only in how a non-zero exit is treated:

    run()               capture output, raise CommandFailed on failure
    run_with_progress() stream output to the log, raise on failure
    run_tolerant()      stream output, never raise (best-effort cleanup)
    probe()             capture quietly, return True/False (existence checks)
"""

from __future__ import annotations

import logging
import os
import re
import selectors
import signal
import subprocess
import time
from pathlib import Path

from solinstall.core.errors import CommandFailed
from solinstall.core.models.receipt import Receipt

logger = logging.getLogger(__name__)

# Bound on the stderr tail kept in receipts and errors
_TAIL_CHARS = 2000
_READ_CHUNK = 4096

# \r covers in-place progress bars (wget, docker pull)
_LINE_BREAK = re.compile(rb"\r\n|\r|\n")


class CommandRunner:
    """Spawn shell commands and observe their exit status.

    Args:
        timeout: Default per-command timeout in seconds. ``None`` or 0
            means wait indefinitely.
        shell: Shell used to interpret command lines.
    """

    def __init__(self, timeout: int | None = None, shell: str = "sh"):
        self.timeout = timeout or None
        self.shell = shell

    # ── Public API ──────────────────────────────────────────────

    def run(
        self,
        command: str,
        *,
        cwd: Path | str | None = None,
        timeout: int | None = None,
    ) -> Receipt:
        """Run *command*, capturing stdout/stderr.

        Raises:
            CommandFailed: If the command exits non-zero or times out.
        """
        receipt = self._spawn(command, cwd=cwd, timeout=timeout, stream=False)
        return self._check(receipt)

    def run_with_progress(
        self,
        command: str,
        label: str = "",
        *,
        cwd: Path | str | None = None,
        timeout: int | None = None,
    ) -> Receipt:
        """Run *command*, logging each output line as it arrives.

        Used for long-running builds so operators see progress.

        Raises:
            CommandFailed: If the command exits non-zero or times out.
        """
        if label:
            logger.info(label)
        receipt = self._spawn(command, cwd=cwd, timeout=timeout, stream=True, label=label)
        return self._check(receipt)

    def run_tolerant(
        self,
        command: str,
        label: str = "",
        *,
        cwd: Path | str | None = None,
        timeout: int | None = None,
    ) -> Receipt:
        """Run a best-effort command. Never raises; failure is in the receipt."""
        if label:
            logger.info(label)
        receipt = self._spawn(command, cwd=cwd, timeout=timeout, stream=True, label=label)
        if receipt.failed:
            logger.warning(
                "Ignoring failure of best-effort command (exit %d): %s",
                receipt.return_code,
                command,
            )
        return receipt

    def probe(
        self,
        command: str,
        *,
        cwd: Path | str | None = None,
        timeout: int | None = None,
    ) -> bool:
        """Existence check: True iff *command* exits 0."""
        receipt = self._spawn(command, cwd=cwd, timeout=timeout, stream=False)
        logger.debug("probe %s → %s", command, "present" if receipt.ok else "absent")
        return receipt.ok

    # ── Internals ───────────────────────────────────────────────

    def _check(self, receipt: Receipt) -> Receipt:
        if receipt.failed:
            raise CommandFailed(receipt.command, receipt.return_code, receipt.error or "")
        return receipt

    def _resolve_timeout(self, timeout: int | None) -> float | None:
        value = timeout if timeout is not None else self.timeout
        return float(value) if value else None

    def _spawn(
        self,
        command: str,
        *,
        cwd: Path | str | None,
        timeout: int | None,
        stream: bool,
        label: str = "",
    ) -> Receipt:
        """Execute one command line. Subclasses (test doubles) override this."""
        limit = self._resolve_timeout(timeout)
        logger.debug("Executing: %s (cwd=%s, timeout=%s)", command, cwd, limit)
        if stream:
            return self._spawn_streaming(command, cwd=cwd, limit=limit, label=label)
        return self._spawn_captured(command, cwd=cwd, limit=limit, label=label)

    def _spawn_captured(
        self,
        command: str,
        *,
        cwd: Path | str | None,
        limit: float | None,
        label: str,
    ) -> Receipt:
        start = time.monotonic()
        try:
            result = subprocess.run(
                [self.shell, "-c", command],
                cwd=str(cwd) if cwd else None,
                capture_output=True,
                text=True,
                timeout=limit,
            )
        except subprocess.TimeoutExpired:
            return Receipt.failure(
                command=command,
                label=label,
                error=f"Command timed out after {limit:.0f}s",
                return_code=-1,
                duration_ms=_elapsed_ms(start),
            )

        stdout = result.stdout.strip()
        stderr = result.stderr.strip()
        if result.returncode == 0:
            return Receipt.success(
                command=command,
                label=label,
                output=stdout,
                duration_ms=_elapsed_ms(start),
            )
        return Receipt.failure(
            command=command,
            label=label,
            error=stderr[-_TAIL_CHARS:] or f"Command exited with code {result.returncode}",
            return_code=result.returncode,
            output=stdout,
            duration_ms=_elapsed_ms(start),
        )

    def _emit(self, stream: str, raw_lines: list[bytes], lines: dict[str, list[str]]) -> None:
        for raw in raw_lines:
            line = raw.decode("utf-8", errors="replace")
            if not line:
                continue
            lines[stream].append(line)
            if stream == "stdout":
                logger.info("%s", line)
            else:
                logger.warning("%s", line)

    def _spawn_streaming(
        self,
        command: str,
        *,
        cwd: Path | str | None,
        limit: float | None,
        label: str,
    ) -> Receipt:
        # Docker and compose write progress to stderr, so both streams
        # are read concurrently through a selector to avoid deadlocks.
        # Raw fd reads: a partial line must not block past the deadline.
        start = time.monotonic()
        deadline = start + limit if limit else None
        proc = subprocess.Popen(
            [self.shell, "-c", command],
            cwd=str(cwd) if cwd else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            start_new_session=True,
        )

        lines: dict[str, list[str]] = {"stdout": [], "stderr": []}
        pending: dict[str, bytes] = {"stdout": b"", "stderr": b""}
        timed_out = False

        sel = selectors.DefaultSelector()
        try:
            if proc.stdout:
                sel.register(proc.stdout, selectors.EVENT_READ, "stdout")
            if proc.stderr:
                sel.register(proc.stderr, selectors.EVENT_READ, "stderr")

            while sel.get_map():
                remaining = _remaining(deadline)
                if remaining is not None and remaining <= 0:
                    timed_out = True
                    break
                for key, _ in sel.select(timeout=remaining):
                    stream = key.data
                    chunk = os.read(key.fd, _READ_CHUNK)
                    if not chunk:
                        sel.unregister(key.fileobj)
                        self._emit(stream, [pending[stream]], lines)
                        pending[stream] = b""
                        continue
                    complete, pending[stream] = _split_lines(pending[stream] + chunk)
                    self._emit(stream, complete, lines)
        finally:
            sel.close()

        if not timed_out:
            try:
                proc.wait(timeout=_remaining(deadline))
            except subprocess.TimeoutExpired:
                timed_out = True

        for pipe in (proc.stdout, proc.stderr):
            if pipe:
                pipe.close()

        stdout_lines, stderr_lines = lines["stdout"], lines["stderr"]

        if timed_out:
            for stream, rest in pending.items():
                self._emit(stream, [rest], lines)
            _kill_group(proc)
            proc.wait()
            return Receipt.failure(
                command=command,
                label=label,
                error=f"Command timed out after {limit:.0f}s — process killed",
                return_code=-1,
                output="\n".join(stdout_lines)[-_TAIL_CHARS:],
                duration_ms=_elapsed_ms(start),
            )

        stdout = "\n".join(stdout_lines).strip()
        stderr = "\n".join(stderr_lines).strip()
        if proc.returncode == 0:
            return Receipt.success(
                command=command,
                label=label,
                output=stdout,
                duration_ms=_elapsed_ms(start),
            )
        return Receipt.failure(
            command=command,
            label=label,
            error=stderr[-_TAIL_CHARS:] or f"Command exited with code {proc.returncode}",
            return_code=proc.returncode,
            output=stdout[-_TAIL_CHARS:],
            duration_ms=_elapsed_ms(start),
        )


def _kill_group(proc: subprocess.Popen) -> None:
    """Kill the shell and everything it spawned."""
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass

def _remaining(deadline: float | None) -> float | None:
    return None if deadline is None else deadline - time.monotonic()


def _split_lines(buffer: bytes) -> tuple[list[bytes], bytes]:
    """Split *buffer* into complete lines and the trailing partial line."""
    parts = _LINE_BREAK.split(buffer)
    return parts[:-1], parts[-1]


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
