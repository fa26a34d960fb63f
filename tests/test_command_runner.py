"""
Tests for the shell command runner and its mock double.
"""

import logging
import time
from pathlib import Path

import pytest

from solinstall.adapters.mock import MockCommandRunner
from solinstall.adapters.shell.command import CommandRunner
from solinstall.core.errors import CommandFailed

# ── Real runner ─────────────────────────────────────────────────────


class TestRun:
    def test_captures_stdout(self):
        receipt = CommandRunner().run("echo hello")
        assert receipt.ok
        assert receipt.output == "hello"
        assert receipt.return_code == 0

    def test_non_zero_raises_command_failed(self):
        with pytest.raises(CommandFailed) as exc:
            CommandRunner().run("echo boom >&2; exit 3")
        assert exc.value.exit_code == 3
        assert exc.value.command == "echo boom >&2; exit 3"
        assert "boom" in exc.value.stderr

    def test_respects_cwd(self, tmp_path: Path):
        receipt = CommandRunner().run("pwd", cwd=tmp_path)
        assert Path(receipt.output).resolve() == tmp_path.resolve()

    def test_inherits_environment(self, monkeypatch):
        monkeypatch.setenv("SOLINSTALL_TEST_VAR", "inherited")
        assert CommandRunner().run("echo $SOLINSTALL_TEST_VAR").output == "inherited"

    def test_timeout_kills_and_fails(self):
        with pytest.raises(CommandFailed) as exc:
            CommandRunner().run("sleep 5", timeout=1)
        assert exc.value.exit_code == -1
        assert "timed out" in exc.value.stderr


class TestRunWithProgress:
    def test_streams_lines_to_log(self, caplog):
        caplog.set_level(logging.INFO, logger="solinstall.adapters.shell.command")
        receipt = CommandRunner().run_with_progress(
            "echo first; echo second; echo warn >&2", "Streaming test"
        )
        assert receipt.ok
        assert receipt.output == "first\nsecond"
        messages = [r.getMessage() for r in caplog.records]
        assert "Streaming test" in messages
        assert "first" in messages
        assert "second" in messages
        assert "warn" in messages

    def test_non_zero_raises(self):
        with pytest.raises(CommandFailed) as exc:
            CommandRunner().run_with_progress("echo partial; exit 7", "Failing")
        assert exc.value.exit_code == 7

    def test_timeout(self):
        with pytest.raises(CommandFailed) as exc:
            CommandRunner(timeout=1).run_with_progress("sleep 5", "Hanging")
        assert exc.value.exit_code == -1

    def test_timeout_after_partial_line(self):
        started = time.monotonic()
        with pytest.raises(CommandFailed) as exc:
            CommandRunner().run_with_progress("printf partial; sleep 8", "Stalled", timeout=1)
        assert exc.value.exit_code == -1
        assert time.monotonic() - started < 5

    def test_timeout_after_output_closed(self):
        started = time.monotonic()
        with pytest.raises(CommandFailed) as exc:
            CommandRunner().run_with_progress("exec >&- 2>&-; sleep 8", "Detached", timeout=1)
        assert exc.value.exit_code == -1
        assert time.monotonic() - started < 5

    def test_carriage_returns_split_progress(self):
        receipt = CommandRunner().run_with_progress("printf '10%%\\r50%%\\r100%%\\n'; printf tail")
        assert receipt.output == "10%\n50%\n100%\ntail"


class TestTolerantAndProbe:
    def test_tolerant_never_raises(self):
        receipt = CommandRunner().run_tolerant("exit 4", "Best effort")
        assert receipt.failed
        assert receipt.return_code == 4

    def test_tolerant_success(self):
        assert CommandRunner().run_tolerant("true").ok

    def test_probe_present_and_absent(self, tmp_path: Path):
        (tmp_path / "here").write_text("x")
        runner = CommandRunner()
        assert runner.probe(f"test -f {tmp_path / 'here'}")
        assert not runner.probe(f"test -f {tmp_path / 'missing'}")


# ── Mock runner ─────────────────────────────────────────────────────


class TestMockCommandRunner:
    def test_default_success_and_recording(self):
        mock = MockCommandRunner()
        assert mock.run("docker ps").ok
        mock.run_tolerant("docker rm -f x")
        assert mock.commands == ["docker ps", "docker rm -f x"]
        assert mock.call_count == 2

    def test_set_failure(self):
        mock = MockCommandRunner()
        mock.set_failure("docker build", return_code=2, error="no space left")
        with pytest.raises(CommandFailed) as exc:
            mock.run_with_progress("docker build -t img .")
        assert exc.value.exit_code == 2
        assert "no space left" in str(exc.value)

    def test_later_rule_wins(self):
        mock = MockCommandRunner()
        mock.set_failure("docker")
        mock.on("docker version", output="24.0")
        assert mock.run("docker version").output == "24.0"
        assert not mock.probe("docker info")

    def test_side_effect_receives_cwd(self, tmp_path: Path):
        seen = []
        mock = MockCommandRunner()
        mock.on("make", side_effect=lambda cmd, cwd: seen.append((cmd, cwd)))
        mock.run("make all", cwd=tmp_path)
        assert seen == [("make all", tmp_path)]

    def test_reset(self):
        mock = MockCommandRunner()
        mock.set_failure("x")
        mock.run_tolerant("x")
        mock.reset()
        assert mock.call_count == 0
        assert mock.probe("x")
