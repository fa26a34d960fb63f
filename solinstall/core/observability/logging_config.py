"""
Logging configuration — one setup call per entrypoint (CLI, web server).

Level precedence:
    --debug / --verbose / --quiet  >  SOLINSTALL_LOG_LEVEL  >  WARNING

Host command output is streamed through the ``solinstall.adapters.shell``
loggers: stdout lines at INFO, stderr lines at WARNING. The default
console therefore shows only problems; ``--verbose`` shows live builds.

SOLINSTALL_LOG_FILE adds a file handler, optionally at its own level
(SOLINSTALL_LOG_FILE_LEVEL), so a quiet console can still keep a full
build transcript on disk.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Mapping

# (format, datefmt) per console verbosity
_CONSOLE_FORMATS = {
    logging.DEBUG: ("%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s", "%H:%M:%S"),
    logging.INFO: ("%(asctime)s [%(name)s] %(message)s", "%H:%M:%S"),
    logging.WARNING: ("%(message)s", None),
}

_FILE_FORMAT = "%(asctime)s %(levelname)-5s %(name)s:%(lineno)d — %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"

_NOISY_LOGGERS = ("urllib3", "werkzeug")


def resolve_level(
    *,
    debug: bool = False,
    verbose: bool = False,
    quiet: bool = False,
    environ: Mapping[str, str] | None = None,
) -> str:
    """Pick the console level name from CLI flags, then the environment."""
    if debug:
        return "DEBUG"
    if verbose:
        return "INFO"
    if quiet:
        return "ERROR"
    env = os.environ if environ is None else environ
    return env.get("SOLINSTALL_LOG_LEVEL") or "WARNING"


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    log_file_level: str | None = None,
    quiet_third_party: bool = True,
) -> None:
    """Route installer logs, including streamed build output, to stderr.

    At the default WARNING level the console shows only docker/compose
    stderr lines and failures; INFO adds stdout build lines and stage
    banners. With *log_file*, a second handler keeps a build transcript
    at *log_file_level* even when the console is quiet. Existing root
    handlers are replaced, so the CLI and ``web`` can both call this.
    """
    console_level = _parse_level(level)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(_console_formatter(console_level))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(console)
    root_level = console_level

    if log_file:
        file_level = _parse_level(log_file_level) if log_file_level else console_level
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setLevel(file_level)
        handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt=_FILE_DATEFMT))
        root.addHandler(handler)
        root_level = min(root_level, file_level)

    root.setLevel(root_level)

    if quiet_third_party and console_level > logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    logging.raiseExceptions = False


def _console_formatter(level: int) -> logging.Formatter:
    if level <= logging.DEBUG:
        fmt, datefmt = _CONSOLE_FORMATS[logging.DEBUG]
    elif level <= logging.INFO:
        fmt, datefmt = _CONSOLE_FORMATS[logging.INFO]
    else:
        fmt, datefmt = _CONSOLE_FORMATS[logging.WARNING]
    return logging.Formatter(fmt, datefmt=datefmt)


def _parse_level(level: str | None) -> int:
    """Map a level name from a flag or SOLINSTALL_LOG_LEVEL to its constant.

    A misspelt level is treated as WARNING rather than aborting an install.
    """
    numeric = getattr(logging, level.upper(), None) if level else None
    return numeric if isinstance(numeric, int) else logging.WARNING
