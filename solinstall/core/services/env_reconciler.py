"""
Environment reconciler — merge host defaults into a repository's .env.

A process-wide root ``.env`` carries host-level secrets and defaults.
A cloned repository ships its own ``.env`` (seeded from a template) whose
values may be empty placeholders. Merging keeps every non-empty local
value and fills the gaps from the root file.

Two output modes:

    build-argument mode  (single-container) → ``--build-arg K="V" …``
    file mode            (multi-service)    → ``<repo>/.env.temp``

File mode is paired with ``env_swap()``, which puts the merged file in
place for the duration of a compose run and always restores the
original afterwards.
"""

from __future__ import annotations

import logging
import re
import shutil
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from solinstall.core.errors import EnvironmentMergeFailed
from solinstall.core.models.outcome import EnvironmentMergeResult
from solinstall.core.models.solution import InstallKind

logger = logging.getLogger(__name__)

TEMP_ENV_NAME = ".env.temp"
BACKUP_SUFFIX = ".backup"

_ENV_KEY = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


# ── Parsing ─────────────────────────────────────────────────────


def parse_env_text(text: str) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines.

    A line is a definition iff, trimmed, it is non-empty, does not start
    with ``#`` and contains ``=``. The key is everything before the first
    ``=``; the value is the rest, so values may contain ``=`` themselves.
    Both are trimmed. Later definitions override earlier ones.
    """
    result: dict[str, str] = {}
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, value = line.partition("=")
        result[key.strip()] = value.strip()
    return result


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse an env file. A missing file yields an empty mapping.

    Raises:
        OSError: If the file exists but cannot be read.
    """
    if not path.exists():
        return {}
    return parse_env_text(path.read_text(encoding="utf-8"))


# ── Merge ───────────────────────────────────────────────────────


def merge_env_vars(root: dict[str, str], local: dict[str, str]) -> dict[str, str]:
    """Merge *root* into *local*; non-empty local values always win.

    A root key is adopted when it is absent or empty locally and its own
    value is non-empty. Key order follows the local file, then root
    additions in root order.
    """
    merged = dict(local)
    for key, value in root.items():
        if value and not merged.get(key):
            merged[key] = value
    return merged


def render_build_args(env: dict[str, str]) -> str:
    """Render as shell-safe ``--build-arg KEY="VALUE"`` tokens.

    Values are escaped for a double-quoted ``sh`` string, so they reach
    docker byte for byte. Keys that are not shell identifiers are dropped.
    """
    args = []
    for key, value in env.items():
        if not _ENV_KEY.fullmatch(key):
            logger.warning("Skipping build arg with invalid name: %r", key)
            continue
        args.append(f'--build-arg {key}="{_escape_double_quoted(value)}"')
    return " ".join(args)


def _escape_double_quoted(value: str) -> str:
    # Backslash first, so the escapes added below are not doubled
    escaped = value.replace("\\", "\\\\")
    for char in ('"', "$", "`"):
        escaped = escaped.replace(char, "\\" + char)
    return escaped


def render_env_file(env: dict[str, str]) -> str:
    """Render as ``KEY=VALUE`` lines."""
    return "".join(f"{key}={value}\n" for key, value in env.items())


def merge_env_files(root_env: Path, local_env: Path) -> dict[str, str]:
    """Read both files and merge them.

    Raises:
        EnvironmentMergeFailed: If either file cannot be read.
    """
    try:
        root = parse_env_file(root_env)
        local = parse_env_file(local_env)
    except (OSError, UnicodeDecodeError) as e:
        raise EnvironmentMergeFailed(f"Cannot read environment files: {e}") from e
    return merge_env_vars(root, local)


def merge_environment(
    root_env: Path,
    local_env: Path,
    kind: InstallKind,
    repo_path: Path,
) -> EnvironmentMergeResult:
    """Reconcile environment files for an install of the given kind.

    Never raises: a failed merge is logged and the untouched local file
    is used instead (empty build args, or the local path as the "merged"
    file so that no swap happens).
    """
    try:
        merged = merge_env_files(root_env, local_env)
        if kind is InstallKind.MULTI_SERVICE:
            temp_path = repo_path / TEMP_ENV_NAME
            try:
                temp_path.write_text(render_env_file(merged), encoding="utf-8")
            except OSError as e:
                raise EnvironmentMergeFailed(f"Cannot write {temp_path}: {e}") from e
            logger.info(
                "Merged %d environment variables into %s", len(merged), temp_path
            )
            return EnvironmentMergeResult(
                merged_env_path=temp_path,
                local_env_path=local_env,
            )

        build_args = render_build_args(merged)
        logger.info("Merged %d environment variables into build args", len(merged))
        logger.debug("Build args: %s", build_args)
        return EnvironmentMergeResult(build_args=build_args, local_env_path=local_env)

    except EnvironmentMergeFailed as e:
        logger.error("Environment merge failed: %s", e)
        logger.warning("Continuing with existing .env file: %s", local_env)
        if kind is InstallKind.MULTI_SERVICE:
            return EnvironmentMergeResult(
                merged_env_path=local_env,
                local_env_path=local_env,
            )
        return EnvironmentMergeResult(build_args="", local_env_path=local_env)


# ── Transactional swap ─────────────────────────────────────────


@contextmanager
def env_swap(merged_env: Path | None, local_env: Path) -> Iterator[Path]:
    """Put *merged_env* in place of *local_env* for the enclosed block.

    Acquire: back up the existing local file to ``<local>.backup`` and
    copy the merged file over it. Release, on every exit path: restore
    the backup byte-for-byte (or remove the swapped-in file if there was
    no original) and delete the backup and the merged temp file.

    A missing or identical *merged_env* means the merge fell back to the
    local file; the block then runs with nothing swapped.
    """
    if merged_env is None or merged_env == local_env:
        yield local_env
        return

    backup = local_env.with_name(local_env.name + BACKUP_SUFFIX)
    had_original = local_env.exists()
    swapped = False
    try:
        if had_original:
            shutil.copy2(local_env, backup)
            logger.info("Backed up %s → %s", local_env, backup)
        shutil.copyfile(merged_env, local_env)
        swapped = True
        logger.info("Using merged environment variables in %s", local_env)
        yield local_env
    finally:
        _restore(local_env, backup, merged_env, had_original, swapped)


def _restore(
    local_env: Path,
    backup: Path,
    merged_env: Path,
    had_original: bool,
    swapped: bool,
) -> None:
    """Release step of ``env_swap``. Cleanup errors are logged, never raised."""
    try:
        if had_original and backup.exists():
            shutil.copyfile(backup, local_env)
            logger.info("Restored original %s", local_env)
        elif swapped and not had_original:
            local_env.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not restore %s: %s", local_env, e)

    for leftover in (backup, merged_env):
        try:
            leftover.unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Could not clean up %s: %s", leftover, e)
