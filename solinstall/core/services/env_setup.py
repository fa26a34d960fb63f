"""
Environment seeding — turn a cloned repository's templates into .env files.

Runs before the reconciler merges in the host's root ``.env``.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from solinstall.core.services.env_reconciler import parse_env_file
from solinstall.core.services.structure_probe import SKIP_DIRS

logger = logging.getLogger(__name__)

ENV_NAME = ".env"
EXAMPLE_SUFFIX = ".env.example"


def seed_from_template(repo_path: Path, template: str) -> Path:
    """Copy the solution's named template to ``<repo>/.env``.

    Raises:
        FileNotFoundError: If the template does not exist in the repository.
    """
    source = repo_path / template
    target = repo_path / ENV_NAME
    if not source.is_file():
        raise FileNotFoundError(f"Environment template not found: {source}")
    if source != target:
        shutil.copyfile(source, target)
    logger.info("Environment configuration seeded from %s", template)
    return target


def seed_example_files(repo_path: Path) -> list[Path]:
    """Copy every ``*.env.example`` in the tree to a sibling ``.env``.

    When a directory holds several examples, the plain ``.env.example``
    takes precedence over prefixed variants.
    """
    seeded: list[Path] = []
    examples = sorted(
        (p for p in repo_path.rglob(f"*{EXAMPLE_SUFFIX}")
         if p.is_file() and not SKIP_DIRS.intersection(p.relative_to(repo_path).parts)),
        key=lambda p: (str(p.parent), p.name != EXAMPLE_SUFFIX, p.name),
    )
    done_dirs: set[Path] = set()
    for example in examples:
        if example.parent in done_dirs:
            continue
        target = example.parent / ENV_NAME
        shutil.copyfile(example, target)
        done_dirs.add(example.parent)
        seeded.append(target)
        logger.debug("Seeded %s from %s", target, example.name)

    logger.info("Environment files setup completed (%d seeded)", len(seeded))
    return seeded


def inject_defaults(env_path: Path, defaults: dict[str, str]) -> list[str]:
    """Append *defaults* whose keys are missing or empty in *env_path*.

    Returns the keys that were added. Existing non-empty values are
    never overridden.
    """
    if not defaults:
        return []

    current = parse_env_file(env_path)
    missing = {k: v for k, v in defaults.items() if not current.get(k)}
    if not missing:
        return []

    existing = env_path.read_text(encoding="utf-8") if env_path.exists() else ""
    if existing and not existing.endswith("\n"):
        existing += "\n"
    addition = "".join(f"{key}={value}\n" for key, value in missing.items())
    env_path.write_text(existing + addition, encoding="utf-8")

    logger.info("Injected default environment keys: %s", ", ".join(missing))
    return list(missing)
