"""Packaged static data (default solution registry)."""

from __future__ import annotations

from pathlib import Path

DATA_DIR = Path(__file__).parent
DEFAULT_REGISTRY_FILE = DATA_DIR / "solutions.yml"
