"""
Project-wide filesystem helpers for the Teselado project.

Provides absolute paths for common directories so that code does not rely on
the current working directory (which varies between CLI, server reloads, tests,
or IDE tasks).
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable


PROJECT_ROOT = Path(__file__).resolve().parent
TILES_DIR = PROJECT_ROOT / "tiles"
STATIC_DIR = PROJECT_ROOT / "static"
TEMPLATES_DIR = PROJECT_ROOT / "templates"
LOG_DIR = PROJECT_ROOT / "logs"


def ensure_directories(directories: Iterable[Path]) -> None:
    """Create the given directories (and parents) if they do not exist."""
    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)
