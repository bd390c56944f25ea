"""Shared fixtures: tiny tile directories written to ``tmp_path``."""

from __future__ import annotations

from pathlib import Path
from typing import Tuple

import pytest
from PIL import Image

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


def solid(size: Tuple[int, int], color: Tuple[int, int, int]) -> Image.Image:
    return Image.new("RGB", size, color)


@pytest.fixture
def tiles_dir(tmp_path: Path) -> Path:
    """Directory with a black and a white 4x4 PNG tile."""
    directory = tmp_path / "tiles"
    directory.mkdir()
    solid((4, 4), BLACK).save(directory / "black.png")
    solid((4, 4), WHITE).save(directory / "white.png")
    return directory
