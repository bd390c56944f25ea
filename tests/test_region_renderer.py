"""Tests for rendering a single region of the mosaic."""

from __future__ import annotations

import logging
import threading
import tracemalloc
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from conftest import BLACK, WHITE, solid
from mosaic_errors import ConfigError, MosaicTimeoutError
from region_renderer import Region, RegionRenderer, render_region, validate_tile_size
from tile_index import TileIndex


def pixels(image: Image.Image) -> np.ndarray:
    return np.asarray(image)


class TestRegion:
    def test_geometry(self) -> None:
        region = Region(2, 3, 7, 5, quadrant=4)
        assert region.width == 5
        assert region.height == 2
        assert region.area == 10
        assert region.box == (2, 3, 7, 5)
        assert not region.is_empty()

    def test_degenerate(self) -> None:
        assert Region(3, 0, 3, 4).is_empty()


@pytest.mark.parametrize("value", [0, -1, True, "3", 2.5])
def test_tile_size_validation(value) -> None:
    with pytest.raises(ConfigError):
        validate_tile_size(value)


def test_uniform_region_uses_matching_tile(tiles_dir: Path) -> None:
    snapshot = TileIndex(tiles_dir).build().snapshot()
    result = render_region(solid((4, 4), WHITE), snapshot, 2, Region(0, 0, 4, 4, quadrant=1))
    assert result.image.size == (4, 4)
    assert (result.cells, result.drawn, result.skipped) == (4, 4, 0)
    assert np.all(pixels(result.image) == (255, 255, 255, 255))


def test_region_offset_is_relative(tiles_dir: Path) -> None:
    source = solid((8, 8), BLACK)
    source.paste(WHITE, (4, 4, 8, 8))
    snapshot = TileIndex(tiles_dir).build().snapshot()
    result = render_region(source, snapshot, 2, Region(4, 4, 8, 8, quadrant=4))
    assert result.image.size == (4, 4)
    assert np.all(pixels(result.image)[..., :3] == 255)


def test_single_pixel_sampling(tiles_dir: Path) -> None:
    # Each 2x2 cell has a black top-left pixel and three white ones.
    source = solid((4, 4), WHITE)
    for x in (0, 2):
        for y in (0, 2):
            source.putpixel((x, y), BLACK)
    snapshot = TileIndex(tiles_dir).build().snapshot()
    result = render_region(source, snapshot, 2, Region(0, 0, 4, 4))
    assert np.all(pixels(result.image)[..., :3] == 0)


def test_empty_snapshot_leaves_cells_blank(tmp_path: Path) -> None:
    snapshot = TileIndex(tmp_path).snapshot()
    result = render_region(solid((6, 4), WHITE), snapshot, 2, Region(0, 0, 6, 4))
    assert result.image.size == (6, 4)
    assert result.drawn == 0
    assert result.skipped == result.cells == 6
    assert np.all(pixels(result.image)[..., 3] == 0)


def test_unreadable_tile_skips_cell(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    snapshot = TileIndex.from_entries({"ghost.png": (255, 255, 255)}, tmp_path).snapshot()
    renderer = RegionRenderer(solid((4, 4), WHITE), snapshot, 2)
    with caplog.at_level(logging.WARNING, logger="teselado.renderer"):
        result = renderer.render(Region(0, 0, 4, 4))
    assert result.drawn == 0
    assert result.skipped == 4
    assert np.all(pixels(result.image)[..., 3] == 0)
    warnings = [record for record in caplog.records if record.name == "teselado.renderer"]
    assert len(warnings) == 1
    assert "ghost.png" in warnings[0].getMessage()


def test_undecodable_tile_skips_cell(tmp_path: Path) -> None:
    (tmp_path / "junk.png").write_text("junk")
    snapshot = TileIndex.from_entries({"junk.png": (0, 0, 0)}, tmp_path).snapshot()
    result = render_region(solid((2, 2), BLACK), snapshot, 1, Region(0, 0, 2, 2))
    assert result.skipped == 4


def test_trailing_cell_is_clipped_to_region(tiles_dir: Path) -> None:
    snapshot = TileIndex(tiles_dir).build().snapshot()
    result = render_region(solid((5, 3), BLACK), snapshot, 2, Region(0, 0, 5, 3))
    assert result.image.size == (5, 3)
    # x in {0, 2, 4} and y in {0, 2}
    assert result.cells == 6
    assert np.all(pixels(result.image) == (0, 0, 0, 255))


def test_cancel_event_stops_rendering(tiles_dir: Path) -> None:
    snapshot = TileIndex(tiles_dir).build().snapshot()
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(MosaicTimeoutError):
        render_region(solid((4, 4), BLACK), snapshot, 2, Region(0, 0, 4, 4), cancel=cancel)


def test_oversized_tile_only_scales_visible_part(tiles_dir: Path) -> None:
    snapshot = TileIndex(tiles_dir).build().snapshot()
    snapshot.nearest((0, 0, 0))  # jit-compile the distance before measuring
    renderer = RegionRenderer(solid((3, 2), WHITE), snapshot, 5000)
    tracemalloc.start()
    try:
        result = renderer.render(Region(0, 0, 3, 2))
        _, peak = tracemalloc.get_traced_memory()
    finally:
        tracemalloc.stop()
    assert (result.cells, result.drawn) == (1, 1)
    assert np.all(pixels(result.image) == (255, 255, 255, 255))
    assert peak < 4 * 1024 * 1024


def test_broken_tile_is_logged_once_across_clipped_cells(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    snapshot = TileIndex.from_entries({"ghost.png": (0, 0, 0)}, tmp_path).snapshot()
    renderer = RegionRenderer(solid((5, 5), BLACK), snapshot, 2)
    with caplog.at_level(logging.WARNING, logger="teselado.renderer"):
        result = renderer.render(Region(0, 0, 5, 5))
    assert result.skipped == result.cells == 9
    assert len([record for record in caplog.records if record.name == "teselado.renderer"]) == 1
