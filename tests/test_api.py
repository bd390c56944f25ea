"""Tests for the FastAPI surface."""

from __future__ import annotations

import base64
import json
import pickle
from io import BytesIO
from pathlib import Path

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.config import Settings
from app.main import create_app
from app.services import load_tile_index
from conftest import BLACK, solid


def png_bytes(image: Image.Image) -> bytes:
    buffer = BytesIO()
    image.save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def settings(tiles_dir: Path) -> Settings:
    return Settings(tiles_dir=tiles_dir, index_cache_path=None, composite_workers=2)


@pytest.fixture
def client(settings: Settings) -> TestClient:
    return TestClient(create_app(settings=settings))


def upload(client: TestClient, path: str, data: bytes, tile_size) -> object:
    return client.post(
        path,
        files={"image": ("source.png", data, "image/png")},
        data={"tile_size": str(tile_size)},
    )


def test_upload_page(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert "Teselado" in response.text
    assert 'name="tile_size"' in response.text


def test_api_mosaic(client: TestClient) -> None:
    response = upload(client, "/api/mosaics", png_bytes(solid((4, 4), BLACK)), 2)
    assert response.status_code == 200
    payload = response.json()
    assert (payload["width"], payload["height"], payload["tile_size"]) == (4, 4, 2)
    assert payload["media_type"] == "image/jpeg"
    assert [region["quadrant"] for region in payload["regions"]] == [1, 2, 3, 4]
    assert sum(region["drawn"] for region in payload["regions"]) == 4

    with Image.open(BytesIO(base64.b64decode(payload["mosaic"]))) as mosaic:
        assert mosaic.size == (4, 4)
        assert np.asarray(mosaic.convert("RGB")).max() <= 8
    with Image.open(BytesIO(base64.b64decode(payload["original"]))) as original:
        assert original.size == (4, 4)


def test_html_results_page(client: TestClient) -> None:
    response = upload(client, "/mosaic", png_bytes(solid((6, 6), BLACK)), 3)
    assert response.status_code == 200
    assert "data:image/jpeg;base64," in response.text
    assert "Tiempo:" in response.text


@pytest.mark.parametrize("tile_size", [0, -3])
def test_invalid_tile_size(client: TestClient, tile_size: int) -> None:
    response = upload(client, "/api/mosaics", png_bytes(solid((4, 4), BLACK)), tile_size)
    assert response.status_code == 400


def test_undecodable_upload(client: TestClient) -> None:
    response = upload(client, "/api/mosaics", b"not an image", 2)
    assert response.status_code == 415


def test_oversized_upload(settings: Settings) -> None:
    settings.max_upload_bytes = 16
    client = TestClient(create_app(settings=settings))
    response = upload(client, "/api/mosaics", png_bytes(solid((8, 8), BLACK)), 2)
    assert response.status_code == 413


def test_empty_tile_directory_still_renders(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    client = TestClient(create_app(settings=Settings(tiles_dir=empty, index_cache_path=None, require_tiles=False)))
    response = upload(client, "/api/mosaics", png_bytes(solid((4, 4), BLACK)), 2)
    assert response.status_code == 200
    assert sum(region["skipped"] for region in response.json()["regions"]) == 4


def test_tile_index_and_rebuild(client: TestClient, tiles_dir: Path) -> None:
    info = client.get("/api/tiles").json()
    assert info["tiles"] == 2
    assert info["sample"] == ["black.png", "white.png"]

    solid((4, 4), (255, 0, 0)).save(tiles_dir / "red.png")
    rebuilt = client.post("/api/tiles/rebuild")
    assert rebuilt.status_code == 200
    assert rebuilt.json()["tiles"] == 3
    assert client.get("/api/tiles").json()["tiles"] == 3


def test_defaults_and_diagnostics(client: TestClient) -> None:
    assert client.get("/api/mosaics/defaults").json() == {"tile_size": 10}
    diagnostics = client.get("/api/diagnostics").json()
    assert diagnostics["tile_count"] == 2
    assert diagnostics["composite_workers"] == 2


def test_cached_index_is_used(tiles_dir: Path, tmp_path: Path) -> None:
    from tile_index import TileIndex

    cache = TileIndex.from_entries({"black.png": (0, 0, 0)}, tiles_dir).save(tmp_path / "index.json")
    client = TestClient(create_app(settings=Settings(tiles_dir=tiles_dir, index_cache_path=cache)))
    assert client.get("/api/tiles").json()["tiles"] == 1


def test_strict_mode_rejects_empty_tile_directory(tmp_path: Path) -> None:
    empty = tmp_path / "empty"
    empty.mkdir()
    strict = Settings(tiles_dir=empty, index_cache_path=None, require_tiles=True)
    client = TestClient(create_app(settings=strict))
    response = upload(client, "/api/mosaics", png_bytes(solid((4, 4), BLACK)), 2)
    assert response.status_code == 400
    assert "teselas" in response.json()["detail"]


def test_strict_mode_renders_when_tiles_exist(settings: Settings) -> None:
    settings.require_tiles = True
    client = TestClient(create_app(settings=settings))
    response = upload(client, "/api/mosaics", png_bytes(solid((4, 4), BLACK)), 2)
    assert response.status_code == 200


def test_require_tiles_env_override(monkeypatch) -> None:
    monkeypatch.setenv("TESELADO_REQUIRE_TILES", "true")
    assert Settings().require_tiles is True
    monkeypatch.setenv("TESELADO_REQUIRE_TILES", "0")
    assert Settings().require_tiles is False


@pytest.mark.parametrize(
    "filename, content",
    [
        ("index.pkl", pickle.dumps({"black.png": 5})),
        ("index.json", json.dumps([["black.png", [0, 0, 0]]]).encode("utf-8")),
    ],
)
def test_malformed_cache_falls_back_to_scan(tiles_dir: Path, tmp_path: Path, filename: str, content: bytes) -> None:
    cache = tmp_path / filename
    cache.write_bytes(content)
    index = load_tile_index(Settings(tiles_dir=tiles_dir, index_cache_path=cache))
    assert sorted(index.entries()) == ["black.png", "white.png"]

    client = TestClient(create_app(settings=Settings(tiles_dir=tiles_dir, index_cache_path=cache)))
    assert client.get("/api/tiles").json()["tiles"] == 2
