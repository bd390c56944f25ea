"""
Renderizado de una región rectangular del mosaico.

Cada región se recorre en pasos de ``tile_size``; por celda se toma el color
de un solo píxel de la imagen fuente, se busca la tesela más cercana en la
instantánea del índice y se pega escalada en el búfer de la región.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Union

import numpy as np
from PIL import Image

from color_analyzer import ColorAnalyzer
from mosaic_errors import ConfigError, DecodeError, MosaicTimeoutError, TileIOError
from tile_index import TileIndexSnapshot
from tile_resizer import resize_tile

LOGGER = logging.getLogger("teselado.renderer")


@dataclass(frozen=True)
class Region:
    """Rectángulo semiabierto ``[x1, x2) x [y1, y2)`` de la imagen fuente."""

    x1: int
    y1: int
    x2: int
    y2: int
    quadrant: int = 0

    @property
    def width(self) -> int:
        return max(self.x2 - self.x1, 0)

    @property
    def height(self) -> int:
        return max(self.y2 - self.y1, 0)

    @property
    def box(self) -> Tuple[int, int, int, int]:
        return self.x1, self.y1, self.x2, self.y2

    @property
    def area(self) -> int:
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.area == 0


@dataclass
class RegionResult:
    """Búfer de una región y las estadísticas de su renderizado."""

    region: Region
    image: Image.Image
    cells: int = 0
    drawn: int = 0
    skipped: int = 0


def validate_tile_size(tile_size: int) -> int:
    if isinstance(tile_size, bool) or not isinstance(tile_size, (int, np.integer)):
        raise ConfigError(f"tile_size debe ser un entero (recibido {tile_size!r})")
    if tile_size <= 0:
        raise ConfigError(f"tile_size debe ser mayor que cero (recibido {tile_size})")
    return int(tile_size)


class RegionRenderer:
    """Convierte una región de la imagen fuente en celdas de teselas."""

    def __init__(self,
                 source: Union[Image.Image, np.ndarray],
                 snapshot: TileIndexSnapshot,
                 tile_size: int):
        if isinstance(source, Image.Image):
            source = ColorAnalyzer.to_rgb_array(source)
        self.source = source
        self.snapshot = snapshot
        self.tile_size = validate_tile_size(tile_size)
        # Las fallas también se guardan (None) para no reabrir archivos rotos.
        self._source_cache: Dict[str, Optional[Image.Image]] = {}
        self._tile_cache: Dict[Tuple[str, int, int], Optional[Image.Image]] = {}

    def render(self, region: Region, cancel: Optional[threading.Event] = None) -> RegionResult:
        buffer = Image.new('RGBA', (region.width, region.height), (0, 0, 0, 0))
        result = RegionResult(region=region, image=buffer)
        step = self.tile_size

        for y in range(region.y1, region.y2, step):
            if cancel is not None and cancel.is_set():
                raise MosaicTimeoutError(f"Renderizado cancelado en la región {region.quadrant}")
            for x in range(region.x1, region.x2, step):
                result.cells += 1
                color = ColorAnalyzer.sample_color(self.source, x, y)
                name = self.snapshot.nearest(color)
                if name is None:
                    result.skipped += 1
                    continue

                # Sólo se escala la parte visible; el resto quedaría recortado.
                tile = self._load_tile(name, min(step, region.x2 - x), min(step, region.y2 - y))
                if tile is None:
                    result.skipped += 1
                    continue

                buffer.paste(tile, (x - region.x1, y - region.y1))
                result.drawn += 1

        LOGGER.debug(
            "Región %d %s: %d celdas, %d dibujadas, %d omitidas",
            region.quadrant, region.box, result.cells, result.drawn, result.skipped,
        )
        return result

    def _open_tile(self, name: str) -> Optional[Image.Image]:
        if name in self._source_cache:
            return self._source_cache[name]

        image: Optional[Image.Image] = None
        try:
            image = ColorAnalyzer.open_rgb(self.snapshot.path_for(name))
        except TileIOError as exc:
            LOGGER.warning("Error abriendo la tesela %s al crear el mosaico: %s", name, exc)
        except DecodeError as exc:
            LOGGER.warning("Error decodificando la tesela %s: %s", name, exc)

        self._source_cache[name] = image
        return image

    def _load_tile(self, name: str, width: int, height: int) -> Optional[Image.Image]:
        key = (name, width, height)
        if key in self._tile_cache:
            return self._tile_cache[key]

        image = self._open_tile(name)
        tile = None if image is None else resize_tile(image, self.tile_size, width, height)
        self._tile_cache[key] = tile
        return tile


def render_region(source: Union[Image.Image, np.ndarray],
                  snapshot: TileIndexSnapshot,
                  tile_size: int,
                  region: Region,
                  cancel: Optional[threading.Event] = None) -> RegionResult:
    """Atajo para renderizar una región con un renderizador nuevo."""
    return RegionRenderer(source, snapshot, tile_size).render(region, cancel=cancel)


__all__ = ["Region", "RegionRenderer", "RegionResult", "render_region", "validate_tile_size"]
