"""
Carga del índice de teselas al arrancar el servicio.

Si hay un índice persistido se reutiliza; de lo contrario se escanea el
directorio de teselas. Cualquiera de los dos caminos entrega un único
:class:`TileIndex` que vive mientras viva el proceso.
"""

from __future__ import annotations

import json
import pickle

from app.config import Settings
from app.logging_config import get_logger
from mosaic_errors import ConfigError
from tile_index import TileIndex

LOGGER = get_logger("teselado.index_loader")


def load_tile_index(settings: Settings) -> TileIndex:
    """Devuelve el índice desde caché o lo construye escaneando el directorio."""
    cache_path = settings.index_cache_path
    if cache_path is not None and cache_path.exists():
        try:
            return TileIndex.load(cache_path, settings.tiles_dir)
        except (OSError, ValueError, pickle.UnpicklingError, json.JSONDecodeError, ConfigError) as exc:
            LOGGER.warning("Índice en caché inutilizable (%s): %s; se reconstruye", cache_path, exc)

    LOGGER.info("Construyendo índice de teselas desde %s", settings.tiles_dir)
    return TileIndex(settings.tiles_dir).build(show_progress=settings.show_progress)


__all__ = ["load_tile_index"]
