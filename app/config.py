"""
Utilidades de configuración para el servicio de fotomosaicos.

Centraliza rutas de archivos y parámetros de ejecución para que la API, el
índice de teselas y la línea de comandos compartan una sola fuente de verdad.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import psutil

from paths import LOG_DIR, PROJECT_ROOT, STATIC_DIR, TEMPLATES_DIR, TILES_DIR


def _detect_tiles_dir() -> Path:
    """Permite sustituir el directorio de teselas con ``TESELADO_TILES_DIR``."""
    override = os.environ.get("TESELADO_TILES_DIR")
    return Path(override) if override else TILES_DIR


def _detect_index_cache() -> Optional[Path]:
    """Índice persistido opcional para acelerar el arranque."""
    override = os.environ.get("TESELADO_INDEX_CACHE")
    if override:
        return Path(override)
    candidates = (
        PROJECT_ROOT / "tile_index.pkl",
        PROJECT_ROOT / "tile_index.json",
    )
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return None


def _detect_require_tiles() -> bool:
    """``TESELADO_REQUIRE_TILES=1`` rechaza trabajos cuando el índice está vacío."""
    return os.environ.get("TESELADO_REQUIRE_TILES", "").strip().lower() in {"1", "true", "yes", "on"}


def _default_composite_workers() -> int:
    return max(1, min(psutil.cpu_count(logical=True) or 1, 4))


@dataclass(slots=True)
class Settings:
    """Contenedor de parámetros de ejecución."""

    project_root: Path = PROJECT_ROOT
    static_dir: Path = STATIC_DIR
    templates_dir: Path = TEMPLATES_DIR
    log_dir: Path = LOG_DIR
    tiles_dir: Path = field(default_factory=_detect_tiles_dir)
    index_cache_path: Optional[Path] = field(default_factory=_detect_index_cache)
    default_tile_size: int = 10
    max_upload_bytes: int = 10 * 1024 * 1024  # Límite del formulario multipart.
    output_format: str = "JPEG"
    jpeg_quality: int = 90
    job_timeout_seconds: Optional[float] = None
    render_workers: int = 4  # Un hilo por cuadrante.
    composite_workers: int = field(default_factory=_default_composite_workers)
    show_progress: bool = False
    require_tiles: bool = field(default_factory=_detect_require_tiles)


settings = Settings()

__all__ = ["settings", "Settings"]
