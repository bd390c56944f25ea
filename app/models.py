"""
Esquemas Pydantic que sustentan la API de fotomosaicos.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field


class MosaicParameters(BaseModel):
    """
    Parámetros ajustables por la persona usuaria del generador.

    El tamaño de tesela es el lado, en píxeles, de cada celda del mosaico y
    también el paso con el que se muestrea la imagen fuente.
    """

    tile_size: int = Field(10, ge=1, description="Lado en píxeles de cada tesela.")


class RegionStats(BaseModel):
    """Resumen del renderizado de un cuadrante."""

    quadrant: int
    box: Tuple[int, int, int, int]
    cells: int = 0
    drawn: int = 0
    skipped: int = 0


class MosaicResult(BaseModel):
    """Respuesta de un mosaico terminado; las imágenes viajan en base64."""

    original: str
    mosaic: str
    media_type: str = "image/jpeg"
    width: int
    height: int
    tile_size: int
    duration_seconds: float
    regions: List[RegionStats] = Field(default_factory=list)


class TileIndexInfo(BaseModel):
    """Diagnóstico del índice de teselas en memoria."""

    tiles: int
    tiles_dir: str
    sample: List[str] = Field(default_factory=list)


class RebuildResult(BaseModel):
    tiles: int
    duration_seconds: float


class ApiError(BaseModel):
    """Contenedor estándar para respuestas de error."""

    detail: str
    kind: Optional[str] = None


__all__ = [
    "ApiError",
    "MosaicParameters",
    "MosaicResult",
    "RebuildResult",
    "RegionStats",
    "TileIndexInfo",
]
