"""
Escalado de teselas por muestreo puntual.

La razón de escala es la división entera del ancho de la tesela entre el
tamaño destino; el píxel ``(i, j)`` de salida toma el píxel ``(i * razón,
j * razón)`` de la tesela. Las últimas filas o columnas que la razón no
alcanza se descartan (truncamiento, sin interpolación).

Cuando la tesela es más pequeña que el destino la razón se fija en 1 y las
coordenadas se recortan al último píxel, de modo que el borde se repite.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import Image

from mosaic_errors import ConfigError


def scale_ratio(source_width: int, target_size: int) -> int:
    """Razón entera de muestreo; nunca menor que 1."""
    if target_size < 1:
        raise ConfigError(f"El tamaño destino debe ser >= 1 (recibido {target_size})")
    return max(source_width // target_size, 1)


def resize_tile(image: Image.Image,
                target_size: int,
                width: Optional[int] = None,
                height: Optional[int] = None) -> Image.Image:
    """
    Devuelve una imagen RGBA de ``target_size`` x ``target_size``.

    ``width`` y ``height`` limitan la salida a la esquina superior izquierda
    visible de la celda; la razón de muestreo sigue dependiendo sólo de
    ``target_size``, así que el recorte coincide píxel a píxel con la celda
    completa.
    """
    source_width, source_height = image.size
    if source_width == 0 or source_height == 0:
        raise ConfigError("No se puede escalar una imagen vacía")
    ratio = scale_ratio(source_width, target_size)
    out_width = target_size if width is None else min(width, target_size)
    out_height = target_size if height is None else min(height, target_size)
    if out_width < 1 or out_height < 1:
        raise ConfigError(f"Extensión visible inválida: {out_width}x{out_height}")

    if image.mode != 'RGBA':
        image = image.convert('RGBA')
    pixels = np.asarray(image)

    xs = np.minimum(np.arange(out_width) * ratio, source_width - 1)
    ys = np.minimum(np.arange(out_height) * ratio, source_height - 1)
    sampled = pixels[np.ix_(ys, xs)]
    return Image.fromarray(np.ascontiguousarray(sampled))


__all__ = ["resize_tile", "scale_ratio"]
