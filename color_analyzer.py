"""
Color utilities for photomosaic generation.
Average colors of tiles, single-pixel sampling of the source image and
Euclidean nearest-color search, all on the 0-255 RGB scale.
"""

from __future__ import annotations

import math
from pathlib import Path
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image, UnidentifiedImageError
from numba import jit

from mosaic_errors import DecodeError, TileIOError

Color3 = Tuple[float, float, float]


class ColorAnalyzer:
    """Utility collection for analyzing color statistics of images."""

    # ------------------------------------------------------------------
    # Image loading
    # ------------------------------------------------------------------
    @staticmethod
    def to_rgb_array(image: Image.Image) -> np.ndarray:
        """Return an ``(H, W, 3)`` float32 array of the image in RGB."""
        if image.mode != 'RGB':
            image = image.convert('RGB')
        return np.asarray(image, dtype=np.float32)

    @staticmethod
    def open_rgb(image_path: Union[str, Path]) -> Image.Image:
        """Open and fully decode an image as RGB.

        Raises ``TileIOError`` when the file cannot be read and
        ``DecodeError`` when it is not a decodable image.
        """
        path_obj = Path(image_path)
        try:
            with Image.open(path_obj) as img:
                img.load()
                return img.convert('RGB')
        except (FileNotFoundError, PermissionError, IsADirectoryError) as exc:
            raise TileIOError(f"cannot open {path_obj}: {exc}") from exc
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise DecodeError(f"cannot decode {path_obj}: {exc}") from exc

    # ------------------------------------------------------------------
    # Average color
    # ------------------------------------------------------------------
    @staticmethod
    def get_average_color(image_path: Union[str, Path]) -> Color3:
        """Return the RGB average of an image stored on disk."""
        img_array = ColorAnalyzer.to_rgb_array(ColorAnalyzer.open_rgb(image_path))
        return ColorAnalyzer.get_average_color_from_array(img_array)

    @staticmethod
    def get_average_color_from_array(img_array: np.ndarray) -> Color3:
        """Return the RGB average of a numpy image array."""
        if img_array.size == 0:
            raise DecodeError("image has no pixels")
        rgb_mean = np.mean(img_array.reshape(-1, 3).astype(np.float64), axis=0)
        return tuple(float(channel) for channel in rgb_mean)

    # ------------------------------------------------------------------
    # Sampling
    # ------------------------------------------------------------------
    @staticmethod
    def sample_color(img_array: np.ndarray, x: int, y: int) -> Color3:
        """Color of the single pixel at ``(x, y)``; no neighbourhood averaging."""
        pixel = img_array[y, x]
        return float(pixel[0]), float(pixel[1]), float(pixel[2])

    # ------------------------------------------------------------------
    # Distances
    # ------------------------------------------------------------------
    @staticmethod
    def euclidean_distance(color1: Color3, color2: Color3) -> float:
        r1, g1, b1 = color1
        r2, g2, b2 = color2
        return math.sqrt((r2 - r1) ** 2 + (g2 - g1) ** 2 + (b2 - b1) ** 2)

    @staticmethod
    @jit(nopython=True)
    def euclidean_distance_vectorized(color1: np.ndarray, color_array: np.ndarray) -> np.ndarray:
        diff = color_array - color1
        return np.sqrt(np.sum(diff * diff, axis=1))

    @staticmethod
    def nearest_index(target: Color3, color_array: np.ndarray) -> Optional[int]:
        """Position of the closest color in ``color_array`` or ``None`` if empty.

        ``argmin`` keeps the first of equally distant rows, so ties resolve
        to the earliest entry.
        """
        if len(color_array) == 0:
            return None
        target_vec = np.asarray(target, dtype=np.float64)
        distances = ColorAnalyzer.euclidean_distance_vectorized(
            target_vec, np.ascontiguousarray(color_array, dtype=np.float64)
        )
        return int(np.argmin(distances))


__all__ = [
    "Color3",
    "ColorAnalyzer",
]
