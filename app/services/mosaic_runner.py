"""
Canalización de trabajos de fotomosaico.

Valida los parámetros, toma la instantánea del índice, delega el fan-out y
fan-in en :class:`MosaicAssembler` y mide el tiempo total de la solicitud.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from io import BytesIO

from PIL import Image, UnidentifiedImageError

from app.config import Settings
from app.logging_config import get_logger
from mosaic_assembler import MosaicAssembler, MosaicJob, encode_image
from mosaic_errors import DecodeError
from tile_index import TileIndex


LOGGER = get_logger("teselado.pipeline")


@dataclass
class MosaicOutcome:
    """Resultado codificado de un trabajo y su duración."""

    job: MosaicJob
    original: bytes
    mosaic: bytes
    elapsed_seconds: float
    output_format: str = "JPEG"

    @property
    def media_type(self) -> str:
        if self.output_format.upper() in {"JPEG", "JPG"}:
            return "image/jpeg"
        return f"image/{self.output_format.lower()}"


class MosaicPipeline:
    """Coordina la ejecución de los trabajos sobre el índice compartido."""

    def __init__(self, tile_index: TileIndex, settings: Settings) -> None:
        self._index = tile_index
        self._settings = settings
        self._assembler = MosaicAssembler(
            timeout=settings.job_timeout_seconds,
            output_format=settings.output_format,
            quality=settings.jpeg_quality,
            render_workers=settings.render_workers,
            composite_workers=settings.composite_workers,
        )

    @property
    def tile_index(self) -> TileIndex:
        return self._index

    @staticmethod
    def decode_upload(data: bytes) -> Image.Image:
        """Decodifica la imagen subida; ``DecodeError`` si no es una imagen válida."""
        try:
            with Image.open(BytesIO(data)) as img:
                img.load()
                return img.convert('RGB')
        except (UnidentifiedImageError, OSError, ValueError) as exc:
            raise DecodeError(f"La imagen subida no es válida: {exc}") from exc

    def run(self, source: Image.Image, tile_size: int) -> MosaicOutcome:
        start = time.perf_counter()
        # ConfigError se lanza aquí, antes de tocar el índice o crear hilos.
        job = MosaicJob.create(source, tile_size)

        if self._settings.require_tiles:
            self._index.require_tiles()

        snapshot = self._index.snapshot()
        if len(snapshot) == 0:
            LOGGER.warning("Índice vacío: el mosaico %dx%d quedará en blanco", *job.size)

        LOGGER.info(
            "Iniciando mosaico %dx%d con tesela %d y %d teselas",
            job.size[0], job.size[1], job.tile_size, len(snapshot),
        )
        self._assembler.run(job, snapshot)
        original = encode_image(
            source, output_format=self._settings.output_format, quality=self._settings.jpeg_quality
        )
        elapsed = time.perf_counter() - start
        LOGGER.info("Mosaico completado en %.2fs", elapsed)

        return MosaicOutcome(
            job=job,
            original=original,
            mosaic=job.encoded,
            elapsed_seconds=elapsed,
            output_format=self._settings.output_format,
        )

    def rebuild_index(self) -> int:
        LOGGER.info("Reconstruyendo índice de teselas desde %s", self._index.tiles_dir)
        return self._index.rebuild(show_progress=self._settings.show_progress)


__all__ = ["MosaicOutcome", "MosaicPipeline"]
