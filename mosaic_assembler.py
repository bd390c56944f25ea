"""
Ensamblador concurrente de fotomosaicos.

La imagen fuente se divide en cuatro cuadrantes que se renderizan en
paralelo; cada cuadrante terminado se compone de inmediato en el lienzo
final mientras los demás siguen trabajando, y solo cuando todas las
composiciones concluyen se codifica el resultado.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, as_completed, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass, field
from io import BytesIO
from typing import List, Optional

from PIL import Image

from color_analyzer import ColorAnalyzer
from mosaic_errors import ConfigError, EncodeError, MosaicTimeoutError
from region_renderer import Region, RegionRenderer, RegionResult, validate_tile_size
from tile_index import TileIndexSnapshot

LOGGER = logging.getLogger("teselado.assembler")

QUADRANTS = 4


@dataclass
class MosaicJob:
    """Estado de un trabajo de mosaico; se crea por solicitud y se descarta al responder."""

    source: Image.Image
    tile_size: int
    regions: List[Region] = field(default_factory=list)
    results: List[RegionResult] = field(default_factory=list)
    image: Optional[Image.Image] = None
    encoded: Optional[bytes] = None
    elapsed_seconds: float = 0.0

    @classmethod
    def create(cls, source: Image.Image, tile_size: int) -> "MosaicJob":
        tile_size = validate_tile_size(tile_size)
        width, height = source.size
        if width == 0 or height == 0:
            raise ConfigError("La imagen fuente no tiene píxeles")
        return cls(source=source, tile_size=tile_size, regions=MosaicAssembler.quadrants(width, height))

    @property
    def size(self):
        return self.source.size


class MosaicAssembler:
    """Reparte el trabajo en cuadrantes y recompone el mosaico."""

    def __init__(self,
                 timeout: Optional[float] = None,
                 output_format: str = "JPEG",
                 quality: int = 90,
                 render_workers: int = QUADRANTS,
                 composite_workers: int = QUADRANTS):
        if timeout is not None and timeout <= 0:
            raise ConfigError("timeout debe ser positivo")
        self.timeout = timeout
        self.output_format = output_format.upper()
        self.quality = quality
        self.render_workers = max(1, render_workers)
        self.composite_workers = max(1, composite_workers)

    # ------------------------------------------------------------------
    # Partición
    # ------------------------------------------------------------------
    @staticmethod
    def quadrants(width: int, height: int) -> List[Region]:
        """Cuatro cuadrantes con puntos medios enteros.

        Con dimensiones impares la columna derecha y la fila inferior
        absorben el píxel sobrante.
        """
        mid_x, mid_y = width // 2, height // 2
        return [
            Region(0, 0, mid_x, mid_y, quadrant=1),
            Region(mid_x, 0, width, mid_y, quadrant=2),
            Region(0, mid_y, mid_x, height, quadrant=3),
            Region(mid_x, mid_y, width, height, quadrant=4),
        ]

    # ------------------------------------------------------------------
    # Ejecución
    # ------------------------------------------------------------------
    def run(self, job: MosaicJob, snapshot: TileIndexSnapshot) -> MosaicJob:
        """Renderiza, compone y codifica el trabajo completo."""
        start = time.perf_counter()
        self.render(job, snapshot)
        job.encoded = self.encode(job.image)
        job.elapsed_seconds = time.perf_counter() - start
        LOGGER.info(
            "Mosaico %dx%d (tesela %d) listo en %.3fs",
            job.size[0], job.size[1], job.tile_size, job.elapsed_seconds,
        )
        return job

    def render(self, job: MosaicJob, snapshot: TileIndexSnapshot) -> Image.Image:
        """Fan-out de los cuadrantes y fan-in sobre un lienzo RGBA transparente."""
        source_array = ColorAnalyzer.to_rgb_array(job.source)
        source_array.setflags(write=False)
        canvas = Image.new('RGBA', job.size, (0, 0, 0, 0))
        cancel = threading.Event()
        deadline = None if self.timeout is None else time.monotonic() + self.timeout

        with ThreadPoolExecutor(max_workers=self.render_workers, thread_name_prefix="region") as render_pool, \
                ThreadPoolExecutor(max_workers=self.composite_workers, thread_name_prefix="composite") as composite_pool:
            render_futures = [
                render_pool.submit(
                    RegionRenderer(source_array, snapshot, job.tile_size).render, region, cancel
                )
                for region in job.regions
            ]
            composite_futures = []
            try:
                for future in as_completed(render_futures, timeout=_remaining(deadline)):
                    result = future.result()
                    job.results.append(result)
                    composite_futures.append(composite_pool.submit(self.composite, canvas, result))

                done, pending = wait(
                    composite_futures, timeout=_remaining(deadline), return_when=FIRST_EXCEPTION
                )
                if pending:
                    for future in done:
                        future.result()
                    raise FuturesTimeoutError()
                for future in done:
                    future.result()
            except FuturesTimeoutError as exc:
                cancel.set()
                raise MosaicTimeoutError(
                    f"El mosaico excedió el límite de {self.timeout}s"
                ) from exc
            except BaseException:
                cancel.set()
                raise

        job.image = canvas
        return canvas

    def composite(self, canvas: Image.Image, result: RegionResult) -> None:
        """Copia opaca del búfer de la región en su desplazamiento del lienzo."""
        region = result.region
        if region.is_empty():
            return
        canvas.paste(result.image, (region.x1, region.y1))

    def encode(self, image: Optional[Image.Image]) -> bytes:
        if image is None:
            raise EncodeError("No hay lienzo para codificar")
        buffer = BytesIO()
        try:
            if self.output_format in {"JPEG", "JPG"}:
                image.convert('RGB').save(buffer, "JPEG", quality=self.quality, optimize=True)
            else:
                image.save(buffer, self.output_format)
        except (OSError, ValueError, KeyError) as exc:
            raise EncodeError(f"No se pudo codificar el mosaico como {self.output_format}: {exc}") from exc
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Atajos
    # ------------------------------------------------------------------
    def assemble_image(self, source: Image.Image, tile_size: int,
                       snapshot: TileIndexSnapshot) -> Image.Image:
        job = MosaicJob.create(source, tile_size)
        return self.render(job, snapshot)

    def assemble(self, source: Image.Image, tile_size: int,
                 snapshot: TileIndexSnapshot) -> bytes:
        job = MosaicJob.create(source, tile_size)
        return self.run(job, snapshot).encoded


def _remaining(deadline: Optional[float]) -> Optional[float]:
    if deadline is None:
        return None
    return max(deadline - time.monotonic(), 0.0)


def encode_image(image: Image.Image, output_format: str = "JPEG", quality: int = 90) -> bytes:
    """Codifica cualquier imagen con la misma política que el mosaico final."""
    return MosaicAssembler(output_format=output_format, quality=quality).encode(image)


__all__ = ["MosaicAssembler", "MosaicJob", "QUADRANTS", "encode_image"]
