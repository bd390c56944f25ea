"""
Rutas de la API para la generación de fotomosaicos y el índice de teselas.
"""

from __future__ import annotations

import base64
import time

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status

from app.config import Settings
from app.logging_config import get_logger
from app.models import (
    ApiError,
    MosaicParameters,
    MosaicResult,
    RebuildResult,
    RegionStats,
    TileIndexInfo,
)
from app.services import MosaicOutcome, MosaicPipeline
from mosaic_errors import ConfigError, DecodeError, EncodeError, MosaicTimeoutError

LOGGER = get_logger("teselado.api")
router = APIRouter(prefix="/api/mosaics", tags=["mosaics"])
tiles_router = APIRouter(prefix="/api/tiles", tags=["tiles"])


# ---------------------------------------------------------------------------
# Ayudantes de dependencias
# ---------------------------------------------------------------------------
def _pipeline(request: Request) -> MosaicPipeline:
    return request.app.state.pipeline


def _settings(request: Request) -> Settings:
    return request.app.state.settings


def read_upload(upload: UploadFile, limit: int) -> bytes:
    """Lee el archivo subido respetando el límite de tamaño configurado."""
    if not upload.filename:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Se requiere una imagen de entrada")
    upload.file.seek(0)
    data = upload.file.read(limit + 1)
    upload.file.close()
    if len(data) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"La imagen supera el límite de {limit} bytes",
        )
    return data


def run_mosaic(pipeline: MosaicPipeline, data: bytes, tile_size: int) -> MosaicOutcome:
    """Ejecuta el trabajo y traduce los errores del dominio a respuestas HTTP."""
    try:
        source = pipeline.decode_upload(data)
        return pipeline.run(source, tile_size)
    except DecodeError as exc:
        LOGGER.warning("Imagen no decodificable: %s", exc)
        raise HTTPException(status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE, detail=str(exc))
    except ConfigError as exc:
        LOGGER.warning("Parametros invalidos: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except MosaicTimeoutError as exc:
        LOGGER.error("Tiempo agotado: %s", exc)
        raise HTTPException(status_code=status.HTTP_504_GATEWAY_TIMEOUT, detail=str(exc))
    except EncodeError as exc:
        LOGGER.error("Fallo la codificacion: %s", exc)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


def to_result(outcome: MosaicOutcome) -> MosaicResult:
    job = outcome.job
    regions = sorted(job.results, key=lambda result: result.region.quadrant)
    return MosaicResult(
        original=base64.b64encode(outcome.original).decode("ascii"),
        mosaic=base64.b64encode(outcome.mosaic).decode("ascii"),
        media_type=outcome.media_type,
        width=job.size[0],
        height=job.size[1],
        tile_size=job.tile_size,
        duration_seconds=round(outcome.elapsed_seconds, 4),
        regions=[
            RegionStats(
                quadrant=result.region.quadrant,
                box=result.region.box,
                cells=result.cells,
                drawn=result.drawn,
                skipped=result.skipped,
            )
            for result in regions
        ],
    )


# ---------------------------------------------------------------------------
# Rutas
# ---------------------------------------------------------------------------
@router.get("/defaults", response_model=MosaicParameters)
def get_default_parameters(settings: Settings = Depends(_settings)) -> MosaicParameters:
    """Expone los parámetros predeterminados para inicializar la interfaz."""
    return MosaicParameters(tile_size=settings.default_tile_size)


@router.post(
    "",
    response_model=MosaicResult,
    responses={400: {"model": ApiError}, 413: {"model": ApiError}, 415: {"model": ApiError},
               500: {"model": ApiError}, 504: {"model": ApiError}},
)
def create_mosaic(
    image: UploadFile = File(...),
    tile_size: int = Form(...),
    pipeline: MosaicPipeline = Depends(_pipeline),
    settings: Settings = Depends(_settings),
) -> MosaicResult:
    """Genera un mosaico de forma síncrona y lo devuelve en base64."""
    data = read_upload(image, settings.max_upload_bytes)
    LOGGER.info("Nuevo mosaico solicitado (%s, tesela %d)", image.filename, tile_size)
    return to_result(run_mosaic(pipeline, data, tile_size))


@tiles_router.get("", response_model=TileIndexInfo)
def get_tile_index(pipeline: MosaicPipeline = Depends(_pipeline)) -> TileIndexInfo:
    index = pipeline.tile_index
    names = sorted(index.entries())
    return TileIndexInfo(tiles=len(names), tiles_dir=str(index.tiles_dir), sample=names[:20])


@tiles_router.post("/rebuild", response_model=RebuildResult)
def rebuild_tile_index(pipeline: MosaicPipeline = Depends(_pipeline)) -> RebuildResult:
    """Reescanea el directorio de teselas sin detener los trabajos en curso."""
    start = time.perf_counter()
    count = pipeline.rebuild_index()
    return RebuildResult(tiles=count, duration_seconds=round(time.perf_counter() - start, 4))
