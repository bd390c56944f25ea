"""
Fábrica de aplicaciones FastAPI para el servicio de fotomosaicos.

El índice de teselas se construye una sola vez al crear la aplicación y se
inyecta en las rutas a través de ``app.state``.
"""

from __future__ import annotations

import base64
from typing import Optional

import psutil
from fastapi import FastAPI, File, Form, Request, UploadFile
from fastapi.responses import HTMLResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

from app.config import Settings, settings as default_settings
from app.logging_config import get_logger
from app.routes import get_api_router
from app.routes.mosaics import read_upload, run_mosaic
from app.services import MosaicPipeline, load_tile_index
from tile_index import TileIndex


def create_app(settings: Optional[Settings] = None,
               tile_index: Optional[TileIndex] = None) -> FastAPI:
    settings = settings or default_settings
    logger = get_logger("teselado.main")
    logger.info("Inicializando aplicacion Teselado")
    app = FastAPI(
        title="Teselado",
        description="Generador de fotomosaicos por cuadrantes concurrentes.",
        version="1.0.0",
    )

    if tile_index is None:
        tile_index = load_tile_index(settings)
    pipeline = MosaicPipeline(tile_index=tile_index, settings=settings)

    app.state.settings = settings
    app.state.tile_index = tile_index
    app.state.pipeline = pipeline

    if settings.static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(settings.static_dir)), name="static")

    templates = Jinja2Templates(directory=str(settings.templates_dir))

    @app.get("/", response_class=HTMLResponse)
    def upload(request: Request) -> HTMLResponse:
        return templates.TemplateResponse(
            request,
            "upload.html",
            {"default_tile_size": settings.default_tile_size, "tiles": len(tile_index)},
        )

    @app.post("/mosaic", response_class=HTMLResponse)
    def mosaic(
        request: Request,
        image: UploadFile = File(...),
        tile_size: int = Form(...),
    ) -> HTMLResponse:
        data = read_upload(image, settings.max_upload_bytes)
        outcome = run_mosaic(pipeline, data, tile_size)
        return templates.TemplateResponse(
            request,
            "results.html",
            {
                "media_type": outcome.media_type,
                "original": base64.b64encode(outcome.original).decode("ascii"),
                "mosaic": base64.b64encode(outcome.mosaic).decode("ascii"),
                "duration": f"{outcome.elapsed_seconds:.3f}s",
                "tile_size": outcome.job.tile_size,
            },
        )

    app.include_router(get_api_router())

    @app.get("/api/diagnostics")
    def diagnostics() -> dict:
        return {
            "tile_count": len(tile_index),
            "tiles_dir": str(tile_index.tiles_dir),
            "index_cache_path": str(settings.index_cache_path) if settings.index_cache_path else None,
            "output_format": settings.output_format,
            "job_timeout_seconds": settings.job_timeout_seconds,
            "cpu_count": psutil.cpu_count(logical=True),
            "composite_workers": settings.composite_workers,
        }

    return app


__all__ = ["create_app"]
