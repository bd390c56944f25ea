"""Top-level router assembly."""

from fastapi import APIRouter

from .mosaics import router as mosaics_router
from .mosaics import tiles_router


def get_api_router() -> APIRouter:
    api = APIRouter()
    api.include_router(mosaics_router)
    api.include_router(tiles_router)
    return api


__all__ = ["get_api_router"]
