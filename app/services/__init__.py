"""Service layer utilities for the photomosaic app."""

from .index_loader import load_tile_index
from .mosaic_runner import MosaicOutcome, MosaicPipeline

__all__ = ["MosaicOutcome", "MosaicPipeline", "load_tile_index"]
