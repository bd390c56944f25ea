#!/usr/bin/env python3
"""
Script to build and persist the tile color index.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from app.logging_config import get_logger
from mosaic_errors import ConfigError
from paths import PROJECT_ROOT, TILES_DIR
from tile_index import TileIndex

LOGGER = get_logger("teselado.cli")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build the average-color index of a tile directory.")
    parser.add_argument("--tiles", type=Path, default=TILES_DIR, help="Tile directory (default: tiles/)")
    parser.add_argument(
        "--output",
        type=Path,
        default=PROJECT_ROOT / "tile_index.pkl",
        help="Index file; .pkl, .json or .txt (default: tile_index.pkl)",
    )
    parser.add_argument("--no-progress", action="store_true", help="Hide the progress bar")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    print(f"Indexing tiles in {args.tiles} ...")

    index = TileIndex(args.tiles).build(show_progress=not args.no_progress)
    if len(index) == 0:
        print("No usable tiles found")
        return 1

    try:
        index.save(args.output)
    except (ConfigError, OSError) as exc:
        LOGGER.error("Could not save the index: %s", exc)
        return 1

    print(f"Saved {len(index)} tiles to {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
