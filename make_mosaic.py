#!/usr/bin/env python3
"""
Genera un mosaico desde la línea de comandos, sin levantar el servidor.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Sequence

from app.logging_config import get_logger
from color_analyzer import ColorAnalyzer
from mosaic_assembler import MosaicAssembler, MosaicJob
from mosaic_errors import MosaicError
from paths import TILES_DIR
from tile_index import TileIndex

LOGGER = get_logger("teselado.cli")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconstruye una imagen con teselas.")
    parser.add_argument("source", type=Path, help="Imagen fuente")
    parser.add_argument("output", type=Path, help="Archivo de salida (.jpg o .png)")
    parser.add_argument("--tile-size", type=int, default=10, help="Lado de cada tesela en píxeles")
    parser.add_argument("--tiles", type=Path, default=TILES_DIR, help="Directorio de teselas")
    parser.add_argument("--index", type=Path, default=None, help="Índice persistido (.pkl, .json, .txt)")
    parser.add_argument("--timeout", type=float, default=None, help="Tiempo límite en segundos")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    output_format = "PNG" if args.output.suffix.lower() == ".png" else "JPEG"

    try:
        if args.index is not None:
            index = TileIndex.load(args.index, args.tiles)
        else:
            index = TileIndex(args.tiles).build(show_progress=True)

        source = ColorAnalyzer.open_rgb(args.source)
        job = MosaicJob.create(source, args.tile_size)
        assembler = MosaicAssembler(timeout=args.timeout, output_format=output_format)
        assembler.run(job, index.snapshot())
    except (MosaicError, OSError) as exc:
        LOGGER.error("No se pudo generar el mosaico: %s", exc)
        return 1

    args.output.parent.mkdir(parents=True, exist_ok=True)
    args.output.write_bytes(job.encoded)
    print(f"Mosaico guardado en {args.output} ({job.elapsed_seconds:.2f}s)")
    return 0


if __name__ == "__main__":
    sys.exit(main())
