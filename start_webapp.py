#!/usr/bin/env python3
"""
Lanzador del servidor de Teselado.

Verifica dependencias y que el directorio de teselas tenga imágenes antes de
iniciar la aplicación FastAPI. Usa este script (`python start_webapp.py`) en
lugar de invocar `uvicorn` de manera directa.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import Sequence

from paths import TILES_DIR


def check_requirements(tiles_dir: Path, skip_checks: bool = False) -> bool:
    """Verifica que las dependencias web y el directorio de teselas estén disponibles."""
    if skip_checks:
        return True

    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
        print("[ok] Dependencias web instaladas")
    except ImportError as exc:
        print(f"[warn] Dependencia faltante: {exc}")
        print("       Ejecuta `pip install -e .` y vuelve a intentarlo.")
        return False

    if not tiles_dir.is_dir() or not any(
        path.is_file() and not path.name.startswith(".") for path in tiles_dir.iterdir()
    ):
        print(f"[warn] No hay teselas en {tiles_dir}.")
        print("       Copia imágenes pequeñas en ese directorio o usa --tiles.")
        return False

    print(f"[ok] Directorio de teselas listo: {tiles_dir}")
    return True


def start_server(host: str, port: int, reload: bool) -> None:
    """Inicia el servidor FastAPI."""
    import uvicorn

    print(f"\n[info] Iniciando Teselado en http://{host}:{port}")
    if reload:
        print("[info] Recarga automática activa (modo desarrollo)")
    print("[info] Presiona Ctrl+C para detener el servidor\n")

    try:
        uvicorn.run(
            "web_app:app",
            host=host,
            port=port,
            reload=reload,
        )
    except KeyboardInterrupt:
        print("\n[info] Servidor detenido.")


def parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Inicia la aplicación FastAPI de Teselado."
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Interfaz a enlazar (predeterminado: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8080,
        help="Puerto de escucha (predeterminado: 8080)",
    )
    parser.add_argument(
        "--tiles",
        type=Path,
        default=None,
        help="Directorio de teselas (predeterminado: tiles/ o TESELADO_TILES_DIR)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Activa la recarga automática",
    )
    parser.add_argument(
        "--require-tiles",
        action="store_true",
        help="Rechaza los mosaicos (HTTP 400) mientras el índice esté vacío.",
    )
    parser.add_argument(
        "--skip-checks",
        action="store_true",
        help="Omite la verificación de dependencias y teselas.",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])

    print("== Teselado: servidor de fotomosaicos ==")
    print("=" * 40)

    if args.tiles is not None:
        # El proceso de uvicorn lee la configuración desde el entorno.
        os.environ["TESELADO_TILES_DIR"] = str(args.tiles.resolve())
    tiles_dir = Path(os.environ.get("TESELADO_TILES_DIR", TILES_DIR))
    if args.require_tiles:
        os.environ["TESELADO_REQUIRE_TILES"] = "1"

    if not check_requirements(tiles_dir, skip_checks=args.skip_checks):
        print("\n[error] Configuración incompleta. Corrige los puntos anteriores e inténtalo de nuevo.")
        return 1

    start_server(host=args.host, port=args.port, reload=args.reload)
    return 0


if __name__ == "__main__":
    sys.exit(main())
