"""
Índice de colores de las teselas.

Recorre el directorio de teselas, calcula el color promedio de cada imagen y
ofrece copias inmutables (instantáneas) para que cada trabajo de mosaico
busque la tesela más cercana sin bloquear el índice compartido.
"""

from __future__ import annotations

import json
import logging
import pickle
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Mapping, Optional, Tuple, Union

import numpy as np
from tqdm import tqdm

from color_analyzer import Color3, ColorAnalyzer
from mosaic_errors import ConfigError, DecodeError, TileIOError

LOGGER = logging.getLogger("teselado.index")


@dataclass(frozen=True, eq=False)
class TileIndexSnapshot:
    """Copia de solo lectura del índice tomada al inicio de un trabajo."""

    names: Tuple[str, ...]
    colors: np.ndarray
    tiles_dir: Path

    @classmethod
    def from_items(cls, items: List[Tuple[str, Color3]], tiles_dir: Path) -> "TileIndexSnapshot":
        names = tuple(name for name, _ in items)
        colors = np.array([color for _, color in items], dtype=np.float64).reshape(-1, 3)
        colors.setflags(write=False)
        return cls(names=names, colors=colors, tiles_dir=Path(tiles_dir))

    def __len__(self) -> int:
        return len(self.names)

    def __contains__(self, name: object) -> bool:
        return name in self.names

    def __iter__(self) -> Iterator[Tuple[str, Color3]]:
        for name, row in zip(self.names, self.colors):
            yield name, (float(row[0]), float(row[1]), float(row[2]))

    def nearest(self, color: Color3) -> Optional[str]:
        """Nombre de la tesela más cercana en distancia euclidiana, o ``None`` si está vacía."""
        position = ColorAnalyzer.nearest_index(color, self.colors)
        if position is None:
            return None
        return self.names[position]

    def color_of(self, name: str) -> Color3:
        row = self.colors[self.names.index(name)]
        return float(row[0]), float(row[1]), float(row[2])

    def path_for(self, name: str) -> Path:
        return self.tiles_dir / name


class TileIndex:
    """Índice de teselas con reconstrucción segura entre hilos."""

    def __init__(self, tiles_dir: Union[str, Path]) -> None:
        self._tiles_dir = Path(tiles_dir)
        self._lock = threading.Lock()
        self._entries: Dict[str, Color3] = {}

    @property
    def tiles_dir(self) -> Path:
        return self._tiles_dir

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    @classmethod
    def from_entries(cls, entries: Mapping[str, Color3], tiles_dir: Union[str, Path]) -> "TileIndex":
        """Crea un índice a partir de colores ya calculados."""
        index = cls(tiles_dir)
        index._entries = {
            name: _as_color3(color) for name, color in sorted(entries.items())
        }
        return index

    # ------------------------------------------------------------------
    # Construcción
    # ------------------------------------------------------------------
    def get_image_files(self) -> List[Path]:
        """Archivos regulares no ocultos del directorio de teselas, ordenados por nombre."""
        if not self._tiles_dir.is_dir():
            LOGGER.warning("Directorio de teselas inexistente: %s", self._tiles_dir)
            return []
        return sorted(
            path for path in self._tiles_dir.iterdir()
            if path.is_file() and not path.name.startswith(".")
        )

    def process_single_image(self, image_path: Path) -> Optional[Tuple[str, Color3]]:
        """Color promedio de una tesela; ``None`` si no se pudo abrir o decodificar."""
        try:
            return image_path.name, ColorAnalyzer.get_average_color(image_path)
        except TileIOError as exc:
            LOGGER.warning("No se pudo abrir la tesela %s: %s", image_path.name, exc)
        except DecodeError as exc:
            LOGGER.warning("Tesela no decodificable %s: %s", image_path.name, exc)
        return None

    def _scan(self, show_progress: bool = False) -> Dict[str, Color3]:
        image_files = self.get_image_files()
        LOGGER.info("Indexando %d archivos de %s", len(image_files), self._tiles_dir)

        entries: Dict[str, Color3] = {}
        for image_path in tqdm(image_files, desc="Indexando teselas", disable=not show_progress):
            result = self.process_single_image(image_path)
            if result:
                name, color = result
                entries[name] = color

        if not entries:
            LOGGER.warning("El índice no contiene teselas utilizables")
        else:
            LOGGER.info("Índice generado con %d teselas válidas", len(entries))
        return entries

    def build(self, show_progress: bool = False) -> "TileIndex":
        """Escanea el directorio y reemplaza el contenido del índice."""
        self.rebuild(show_progress=show_progress)
        return self

    def rebuild(self, show_progress: bool = False) -> int:
        """Vuelve a escanear fuera del candado y publica el resultado de una sola vez."""
        entries = self._scan(show_progress=show_progress)
        with self._lock:
            self._entries = entries
        return len(entries)

    # ------------------------------------------------------------------
    # Lectura
    # ------------------------------------------------------------------
    def snapshot(self) -> TileIndexSnapshot:
        with self._lock:
            items = list(self._entries.items())
        return TileIndexSnapshot.from_items(items, self._tiles_dir)

    def entries(self) -> Dict[str, Color3]:
        with self._lock:
            return dict(self._entries)

    def require_tiles(self) -> None:
        """Falla con ``ConfigError`` si el índice está vacío."""
        if len(self) == 0:
            raise ConfigError(f"No hay teselas utilizables en {self._tiles_dir}")

    # ------------------------------------------------------------------
    # Persistencia
    # ------------------------------------------------------------------
    def save(self, path: Union[str, Path]) -> Path:
        """Guarda el índice en JSON, pickle o texto según la extensión."""
        path = Path(path)
        entries = self.entries()
        path.parent.mkdir(parents=True, exist_ok=True)
        suffix = path.suffix.lower()

        if suffix == ".json":
            payload = {name: {"avg_color": list(color)} for name, color in entries.items()}
            with path.open("w", encoding="utf-8") as stream:
                json.dump(payload, stream, indent=2, ensure_ascii=False)
        elif suffix in {".pkl", ".pickle"}:
            with path.open("wb") as stream:
                pickle.dump(entries, stream)
        elif suffix == ".txt":
            with path.open("w", encoding="utf-8") as stream:
                for name, (r, g, b) in entries.items():
                    stream.write(f"{name}\t{r:.4f}\t{g:.4f}\t{b:.4f}\n")
        else:
            raise ConfigError(f"Formato no soportado para el índice: {path}")

        LOGGER.info("Índice con %d teselas guardado en %s", len(entries), path)
        return path

    @classmethod
    def load(cls, path: Union[str, Path], tiles_dir: Union[str, Path]) -> "TileIndex":
        """
        Carga un índice previamente guardado con :meth:`save`.

        Un archivo legible pero con forma inesperada (una lista en lugar de un
        diccionario, colores que no son tripletas numéricas) produce
        ``ConfigError`` para que quien llama pueda recurrir al escaneo.
        """
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix == ".json":
            with path.open("r", encoding="utf-8") as stream:
                data = json.load(stream)
        elif suffix in {".pkl", ".pickle"}:
            with path.open("rb") as stream:
                data = pickle.load(stream)
        elif suffix == ".txt":
            data = {}
            with path.open("r", encoding="utf-8") as stream:
                for line in stream:
                    parts = line.rstrip("\n").split("\t")
                    if len(parts) >= 4:
                        data[parts[0]] = parts[1:4]
        else:
            raise ConfigError(f"Formato no soportado para el índice: {path}")

        if not isinstance(data, dict) or not all(isinstance(name, str) for name in data):
            raise ConfigError("El índice debe ser un diccionario {archivo: color}")

        index = cls.from_entries(data, tiles_dir)
        LOGGER.info("Índice cargado desde %s (%d teselas)", path, len(index))
        return index


def _as_color3(value) -> Color3:
    if isinstance(value, dict):
        value = value.get("avg_color")
    try:
        r, g, b = (float(channel) for channel in list(value)[:3])
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Color inválido en el índice: {value!r}") from exc
    if min(r, g, b) < 0:
        raise ConfigError(f"Color con canales negativos: {(r, g, b)}")
    return r, g, b


__all__ = ["TileIndex", "TileIndexSnapshot"]
