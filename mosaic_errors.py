"""
Jerarquía de errores del generador de mosaicos.

Los errores por tesela o por celda se registran y se omiten; solo
``ConfigError``, ``EncodeError`` y ``MosaicTimeoutError`` llegan a quien
solicitó el trabajo.
"""

from __future__ import annotations


class MosaicError(Exception):
    """Base de todos los errores del mosaico."""


class TileIOError(MosaicError, OSError):
    """No se pudo abrir el archivo de una tesela o de la imagen fuente."""


class DecodeError(MosaicError, ValueError):
    """El archivo existe pero no contiene una imagen válida."""


class ConfigError(MosaicError, ValueError):
    """Parámetros del trabajo inválidos (tamaño de tesela, directorio, etc.)."""


class EncodeError(MosaicError):
    """El lienzo final no pudo serializarse."""


class MosaicTimeoutError(MosaicError, TimeoutError):
    """El trabajo excedió su tiempo límite y se canceló."""


__all__ = [
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "MosaicError",
    "MosaicTimeoutError",
    "TileIOError",
]
