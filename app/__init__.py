"""
Application package for the photomosaic service.

The package exposes a `create_app` factory (see `app.main`) that is used by
`web_app.py` to build the module-level ASGI application.
"""

from .main import create_app

__all__ = ["create_app"]
