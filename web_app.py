"""
Module-level ASGI entry point for the photomosaic web app.

Uvicorn expects a module-level `app` object, so we build it here from the
factory in `app.main`; the tile index is scanned once at import.
"""

from app import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8080, reload=False)
