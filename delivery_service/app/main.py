"""FastAPI application factory."""

from __future__ import annotations

from fastapi import FastAPI

from delivery_service.app.exception_handlers import configure_exception_handlers
from delivery_service.app.lifespan import lifespan
from delivery_service.app.router import setup_routers
from delivery_service.core.settings import get_settings


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Settings are loaded once and cached via LRU cache.
    """
    settings = get_settings()
    app_settings = settings.app

    app = FastAPI(
        title=app_settings.title,
        version=app_settings.version,
        docs_url=app_settings.get_docs_url(),
        redoc_url=None,
        openapi_url=app_settings.get_openapi_url(),
        debug=app_settings.debug,
        lifespan=lifespan,
    )

    configure_exception_handlers(app)
    setup_routers(app, app_settings, settings.websocket)
    return app


# Application instance for uvicorn
app = create_app()
