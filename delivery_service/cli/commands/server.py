"""Server command."""

import sys

import click

from delivery_service.cli.utils import error, info
from delivery_service.core.settings import get_app_settings


@click.command(name="serve")
@click.option("--host", default=None, help="Host to bind (default: APP_HOST)")
@click.option("--port", default=None, type=int, help="Port to bind (default: APP_PORT)")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload on code changes")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["critical", "error", "warning", "info", "debug"]),
    help="Uvicorn log level",
)
def serve(host: str | None, port: int | None, reload: bool, log_level: str) -> None:
    """Run the API, realtime socket and delivery worker under uvicorn."""
    import uvicorn

    settings = get_app_settings()
    host = host or settings.host
    port = port or settings.port

    info(f"Serving {settings.service_name} on http://{host}:{port} ({settings.environment})")
    try:
        uvicorn.run(
            "delivery_service.app.main:app",
            host=host,
            port=port,
            reload=reload,
            log_level=log_level,
            log_config=None,
        )
    except Exception as e:
        error(f"Failed to start server: {e}")
        sys.exit(1)
