"""Entry point for the Product Catalog API.

Builds the application from environment configuration and serves it
with Uvicorn.  Required variables (``JWT_SECRET_KEY``,
``DATABASE_URL``) may be placed in a ``.env`` file in the working
directory.  If either is missing the process exits with status 1
before binding a port.

Usage:
    python run.py
"""
import asyncio
import logging
import sys

from uvicorn import Config, Server

from catalog_api.app.core.config import Settings
from catalog_api.app.core.exceptions import ConfigMissing
from catalog_api.app.main import create_app


async def serve(settings: Settings) -> None:
    """Start the API on ``settings.host``:``settings.port`` (default 5000)."""
    app = create_app(settings)
    config = Config(app=app, host=settings.host, port=settings.port, reload=False,
                    log_level=settings.log_level.lower())
    server = Server(config)
    logging.getLogger(__name__).info("Server is running on port %s", settings.port)
    await server.serve()


def main() -> None:
    try:
        settings = Settings.from_env()
    except ConfigMissing as exc:
        logging.basicConfig(level=logging.INFO)
        logging.critical("%s", exc)
        sys.exit(1)
    asyncio.run(serve(settings))


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        pass
