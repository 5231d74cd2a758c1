"""
Main entrypoint for the Product Catalog API.

``create_app`` builds and configures the FastAPI application: logging,
the store handle, the token service, CORS, exception handlers and
routers.  Settings are read from the environment unless passed in, and
missing required settings raise ``ConfigMissing`` before anything is
served.  Run with::

    uvicorn --factory catalog_api.app.main:create_app

or ``python run.py``, which also honours ``HOST`` and ``PORT``.  The
database schema is migrated when the application starts up.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.router import router
from .core.config import Settings
from .core.db import Database
from .core.exceptions import (
    CatalogException,
    catalog_exception_handler,
    unhandled_exception_handler,
)
from .core.logging_config import setup_logging
from .core.security import TokenService

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    settings : Optional[Settings]
        Configuration to use.  Read from the environment when omitted.

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.

    Raises
    ------
    ConfigMissing
        If the signing secret or database location is not configured.
    """
    settings = (settings or Settings()).validate()
    setup_logging(settings.log_level, settings.log_file)

    db = Database(settings.database_url)
    tokens = TokenService(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db.init_db()
        logger.info("Serving %s with store %s", settings.project_name, db.path)
        yield

    app = FastAPI(title=settings.project_name, version=settings.api_version, lifespan=lifespan)
    app.state.settings = settings
    app.state.db = db
    app.state.tokens = tokens

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(CatalogException, catalog_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(router)
    return app
