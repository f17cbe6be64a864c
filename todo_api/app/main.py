"""
Main entrypoint for the TODO API.

This module assembles the FastAPI application: it wraps the router in
the global middleware stack, registers exception handlers and attaches
the settings and the TODO service to ``app.state``.  ``create_app``
builds a fresh application each time it is called; ``run.py`` passes
the result to the lifecycle manager, and tests build their own with
custom settings.  To serve it with plain uvicorn instead::

    uvicorn --factory todo_api.app.main:create_app
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware import Middleware

from .api.router import router
from .core.config import Settings
from .core.db import init_db
from .core.exceptions import StoreError
from .core.logging_config import setup_logging
from .middleware import OSContextMiddleware, RecoveryMiddleware, RequestLoggerMiddleware
from .services.todo_service import TODOService

logger = logging.getLogger(__name__)


def build_middleware(settings: Settings) -> List[Middleware]:
    """Return the global middleware stack, outermost first.

    The OS tag must be in the context before the logger reads it, and
    recovery sits directly around routing so an exception anywhere in a
    route (authentication and the TODO service included) is turned into
    a 500 before it reaches the logger.
    """
    return [
        Middleware(OSContextMiddleware),
        Middleware(RequestLoggerMiddleware, tz=settings.tz),
        Middleware(RecoveryMiddleware),
    ]


async def store_exception_handler(request: Request, exc: StoreError) -> JSONResponse:
    logger.error(
        "Database error in %s %s: %s",
        request.method,
        request.url.path,
        exc.message,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Database error",
            "path": request.url.path,
            "method": request.method,
        },
    )


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
    """
    if settings is None:
        settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file or None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Apply migrations at startup.  This creates the database file if
        # it does not exist and brings the schema up to date.
        init_db(settings.db_path)
        logger.info("Database ready at %s", settings.db_path)
        yield

    app = FastAPI(
        title=settings.project_name,
        version=settings.api_version,
        middleware=build_middleware(settings),
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.todo_service = TODOService(settings.db_path, tz=settings.tz)

    app.include_router(router)
    app.add_exception_handler(StoreError, store_exception_handler)

    return app
