"""
Main entrypoint for the HelpApp API.

This module assembles the FastAPI application: it sets up logging,
builds the token service and the database handle, registers the
exception handlers that turn typed errors into HTTP responses and
includes the versioned routers.  ``create_app`` performs that setup;
the module-level ``app`` lets uvicorn discover it::

    uvicorn helpapp_api.app.main:app --reload

A missing ``JWT_SECRET_KEY`` makes ``create_app`` raise
``ConfigurationError``, so the process refuses to start.
"""

import logging
from typing import Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.v1.router import router as v1_router
from .core.config import Settings, settings as default_settings
from .core.db import Database
from .core.errors import AppError, ErrorKind
from .core.logging_config import setup_logging
from .core.tokens import Clock, TokenService

logger = logging.getLogger(__name__)


def _field_errors(exc: RequestValidationError) -> Dict[str, List[str]]:
    """Group pydantic errors by field path, dropping the ``body`` prefix."""
    errors: Dict[str, List[str]] = {}
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        field = ".".join(loc[1:]) if len(loc) > 1 else (loc[0] if loc else "body")
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        headers = None
        if exc.kind is ErrorKind.UNAUTHENTICATED:
            headers = {"WWW-Authenticate": "Bearer"}
        if exc.kind is ErrorKind.INTERNAL:
            logger.error("Internal error on %s %s: %s", request.method, request.url.path, exc.message)
            return JSONResponse(
                status_code=exc.http_status,
                content={"message": "Internal Server Error", "code": exc.code},
            )
        return JSONResponse(status_code=exc.http_status, content=exc.to_dict(), headers=headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Validation failed", "errors": _field_errors(exc)},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"message": "Internal Server Error"},
        )


def create_app(settings: Optional[Settings] = None, clock: Optional[Clock] = None) -> FastAPI:
    """Create and configure a FastAPI application.

    Parameters
    ----------
    settings : Settings, optional
        Configuration to use; defaults to the environment-derived
        ``core.config.settings``.
    clock : callable, optional
        Time source for the token service (UNIX seconds).

    Returns
    -------
    FastAPI
        A configured FastAPI application instance.  The database is
        opened on startup and closed on shutdown.
    """
    settings = settings or default_settings
    # Initialise logging before anything else so the setup below can log.
    setup_logging(settings.log_level, settings.log_file)

    token_service = TokenService.from_settings(settings, clock=clock)
    db = Database(settings.database_url)

    app = FastAPI(title=settings.project_name, version=settings.api_version, debug=settings.debug)
    app.state.settings = settings
    app.state.token_service = token_service
    app.state.db = db

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    register_exception_handlers(app)
    app.include_router(v1_router, prefix=settings.api_prefix)

    @app.on_event("startup")
    async def startup_event() -> None:
        db.connect()
        db.init_db()

    # uvicorn turns SIGINT/SIGTERM into a graceful shutdown, which fires this.
    @app.on_event("shutdown")
    async def shutdown_event() -> None:
        db.close()

    return app


# Create the application instance at import time so that tools such as
# uvicorn can discover it without calling create_app manually.
app = create_app()
