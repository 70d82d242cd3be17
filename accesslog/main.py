"""
accesslog — demo host application.

FastAPI application factory.
Configures logging, builds the API (exception handler, health router), and
wraps it in the access-log middleware as the outermost ASGI layer so that
500 responses from FastAPI's error middleware are logged too.
"""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.types import ASGIApp

from accesslog.api import health
from accesslog.config import Settings, get_settings
from accesslog.middleware import AccessLogMiddleware

logger = logging.getLogger("accesslog")


def _configure_logging(settings: Settings) -> None:
    """Set up application logging on stdout."""
    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    fmt = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(fmt, datefmt="%Y-%m-%d %H:%M:%S"))

    root = logging.getLogger()
    root.setLevel(log_level)
    root.handlers.clear()
    root.addHandler(handler)

    # This middleware replaces the server's own access log
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup logic runs before ``yield``, shutdown logic runs after.
    """
    settings = app.state.settings
    logger.info(
        "%s v%s starting up [%s]",
        settings.app_name,
        settings.app_version,
        settings.environment,
    )
    yield
    logger.info("%s shutting down", settings.app_name)


def build_api(settings: Settings) -> FastAPI:
    """Build the FastAPI application without access logging."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="HTTP access logging in common, combined, or custom formats.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.dependency_overrides[get_settings] = lambda: settings

    # --- Exception Handlers ---
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch unhandled exceptions and return a clean 500 response."""
        logger.exception(
            "Unhandled error | %s %s | %s",
            request.method,
            request.url.path,
            str(exc),
        )
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "detail": "An unexpected error occurred. Please try again later.",
            },
        )

    # --- Routers ---
    app.include_router(health.router)

    return app


def create_app(settings: Settings | None = None, api: FastAPI | None = None) -> ASGIApp:
    """
    Build the served application: ``api`` (or a fresh one) behind the access log.

    ``ServerErrorMiddleware`` always wraps anything added with
    ``add_middleware``, so the access log sits outside FastAPI instead.
    """
    settings = settings or get_settings()
    _configure_logging(settings)

    return AccessLogMiddleware(
        api or build_api(settings),
        format=settings.access_log_format,
        stream=settings.access_log_target(),
        buffer=settings.access_log_buffer,
    )


# Module-level app instance for uvicorn
app = create_app()
