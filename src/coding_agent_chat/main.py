"""Coding Agent Chat - FastAPI application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
import structlog

from . import routers
from .config import Settings, get_settings
from .container import AppContainer, build_container
from .errors import CodingAgentError
from .logging_config import setup_logging

logger = structlog.get_logger()


def create_app(
    settings: Settings | None = None,
    container: AppContainer | None = None,
) -> FastAPI:
    """Build the application.

    A container passed in (tests) is used as is; otherwise one is built from
    settings on startup.
    """
    settings = settings or (container.settings if container else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        setup_logging(
            service_name=settings.service_name,
            log_format=settings.log_format,
            log_level=settings.log_level,
        )
        if getattr(app.state, "container", None) is None:
            app.state.container = build_container(settings)
        logger.info("app_started", projects_root=str(settings.projects_root))
        yield
        await app.state.container.shutdown()
        logger.info("app_stopped")

    app = FastAPI(
        title="Coding Agent Chat",
        description="Chat with a coding agent and run the projects it writes",
        version="0.1.0",
        lifespan=lifespan,
    )
    if container is not None:
        app.state.container = container

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )
    app.middleware("http")(correlation_middleware)
    register_exception_handlers(app)

    app.include_router(routers.health.router)
    app.include_router(routers.conversations.router, prefix="/api")
    app.include_router(routers.chat.router, prefix="/api")
    app.include_router(routers.projects.router, prefix="/api")

    if settings.static_dir.is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")

    return app


async def correlation_middleware(request: Request, call_next):
    correlation_id = request.headers.get("X-Correlation-ID", f"req_{uuid.uuid4().hex[:8]}")
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        correlation_id=correlation_id, method=request.method, path=request.url.path
    )

    start = time.time()

    try:
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000

        if response.status_code >= 500:  # noqa: PLR2004
            logger.error(
                "http_request_failed",
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2),
            )
        else:
            logger.info(
                "http_request", status_code=response.status_code, duration_ms=round(duration_ms, 2)
            )

        return response
    except Exception as e:
        duration_ms = (time.time() - start) * 1000
        logger.error(
            "http_request_exception",
            error=str(e),
            error_type=type(e).__name__,
            duration_ms=round(duration_ms, 2),
            exc_info=True,
        )
        raise
    finally:
        structlog.contextvars.clear_contextvars()


def register_exception_handlers(app: FastAPI) -> None:
    """Every error leaves the API as ``{"error": message}``."""

    @app.exception_handler(CodingAgentError)
    async def handle_app_error(request: Request, exc: CodingAgentError) -> JSONResponse:
        if exc.status_code >= 500:  # noqa: PLR2004
            logger.error("request_error", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc)})

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        details = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in exc.errors()
        )
        return JSONResponse(status_code=400, content={"error": details or "Invalid request"})

    @app.exception_handler(OSError)
    async def handle_os_error(request: Request, exc: OSError) -> JSONResponse:
        logger.error("filesystem_error", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_error", error=str(exc), error_type=type(exc).__name__)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc) or type(exc).__name__},
        )


app = create_app()
