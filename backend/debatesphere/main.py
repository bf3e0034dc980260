"""
DebateSphere - Main FastAPI Application
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .api import auth_router, coach_router, sessions_router, topics_router
from .config import settings
from .config.settings import Settings
from .core.errors import DebateError
from .core.logging_config import session_logger, setup_logging
from .middleware import RequestLoggingMiddleware
from .realtime.handlers import router as websocket_router
from .services import DebateServices, build_services

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)

_HTTP_ERROR_KINDS = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
}


def _error_response(status_code: int, kind: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"kind": kind, "message": message}},
    )


def _request_logger(request: Request) -> logging.LoggerAdapter:
    return session_logger(
        logger,
        session_id=request.path_params.get("session_id"),
        user_id=getattr(request.state, "user_id", None),
    )


def register_exception_handlers(app: FastAPI, config: Settings) -> None:
    """Translate every error into the ``{"success": false, "error": ...}`` envelope."""

    @app.exception_handler(DebateError)
    async def debate_error_handler(request: Request, exc: DebateError):
        level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
        _request_logger(request).log(
            level,
            f"{request.method} {request.url.path} failed: {exc.kind}: {exc.message}",
            extra={"extra_fields": {"error_kind": exc.kind, "details": exc.details}}
        )
        return _error_response(exc.status_code, exc.kind, exc.message)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {}
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
        _request_logger(request).warning(
            f"Request validation failed: {message}",
            extra={"extra_fields": {"error_kind": "validation_error", "error_count": len(errors)}}
        )
        return _error_response(400, "validation_error", message)

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        kind = _HTTP_ERROR_KINDS.get(exc.status_code, "http_error")
        return _error_response(exc.status_code, kind, str(exc.detail))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        _request_logger(request).error(
            f"Unhandled error on {request.method} {request.url.path}: {exc}",
            exc_info=exc,
        )
        message = str(exc) if config.debug else "Internal server error"
        return _error_response(500, "internal_error", message)


def create_app(config: Settings = settings, services: Optional[DebateServices] = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings to run with
        services: Pre-built services (tests inject theirs); built in the
            lifespan from ``config`` when None
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Lifespan context manager for startup and shutdown events."""
        setup_logging(config)

        app.state.services = services or build_services(config)
        app.state.services.sweeper.start()

        logger.info(f"Starting {config.app_name} v{config.app_version}")
        logger.info(f"Storage path: {config.local_storage_path}")
        logger.info(f"Log level: {config.log_level.upper()}")
        logger.info(f"Debug mode: {config.debug}")
        yield
        await app.state.services.shutdown()
        logger.info(f"Shutting down {config.app_name}")

    app = FastAPI(
        title=config.app_name,
        version=config.app_version,
        description="AI debate practice: timed sessions against an AI opponent with live updates and scoring",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    if config.log_api_requests:
        app.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(app, config)

    app.include_router(auth_router)
    app.include_router(topics_router)
    app.include_router(sessions_router)
    app.include_router(coach_router)
    app.include_router(websocket_router)

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "app": config.app_name,
            "version": config.app_version,
            "status": "running",
            "message": "Welcome to DebateSphere - practice debating against an AI opponent",
        }

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        services_ready = getattr(request.app.state, "services", None)
        return {
            "status": "healthy",
            "version": config.app_version,
            "realtime": services_ready.channel.stats() if services_ready else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "debatesphere.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
