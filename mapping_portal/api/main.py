"""FastAPI application configuration and setup.

Main entry point for the HTTP API with CORS, middleware,
rate limiting, and lifecycle management.
"""

import uuid
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from contextvars import ContextVar
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException

from mapping_portal import __version__
from mapping_portal.api.rate_limit import MAX_REQUEST_BODY_BYTES, build_limiter
from mapping_portal.api.routes import api_router, assets_router, login_router
from mapping_portal.container import ServiceContainer
from mapping_portal.exceptions import PortalError, UnauthorizedError
from mapping_portal.settings import Settings, get_settings
from mapping_portal.storage import Database

# Context variable for correlation ID (async-safe)
_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

# Singleton app instance
_app: FastAPI | None = None


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Startup verifies the database answers; shutdown releases pooled
    connections and HTTP clients.

    Args:
        app: FastAPI application instance

    Yields:
        None (context for application runtime)
    """
    container: ServiceContainer = app.state.container
    if container.settings.environment != "testing":
        await container.database.ping()

    yield

    await container.close()


def create_app(settings: Settings | None = None, database: Database | None = None) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        settings: Optional settings override (uses get_settings() if not provided)
        database: Optional database handle (built from settings if not provided)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = get_settings()

    app = FastAPI(
        title="Mapping Portal",
        description="Control plane of the geospatial processing platform",
        version=__version__,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.container = ServiceContainer.build(settings, database)

    # Restrict methods and headers outside development
    allowed_methods = ["*"] if settings.environment in ("development", "testing") else [
        "GET", "POST", "DELETE", "OPTIONS",
    ]
    allowed_headers = ["*"] if settings.environment in ("development", "testing") else [
        "Authorization", "Content-Type", "X-Correlation-ID",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_get_allowed_origins(settings),
        allow_credentials=True,
        allow_methods=allowed_methods,
        allow_headers=allowed_headers,
        expose_headers=["X-Correlation-ID", "X-Entity-ID"],
    )

    # Rate limiting
    limiter = build_limiter(settings)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    app.middleware("http")(_body_size_limit_middleware)
    app.middleware("http")(_security_headers_middleware)
    # Correlation ID must be set before routes run
    app.middleware("http")(_correlation_middleware)

    from mapping_portal.api.middleware import RequestTracingMiddleware

    app.add_middleware(RequestTracingMiddleware)

    # Session auth is declared per route (RequireSession)
    app.include_router(login_router(limiter, settings.login_rate_limit), prefix="/api/v1")
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(assets_router)

    _register_exception_handlers(app, settings)

    return app


def _get_allowed_origins(settings: Settings) -> list[str]:
    """Get allowed CORS origins based on environment.

    Priority:
    1. Explicit ALLOWED_ORIGINS env var (comma-separated)
    2. Environment-based defaults

    Args:
        settings: Application settings

    Returns:
        List of allowed origins
    """
    if settings.allowed_origins:
        return [o.strip() for o in settings.allowed_origins.split(",") if o.strip()]

    if settings.environment in ("development", "testing"):
        return ["*"]
    if settings.environment == "staging":
        return ["http://localhost:3000", "http://localhost:8080"]
    # Production: same origin only unless configured
    return []


async def _body_size_limit_middleware(request: Request, call_next):
    """Reject requests whose declared body exceeds MAX_REQUEST_BODY_BYTES.

    Args:
        request: FastAPI request object
        call_next: Next middleware/handler

    Returns:
        Response, or 413 if content-length exceeds the limit
    """
    content_length = request.headers.get("content-length")
    if content_length and content_length.isdigit() and int(content_length) > MAX_REQUEST_BODY_BYTES:
        return JSONResponse(
            status_code=413,
            content={
                "error": {
                    "code": 413,
                    "message": f"Request body too large. Maximum size is {MAX_REQUEST_BODY_BYTES} bytes.",
                    "type": "request_too_large",
                }
            },
        )

    return await call_next(request)


async def _security_headers_middleware(request: Request, call_next):
    """Add security-related HTTP headers to every response.

    Args:
        request: FastAPI request object
        call_next: Next middleware/handler

    Returns:
        Response with security headers
    """
    settings: Settings = request.app.state.settings
    response = await call_next(request)

    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

    if settings.environment in ("production", "staging"):
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

    # JSON API responses load nothing; asset bundles are served as-is
    if request.url.path.startswith("/api/"):
        response.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none'"
        response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate"

    return response


async def _correlation_middleware(request: Request, call_next):
    """Generate or propagate the request's correlation ID.

    Args:
        request: FastAPI request object
        call_next: Next middleware/handler in the chain

    Returns:
        Response with X-Correlation-ID header
    """
    correlation_id = request.headers.get("X-Correlation-ID") or str(uuid.uuid4())
    _correlation_id.set(correlation_id)

    response = await call_next(request)
    response.headers["X-Correlation-ID"] = correlation_id
    return response


def get_correlation_id() -> str | None:
    """Get the current request's correlation ID from context.

    Returns:
        Correlation ID string or None if not in request context
    """
    return _correlation_id.get()


def _error_response(
    status_code: int,
    message: Any,
    error_type: str,
    correlation_id: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": status_code,
                "message": message,
                "type": error_type,
                "correlation_id": correlation_id,
            }
        },
        headers={**(headers or {}), "X-Correlation-ID": correlation_id},
    )


def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Register custom exception handlers.

    Args:
        app: FastAPI application
        settings: Application settings
    """
    logger = structlog.get_logger()

    @app.exception_handler(PortalError)
    async def portal_error_handler(request: Request, exc: PortalError) -> JSONResponse:
        """Map portal errors to their status code with a correlation ID."""
        correlation_id = get_correlation_id() or exc.correlation_id
        status_code = exc.status_code

        if status_code >= 500:
            logger.error(
                "Portal error",
                error_type=exc.error_code,
                correlation_id=correlation_id,
                exc_info=exc,
            )
            # Server-side details stay in the log unless debugging
            message = str(exc) if settings.debug else f"An error occurred. Correlation ID: {correlation_id}"
        else:
            logger.info(
                "Request rejected",
                error_type=exc.error_code,
                status=status_code,
                correlation_id=correlation_id,
            )
            message = str(exc)

        headers = {"WWW-Authenticate": "Basic"} if isinstance(exc, UnauthorizedError) else None
        return _error_response(status_code, message, exc.error_code, correlation_id, headers)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        """Handle HTTP exceptions with consistent format."""
        correlation_id = get_correlation_id() or str(uuid.uuid4())
        return _error_response(
            exc.status_code, exc.detail, "http_error", correlation_id, exc.headers
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        correlation_id = get_correlation_id() or str(uuid.uuid4())
        logger.exception(
            "Unhandled exception",
            correlation_id=correlation_id,
            exc_info=exc,
        )
        detail = str(exc) if settings.debug else "Internal server error"
        return _error_response(500, detail, "internal_error", correlation_id)


def get_app() -> FastAPI:
    """Get or create the singleton FastAPI application.

    Returns:
        FastAPI application instance
    """
    global _app
    if _app is None:
        _app = create_app()
    return _app


# For uvicorn: use "mapping_portal.api.main:get_app" with --factory,
# or "mapping_portal.api.main:app" which initializes on first access.
def __getattr__(name: str) -> Any:
    """Create the app only when ``app`` is accessed, not at import time."""
    if name == "app":
        return get_app()
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
