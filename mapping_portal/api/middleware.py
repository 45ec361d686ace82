"""Request tracing middleware for FastAPI.

Logs request method, path, status code, duration, and correlation ID.
"""

import time
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = structlog.get_logger()


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Middleware that writes one structured log line per request."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Process request and log tracing information.

        Args:
            request: FastAPI request object
            call_next: Next middleware/handler in the chain

        Returns:
            Response from the next handler
        """
        # Lazy import to avoid circular dependency
        from mapping_portal.api.main import get_correlation_id

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.error(
                "request_error",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                correlation_id=get_correlation_id(),
                error_type=type(e).__name__,
                exc_info=e,
            )
            # Re-raise to let exception handlers process it
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round(duration_ms, 2),
            correlation_id=get_correlation_id(),
        )
        return response
