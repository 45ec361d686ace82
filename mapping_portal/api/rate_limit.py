"""Rate limiting configuration for API endpoints.

Each application builds its own Limiter from its settings, so limits and
the enabled flag never leak between app instances.

Usage in create_app:
    limiter = build_limiter(settings)
    app.state.limiter = limiter
    app.include_router(login_router(limiter, settings.login_rate_limit))
"""

from slowapi import Limiter
from starlette.requests import Request

from mapping_portal.settings import Settings


def _get_real_client_ip(request: Request) -> str:
    """Extract the real client IP, respecting X-Forwarded-For from trusted proxies.

    Args:
        request: Starlette/FastAPI request object.

    Returns:
        Client IP address string.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Leftmost entry is the client
        return forwarded_for.split(",")[0].strip()
    if request.client:
        return request.client.host
    return "127.0.0.1"


def build_limiter(settings: Settings) -> Limiter:
    """Limiter keyed on the real client IP, switched on or off from settings."""
    return Limiter(key_func=_get_real_client_ip, enabled=settings.rate_limit_enabled)


# Maximum request body size (bytes), enforced by middleware in main.py
MAX_REQUEST_BODY_BYTES = 1_048_576  # 1 MB
