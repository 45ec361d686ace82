"""Authentication routes.

Login issues a session token; every later request presents the principal
id and that token as HTTP Basic credentials. The login route is built per
application so it carries that application's rate limit.
"""

from fastapi import APIRouter, Request, Response, status
from slowapi import Limiter

from mapping_portal.api.auth import RequireSession
from mapping_portal.api.deps import Services
from mapping_portal.api.schemas import LoginRequest, LoginResponse, SessionResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


async def login(request: Request, body: LoginRequest, services: Services) -> LoginResponse:
    """Validate a username/password pair and start a new session.

    Any earlier session of the same user ends. ``guest``/``guest`` starts a
    read-only guest session.
    """
    result = await services.credentials.login(body.username, body.password)
    return LoginResponse(user_id=result.user_id, token=result.token, ui=result.ui)


def login_router(limiter: Limiter, limit: str) -> APIRouter:
    """Router holding the login endpoint under the given rate limit."""
    login_routes = APIRouter(prefix="/auth", tags=["Authentication"])
    login_routes.add_api_route(
        "/login",
        limiter.limit(limit)(login),
        methods=["POST"],
        response_model=LoginResponse,
    )
    return login_routes


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(context: RequireSession, services: Services) -> Response:
    """End the current session."""
    await services.credentials.logout(context.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=SessionResponse)
async def me(context: RequireSession) -> SessionResponse:
    """Describe the principal behind the presented credentials."""
    return SessionResponse(user_id=context.user_id, tier=context.tier)
