"""Session authentication for FastAPI routes.

Clients present HTTP Basic credentials with the principal id as user name
and the session token as password. Routes that need a session declare a
``RequireSession`` parameter and receive the resolved AuthContext.
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from mapping_portal.api.deps import Services
from mapping_portal.exceptions import UnauthorizedError
from mapping_portal.services.authenticator import GUEST_ID, AuthContext

# Largest value of the signed 32-bit users.id column
MAX_PRINCIPAL_ID = 2**31 - 1

session_credentials = HTTPBasic(
    auto_error=False,
    description="Principal id as user name, session token as password",
)


def parse_principal_id(raw: str) -> int:
    """Parse the principal id sent as Basic user name.

    Raises:
        UnauthorizedError: If it is not the guest id or a positive id
            that fits the users table
    """
    try:
        principal_id = int(raw.strip())
    except ValueError as e:
        raise UnauthorizedError("Malformed principal id") from e
    if principal_id != GUEST_ID and not 0 < principal_id <= MAX_PRINCIPAL_ID:
        raise UnauthorizedError("Malformed principal id")
    return principal_id


async def get_auth_context(
    services: Services,
    credentials: Annotated[HTTPBasicCredentials | None, Depends(session_credentials)],
) -> AuthContext:
    """Resolve the request's session credentials into an AuthContext.

    Raises:
        UnauthorizedError: Missing, malformed or stale credentials
    """
    if credentials is None:
        raise UnauthorizedError("Session credentials required")
    principal_id = parse_principal_id(credentials.username)
    return await services.authenticator.resolve(principal_id, credentials.password)


RequireSession = Annotated[AuthContext, Depends(get_auth_context)]
