"""Session authentication.

Turns a presented (principal id, token) pair into an explicit AuthContext
that handlers receive as a parameter.
"""

import secrets
from dataclasses import dataclass
from enum import StrEnum

from sqlalchemy.exc import SQLAlchemyError

from mapping_portal.dal.users import UserRepository
from mapping_portal.exceptions import ForbiddenError, StorageError, UnauthorizedError
from mapping_portal.storage import Database

# Principal id of the shared read-only guest; never stored
GUEST_ID = -1


class CapabilityTier(StrEnum):
    """What an authenticated principal may do."""

    GUEST = "guest"
    USER = "user"


@dataclass(frozen=True, slots=True)
class AuthContext:
    """Authentication state of one request."""

    logged_in: bool
    user_id: int
    tier: CapabilityTier

    @classmethod
    def for_user(cls, user_id: int) -> "AuthContext":
        return cls(logged_in=True, user_id=user_id, tier=CapabilityTier.USER)

    @classmethod
    def guest(cls) -> "AuthContext":
        return cls(logged_in=True, user_id=GUEST_ID, tier=CapabilityTier.GUEST)

    @property
    def is_guest(self) -> bool:
        return self.tier is CapabilityTier.GUEST

    def require_writer(self) -> None:
        """Raise ForbiddenError unless the principal may mutate data."""
        if not self.logged_in or self.is_guest:
            raise ForbiddenError("Guest sessions are read-only")


class SessionAuthenticator:
    """Checks presented session tokens against the credential store."""

    def __init__(self, database: Database, *, guest_enabled: bool = True):
        self.database = database
        self.guest_enabled = guest_enabled

    async def authenticate(self, principal_id: int, presented_token: str) -> bool:
        """Decide whether a (principal, token) pair is admitted.

        The guest principal is admitted whenever guest access is enabled.
        Any other principal is admitted iff its stored token equals the
        presented one. Has no side effects.

        Raises:
            StorageError: If the store is unavailable
        """
        if principal_id == GUEST_ID:
            return self.guest_enabled
        if not presented_token:
            return False

        try:
            async with self.database.session() as session:
                stored = await UserRepository(session).get_session_token(principal_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Session check failed: {e}") from e

        if not stored:
            return False
        return secrets.compare_digest(stored.encode(), presented_token.encode())

    async def resolve(self, principal_id: int, presented_token: str) -> AuthContext:
        """Authenticate and build the request's AuthContext.

        Raises:
            UnauthorizedError: If the pair is not admitted
        """
        if not await self.authenticate(principal_id, presented_token):
            raise UnauthorizedError("Invalid or expired session")
        if principal_id == GUEST_ID:
            return AuthContext.guest()
        return AuthContext.for_user(principal_id)
