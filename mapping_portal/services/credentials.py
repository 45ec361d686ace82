"""Credential store: password checks, session token issue and rotation.

Passwords are stored as salted bcrypt hashes. Session tokens are opaque
random strings; each user holds at most one, so a new login invalidates
the previous session.
"""

import logging
import secrets
from dataclasses import dataclass
from functools import cache

import bcrypt
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from mapping_portal.dal.users import UserRepository
from mapping_portal.exceptions import (
    InvalidCredentialsError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from mapping_portal.services.authenticator import GUEST_ID
from mapping_portal.storage import Database
from mapping_portal.storage.entities import User

logger = logging.getLogger(__name__)

GUEST_NAME = "guest"
GUEST_PASSWORD = "guest"
GUEST_UI = "previews"

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt.

    Raises:
        ValidationError: If the password is empty or longer than bcrypt accepts
    """
    encoded = password.encode()
    if not encoded:
        raise ValidationError("Password must not be empty")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode()


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Malformed stored hash or over-long password
        return False


@cache
def _dummy_hash() -> str:
    return bcrypt.hashpw(b"unused-password", bcrypt.gensalt()).decode()


def generate_session_token() -> str:
    """Mint an opaque session token."""
    return secrets.token_urlsafe(32)


@dataclass(frozen=True, slots=True)
class LoginResult:
    """Outcome of a successful login."""

    user_id: int
    token: str
    ui: str


class CredentialStore:
    """Validates credentials and manages the per-user session token."""

    def __init__(self, database: Database, *, guest_enabled: bool = True):
        self.database = database
        self.guest_enabled = guest_enabled

    async def login(self, username: str, password: str) -> LoginResult:
        """Validate a username/password pair and issue a new session token.

        The user name is trimmed and matched case-insensitively; the
        password is compared verbatim, surrounding whitespace included. The
        guest/guest pair returns the guest principal with a token that is
        never stored.

        Args:
            username: Login name as typed
            password: Plain-text password

        Returns:
            LoginResult with principal id, token and UI profile

        Raises:
            InvalidCredentialsError: Unknown user or wrong password
            StorageError: If the store is unavailable
        """
        username = username.strip()

        if (
            self.guest_enabled
            and username.lower() == GUEST_NAME
            and secrets.compare_digest(password.encode(), GUEST_PASSWORD.encode())
        ):
            logger.info("Guest login")
            return LoginResult(user_id=GUEST_ID, token=generate_session_token(), ui=GUEST_UI)

        try:
            async with self.database.transaction() as session:
                repo = UserRepository(session)
                user = await repo.get_by_name(username) if username else None

                if user is None:
                    # Same cost as a real check so unknown names are not revealed by timing
                    verify_password(password, _dummy_hash())
                    raise InvalidCredentialsError("Invalid username or password")
                if not verify_password(password, user.password_hash):
                    raise InvalidCredentialsError("Invalid username or password")

                token = generate_session_token()
                await repo.set_session_token(user.id, token)
                result = LoginResult(user_id=user.id, token=token, ui=user.ui)
        except SQLAlchemyError as e:
            raise StorageError(f"Login failed: {e}") from e

        logger.info("User %s logged in", result.user_id)
        return result

    async def logout(self, user_id: int) -> None:
        """Clear the stored session token of a user."""
        if user_id == GUEST_ID:
            return
        try:
            async with self.database.transaction() as session:
                await UserRepository(session).set_session_token(user_id, None)
        except SQLAlchemyError as e:
            raise StorageError(f"Logout failed: {e}") from e
        logger.info("User %s logged out", user_id)

    async def create_user(
        self,
        name: str,
        password: str,
        *,
        display_name: str | None = None,
        ui: str = "default",
    ) -> User:
        """Create a user account with a hashed password.

        Raises:
            ValidationError: Empty, reserved or already used name, or bad password
        """
        name = name.strip()
        if not name:
            raise ValidationError("User name must not be empty")
        if name.lower() == GUEST_NAME:
            raise ValidationError(f"User name '{name}' is reserved")
        password_hash = hash_password(password)

        try:
            async with self.database.transaction() as session:
                repo = UserRepository(session)
                if await repo.get_by_name(name) is not None:
                    raise ValidationError(f"User '{name}' already exists")
                user = await repo.create(
                    name, password_hash, display_name=display_name, ui=ui
                )
        except IntegrityError as e:
            raise ValidationError(f"User '{name}' already exists") from e
        except SQLAlchemyError as e:
            raise StorageError(f"Could not create user: {e}") from e

        logger.info("Created user %s (%s)", user.id, user.name)
        return user

    async def set_password(self, name: str, password: str) -> None:
        """Replace the password of a user and end their session.

        Raises:
            NotFoundError: Unknown user name
        """
        password_hash = hash_password(password)
        try:
            async with self.database.transaction() as session:
                repo = UserRepository(session)
                user = await repo.get_by_name(name.strip())
                if user is None:
                    raise NotFoundError(f"User '{name}' not found")
                await repo.set_password_hash(user.id, password_hash)
        except SQLAlchemyError as e:
            raise StorageError(f"Could not set password: {e}") from e
        logger.info("Password changed for user %s", user.id)
