"""User repository.

Lookups for login and session checks, plus the atomic token update.
"""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from mapping_portal.storage.entities import User


class UserRepository:
    """Repository for user accounts and their session tokens."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: int) -> User | None:
        """Get user by principal id."""
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_name(self, name: str) -> User | None:
        """Get user by login name, ignoring case.

        Args:
            name: Login name as typed

        Returns:
            User or None
        """
        result = await self.session.execute(
            select(User).where(func.lower(User.name) == name.lower())
        )
        return result.scalar_one_or_none()

    async def get_session_token(self, user_id: int) -> str | None:
        """Get the stored session token of a user (None if unknown or logged out)."""
        result = await self.session.execute(
            select(User.session_token).where(User.id == user_id)
        )
        return result.scalar_one_or_none()

    async def set_session_token(self, user_id: int, token: str | None) -> bool:
        """Replace the session token in a single UPDATE.

        Args:
            user_id: Principal id
            token: New token, or None to log out

        Returns:
            True if the user exists
        """
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(session_token=token)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def set_password_hash(self, user_id: int, password_hash: str) -> bool:
        """Replace the password hash and end the active session."""
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(password_hash=password_hash, session_token=None)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def create(
        self,
        name: str,
        password_hash: str,
        *,
        display_name: str | None = None,
        ui: str = "default",
    ) -> User:
        """Create a user account.

        Returns:
            Created user (id assigned)
        """
        user = User(
            name=name,
            display_name=display_name or name,
            password_hash=password_hash,
            ui=ui,
        )
        self.session.add(user)
        await self.session.flush()
        return user
