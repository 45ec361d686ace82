"""User account model.

Stores login credentials and the single active session token per user.
"""

from sqlalchemy import Index, Integer, String, func
from sqlalchemy.orm import Mapped, mapped_column

from mapping_portal.storage.models import Base


class User(Base):
    """Portal user with a bcrypt password hash and one active session.

    Logging in replaces ``session_token``, which ends every older session.
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Principal id presented as the HTTP Basic user name",
    )
    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Login name (matched case-insensitively)",
    )
    display_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Display name shown in UI",
    )
    password_hash: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="bcrypt hash (salt included)",
    )
    session_token: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        default=None,
        doc="Currently valid session token (NULL = logged out)",
    )
    ui: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        default="default",
        doc="Front-end profile returned at login",
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r})>"


# Case-insensitive uniqueness of login names
Index("uq_users_name_lower", func.lower(User.name), unique=True)
