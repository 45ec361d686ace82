"""SQLAlchemy base model and common mixins.

Provides reusable model infrastructure for all database entities,
including the bitemporal validity window shared by versioned entities.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from sqlalchemy import DateTime, Integer, MetaData, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Naming convention for constraints (helps with migrations)
NAMING_CONVENTION: dict[str, str] = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive values read back from backends without time zones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def new_identity() -> str:
    """Mint a fresh entity identity (UUID v4 string)."""
    return str(uuid4())


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models.

    Features:
    - Metadata with naming convention for consistent constraint names
    - Type annotation support for mapped columns
    """

    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    def to_dict(self) -> dict[str, Any]:
        """Convert model instance to dictionary.

        Returns:
            Dictionary with column names as keys and their values.
        """
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}


class VersionedMixin:
    """Mixin for entities stored as a bitemporal version history.

    Every version is its own row. Rows of one entity share ``id``; the
    surrogate ``row_id`` is the primary key. The row with
    ``valid_to IS NULL`` is the open (current) version; a closed row was
    current during ``[valid_from, valid_to)``.

    Provides:
    - row_id: surrogate primary key of the version row
    - id: stable entity identity shared by all versions
    - valid_from / valid_to: validity window (valid_to NULL = infinity)
    """

    row_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
        doc="Surrogate key of this version row",
    )
    id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        default=new_identity,
        doc="Entity identity shared by all versions (UUID v4)",
    )
    valid_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        doc="Start of the validity window (inclusive)",
    )
    valid_to: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        doc="End of the validity window (exclusive); NULL while open",
    )

    @property
    def is_open(self) -> bool:
        """Check if this row is the current version."""
        return self.valid_to is None

    @property
    def changed(self) -> datetime:
        """When this version became current, in UTC."""
        return as_utc(self.valid_from)


__all__ = [
    "Base",
    "VersionedMixin",
    "NAMING_CONVENTION",
    "as_utc",
    "new_identity",
    "utcnow",
]
