"""User script entity model."""

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from mapping_portal.storage.models import Base, VersionedMixin


class Script(Base, VersionedMixin):
    """One version of a user-defined script and its declared result type."""

    __tablename__ = "scripts"

    user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        doc="Owning user",
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Script name, unique per user among open rows",
    )
    code: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Script source code",
    )
    result_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        doc="Declared result type tag (e.g. 'number', 'raster', 'points')",
    )

    __table_args__ = (
        Index(
            "uq_scripts_open_user_name",
            "user_id",
            "name",
            unique=True,
            postgresql_where=text("valid_to IS NULL"),
            sqlite_where=text("valid_to IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Script(id={self.id!r}, name={self.name!r}, open={self.is_open})>"
