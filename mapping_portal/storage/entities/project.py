"""Project and workflow entity models.

A project is a named, user-owned container of workflows. Both are stored
as bitemporal version histories (see ``VersionedMixin``).
"""

from sqlalchemy import Index, Integer, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from mapping_portal.storage.models import Base, VersionedMixin


class Project(Base, VersionedMixin):
    """One version of a user's project.

    At most one row per (user_id, name) is open; the partial unique index
    enforces it in the database.
    """

    __tablename__ = "projects"

    user_id: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        doc="Owning user",
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Project name, unique per user among open rows",
    )

    __table_args__ = (
        Index(
            "uq_projects_open_user_name",
            "user_id",
            "name",
            unique=True,
            postgresql_where=text("valid_to IS NULL"),
            sqlite_where=text("valid_to IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Project(id={self.id!r}, name={self.name!r}, open={self.is_open})>"


class Workflow(Base, VersionedMixin):
    """One version of a workflow inside a project.

    ``graph`` holds the query graph exactly as it was submitted; it is
    interpreted only by the processing engine.
    """

    __tablename__ = "workflows"

    project_id: Mapped[str] = mapped_column(
        String(36),
        nullable=False,
        index=True,
        doc="Identity of the parent project",
    )
    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        doc="Workflow name, unique per project among open rows",
    )
    graph: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        doc="Serialized query graph document",
    )

    __table_args__ = (
        Index(
            "uq_workflows_open_project_name",
            "project_id",
            "name",
            unique=True,
            postgresql_where=text("valid_to IS NULL"),
            sqlite_where=text("valid_to IS NULL"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Workflow(id={self.id!r}, name={self.name!r}, open={self.is_open})>"
