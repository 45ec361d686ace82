"""Initial schema: users, projects, workflows, scripts.

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

OPEN_ROWS = sa.text("valid_to IS NULL")


def _version_columns() -> list[sa.Column]:
    return [
        sa.Column("row_id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_to", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Create account and versioned entity tables."""
    # Users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=False),
        sa.Column("password_hash", sa.String(100), nullable=False),
        sa.Column("session_token", sa.String(128), nullable=True),
        sa.Column("ui", sa.String(50), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_users")),
    )
    op.create_index("uq_users_name_lower", "users", [sa.text("lower(name)")], unique=True)

    # Projects
    op.create_table(
        "projects",
        *_version_columns(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.PrimaryKeyConstraint("row_id", name=op.f("pk_projects")),
    )
    op.create_index(op.f("ix_projects_id"), "projects", ["id"])
    op.create_index(op.f("ix_projects_user_id"), "projects", ["user_id"])
    op.create_index(
        "uq_projects_open_user_name",
        "projects",
        ["user_id", "name"],
        unique=True,
        postgresql_where=OPEN_ROWS,
        sqlite_where=OPEN_ROWS,
    )

    # Workflows
    op.create_table(
        "workflows",
        *_version_columns(),
        sa.Column("project_id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("graph", sa.Text(), nullable=False),
        sa.PrimaryKeyConstraint("row_id", name=op.f("pk_workflows")),
    )
    op.create_index(op.f("ix_workflows_id"), "workflows", ["id"])
    op.create_index(op.f("ix_workflows_project_id"), "workflows", ["project_id"])
    op.create_index(
        "uq_workflows_open_project_name",
        "workflows",
        ["project_id", "name"],
        unique=True,
        postgresql_where=OPEN_ROWS,
        sqlite_where=OPEN_ROWS,
    )

    # Scripts
    op.create_table(
        "scripts",
        *_version_columns(),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("result_type", sa.String(50), nullable=False),
        sa.PrimaryKeyConstraint("row_id", name=op.f("pk_scripts")),
    )
    op.create_index(op.f("ix_scripts_id"), "scripts", ["id"])
    op.create_index(op.f("ix_scripts_user_id"), "scripts", ["user_id"])
    op.create_index(
        "uq_scripts_open_user_name",
        "scripts",
        ["user_id", "name"],
        unique=True,
        postgresql_where=OPEN_ROWS,
        sqlite_where=OPEN_ROWS,
    )


def downgrade() -> None:
    """Drop all portal tables."""
    op.drop_table("scripts")
    op.drop_table("workflows")
    op.drop_table("projects")
    op.drop_table("users")
