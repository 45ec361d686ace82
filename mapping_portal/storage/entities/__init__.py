"""Database entity models.

All SQLAlchemy ORM models for the mapping portal.
"""

from mapping_portal.storage.entities.project import Project, Workflow
from mapping_portal.storage.entities.script import Script
from mapping_portal.storage.entities.user import User

__all__ = [
    "Project",
    "Script",
    "User",
    "Workflow",
]
