"""Data access layer.

Repositories wrap an AsyncSession; transactions are owned by the caller.
"""

from mapping_portal.dal.projects import (
    ProjectRepository,
    ReconcileResult,
    WorkflowRepository,
    WorkflowSpec,
)
from mapping_portal.dal.scripts import ScriptRepository, ScriptSpec
from mapping_portal.dal.users import UserRepository
from mapping_portal.dal.versioned import VersionedRepository

__all__ = [
    "ProjectRepository",
    "ReconcileResult",
    "ScriptRepository",
    "ScriptSpec",
    "UserRepository",
    "VersionedRepository",
    "WorkflowRepository",
    "WorkflowSpec",
]
