"""Application services.

Each service owns its transactions and takes the request's AuthContext
explicitly.
"""

from mapping_portal.services.authenticator import (
    GUEST_ID,
    AuthContext,
    CapabilityTier,
    SessionAuthenticator,
)
from mapping_portal.services.credentials import CredentialStore, LoginResult
from mapping_portal.services.projects import ProjectService
from mapping_portal.services.scripts import ScriptService
from mapping_portal.services.versioning import VersionSummary, parse_point_in_time

__all__ = [
    "GUEST_ID",
    "AuthContext",
    "CapabilityTier",
    "CredentialStore",
    "LoginResult",
    "ProjectService",
    "ScriptService",
    "SessionAuthenticator",
    "VersionSummary",
    "parse_point_in_time",
]
