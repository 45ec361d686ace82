"""Common Pydantic schemas for API requests and responses.

Provides reusable schema definitions for consistent
API responses across all endpoints.
"""

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from mapping_portal import __version__
from mapping_portal.api.schemas.auth import LoginRequest, LoginResponse, SessionResponse
from mapping_portal.api.schemas.base import CamelModel
from mapping_portal.api.schemas.projects import WorkflowPayload, WorkflowResponse
from mapping_portal.api.schemas.scripts import ScriptPayload, ScriptResponse
from mapping_portal.api.schemas.versions import VersionSummaryResponse


class HealthStatus(StrEnum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Health check response."""

    status: HealthStatus = Field(..., description="Overall system health")
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="Health check timestamp",
    )
    version: str = Field(default=__version__, description="Application version")


__all__ = [
    "CamelModel",
    "HealthResponse",
    "HealthStatus",
    "LoginRequest",
    "LoginResponse",
    "ScriptPayload",
    "ScriptResponse",
    "SessionResponse",
    "VersionSummaryResponse",
    "WorkflowPayload",
    "WorkflowResponse",
]
