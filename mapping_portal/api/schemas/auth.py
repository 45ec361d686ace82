"""Authentication schemas."""

from pydantic import BaseModel, Field

from mapping_portal.api.schemas.base import CamelModel
from mapping_portal.services.authenticator import CapabilityTier


class LoginRequest(BaseModel):
    """Login request body."""

    username: str = Field(max_length=100)
    password: str = Field(max_length=128)


class LoginResponse(CamelModel):
    """Principal id and session token to present on later requests."""

    user_id: int
    token: str
    ui: str


class SessionResponse(CamelModel):
    """Who the current session belongs to."""

    user_id: int
    tier: CapabilityTier
