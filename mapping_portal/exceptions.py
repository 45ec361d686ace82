"""Portal exception hierarchy.

Base exceptions for all application layers with correlation ID support.
Each class carries the HTTP status and the machine-readable code used by
the API error handler.

Usage:
    from mapping_portal.exceptions import NotFoundError

    if row is None:
        raise NotFoundError(f"Script {script_id} not found")
"""

import uuid


class PortalError(Exception):
    """Base exception for all portal application errors.

    Carries a correlation_id for tracing errors across layers.
    """

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str, *, correlation_id: str | None = None):
        self.correlation_id = correlation_id or str(uuid.uuid4())
        super().__init__(message)


class InvalidCredentialsError(PortalError):
    """Login with an unknown user name or a wrong password."""

    status_code = 401
    error_code = "invalid_credentials"


class UnauthorizedError(PortalError):
    """Missing, malformed or stale session credentials."""

    status_code = 401
    error_code = "unauthorized"


class ForbiddenError(PortalError):
    """Authenticated, but the capability tier does not allow the operation."""

    status_code = 403
    error_code = "forbidden"


class NotFoundError(PortalError):
    """Unknown entity, version or catalog entry."""

    status_code = 404
    error_code = "not_found"


class ValidationError(PortalError):
    """Errors from input validation (beyond Pydantic)."""

    status_code = 400
    error_code = "validation_error"


class StorageError(PortalError):
    """Transaction or connection failure in the relational store."""

    status_code = 500
    error_code = "storage_error"


class VersionConflictError(StorageError):
    """A concurrent writer changed the open version first.

    Raised inside a versioning transaction; services retry on it and only
    let it escape once the retry budget is spent.
    """

    status_code = 409
    error_code = "version_conflict"


class CatalogReadError(PortalError):
    """A catalog directory could not be read."""

    status_code = 500
    error_code = "catalog_read_error"


class AssetBuildError(PortalError):
    """Front-end asset assembly or template compilation failed."""

    status_code = 500
    error_code = "asset_build_error"


class UpstreamError(PortalError):
    """Errors from external HTTP services (GFBio portal)."""

    status_code = 502
    error_code = "upstream_error"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        correlation_id: str | None = None,
    ):
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message, correlation_id=correlation_id)


class ConfigurationError(PortalError):
    """Errors from application configuration."""

    status_code = 500
    error_code = "configuration_error"
