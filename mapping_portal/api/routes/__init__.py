"""API route registration.

Aggregates the JSON API routers into a single router mounted under
``/api/v1``; the asset router is mounted at the application root.
"""

from fastapi import APIRouter

from mapping_portal.api.routes.assets import router as assets_router
from mapping_portal.api.routes.auth import login_router
from mapping_portal.api.routes.auth import router as auth_router
from mapping_portal.api.routes.catalog import router as catalog_router
from mapping_portal.api.routes.gfbio import router as gfbio_router
from mapping_portal.api.routes.projects import router as projects_router
from mapping_portal.api.routes.scripts import router as scripts_router
from mapping_portal.api.routes.system import router as system_router

# Main API router
api_router = APIRouter()

# Authentication (login is mounted per app, see login_router)
api_router.include_router(auth_router)

# Versioned entities
api_router.include_router(projects_router)
api_router.include_router(scripts_router)

# Read-only data
api_router.include_router(catalog_router)
api_router.include_router(gfbio_router)

# System
api_router.include_router(system_router)

__all__ = ["api_router", "assets_router", "login_router"]
