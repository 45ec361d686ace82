"""GFBio portal routes."""

from typing import Any

from fastapi import APIRouter

from mapping_portal.api.auth import RequireSession
from mapping_portal.api.deps import Services

router = APIRouter(prefix="/gfbio", tags=["GFBio"])


@router.get("/baskets/{liferay_id}")
async def get_baskets(liferay_id: str, context: RequireSession, services: Services) -> dict[str, Any]:
    """Search baskets a GFBio portal user saved, reshaped for the map client."""
    baskets = await services.gfbio.get_baskets(liferay_id)
    return {"baskets": baskets}
