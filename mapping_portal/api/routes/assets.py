"""Front-end asset routes.

Served outside ``/api/v1`` and without authentication: the login page
itself needs the bundles.
"""

from fastapi import APIRouter, Response

from mapping_portal.api.deps import Services
from mapping_portal.assets import MEDIA_TYPES, render_error
from mapping_portal.exceptions import AssetBuildError

router = APIRouter(prefix="/assets", tags=["Assets"])


@router.get("/{project}/{kind}")
async def get_asset(project: str, kind: str, services: Services) -> Response:
    """Return the CSS or JS bundle, or the compiled templates (``soy``), of a project.

    Build failures come back as a stylesheet or script that displays the
    error, with status 500.
    """
    project, kind = services.assets.check(project, kind)
    media_type = MEDIA_TYPES[kind]
    try:
        content = await services.assets.build(project, kind)
    except AssetBuildError as e:
        return Response(
            content=render_error(kind, str(e)),
            status_code=AssetBuildError.status_code,
            media_type=media_type,
        )
    return Response(content=content, media_type=media_type)
