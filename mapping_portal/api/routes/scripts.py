"""Script API routes."""

from fastapi import APIRouter, Response, status

from mapping_portal.api.auth import RequireSession
from mapping_portal.api.deps import Services
from mapping_portal.api.schemas import ScriptPayload, ScriptResponse, VersionSummaryResponse

router = APIRouter(prefix="/scripts", tags=["Scripts"])


@router.get("", response_model=list[VersionSummaryResponse])
async def list_scripts(context: RequireSession, services: Services) -> list[VersionSummaryResponse]:
    """List the live scripts of the current user, ordered by name."""
    summaries = await services.scripts.list(context)
    return [VersionSummaryResponse.from_summary(s) for s in summaries]


@router.get("/{script_id}/versions", response_model=list[VersionSummaryResponse])
async def list_script_versions(
    script_id: str,
    context: RequireSession,
    services: Services,
) -> list[VersionSummaryResponse]:
    summaries = await services.scripts.get_versions(context, script_id)
    return [VersionSummaryResponse.from_summary(s) for s in summaries]


@router.get("/{script_id}/version/{timestamp}", response_model=ScriptResponse)
async def get_script_version(
    script_id: str,
    timestamp: str,
    context: RequireSession,
    services: Services,
) -> ScriptResponse:
    spec = await services.scripts.get_at(context, script_id, timestamp)
    return ScriptResponse.from_spec(spec)


@router.get("/{script_id}", response_model=ScriptResponse)
async def get_script(script_id: str, context: RequireSession, services: Services) -> ScriptResponse:
    spec = await services.scripts.get_at(context, script_id)
    return ScriptResponse.from_spec(spec)


@router.post("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def save_script(
    name: str,
    body: ScriptPayload,
    context: RequireSession,
    services: Services,
) -> Response:
    """Save a script; the script id is returned in ``X-Entity-ID``."""
    script_id = await services.scripts.put(context, name, body.to_spec())
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={"X-Entity-ID": script_id})


@router.delete("/{script_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_script(script_id: str, context: RequireSession, services: Services) -> Response:
    await services.scripts.delete(context, script_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
