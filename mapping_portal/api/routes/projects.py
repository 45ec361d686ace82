"""Project API routes.

Projects are versioned: saving a changed workflow set opens a new version
and the full history stays readable.
"""

from fastapi import APIRouter, Response, status

from mapping_portal.api.auth import RequireSession
from mapping_portal.api.deps import Services
from mapping_portal.api.schemas import (
    VersionSummaryResponse,
    WorkflowPayload,
    WorkflowResponse,
)

router = APIRouter(prefix="/projects", tags=["Projects"])


@router.get("", response_model=list[VersionSummaryResponse])
async def list_projects(context: RequireSession, services: Services) -> list[VersionSummaryResponse]:
    """List the live projects of the current user, ordered by name."""
    summaries = await services.projects.list(context)
    return [VersionSummaryResponse.from_summary(s) for s in summaries]


@router.get("/{project_id}/versions", response_model=list[VersionSummaryResponse])
async def list_project_versions(
    project_id: str,
    context: RequireSession,
    services: Services,
) -> list[VersionSummaryResponse]:
    """List every version of a project, newest first."""
    summaries = await services.projects.get_versions(context, project_id)
    return [VersionSummaryResponse.from_summary(s) for s in summaries]


@router.get("/{project_id}/version/{timestamp}", response_model=list[WorkflowResponse])
async def get_project_version(
    project_id: str,
    timestamp: str,
    context: RequireSession,
    services: Services,
) -> list[WorkflowResponse]:
    """Read the workflows of a project at an ISO timestamp (or ``latest``)."""
    workflows = await services.projects.get_at(context, project_id, timestamp)
    return [WorkflowResponse.from_spec(w) for w in workflows]


@router.get("/{project_id}", response_model=list[WorkflowResponse])
async def get_project(
    project_id: str,
    context: RequireSession,
    services: Services,
) -> list[WorkflowResponse]:
    """Read the workflows of the live project version."""
    workflows = await services.projects.get_at(context, project_id)
    return [WorkflowResponse.from_spec(w) for w in workflows]


@router.post("/{name}", status_code=status.HTTP_204_NO_CONTENT)
async def save_project(
    name: str,
    workflows: list[WorkflowPayload],
    context: RequireSession,
    services: Services,
) -> Response:
    """Save a project with exactly the given workflows.

    The project id is returned in the ``X-Entity-ID`` header.
    """
    context.require_writer()
    specs = [w.to_spec() for w in workflows]
    project_id = await services.projects.put(context, name, specs)
    return Response(status_code=status.HTTP_204_NO_CONTENT, headers={"X-Entity-ID": project_id})


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, context: RequireSession, services: Services) -> Response:
    """Delete a project; its history stays readable."""
    await services.projects.delete(context, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
