"""Project service: versioned projects and their workflows."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from mapping_portal.dal.projects import ProjectRepository, WorkflowRepository, WorkflowSpec
from mapping_portal.exceptions import NotFoundError, ValidationError, VersionConflictError
from mapping_portal.services.authenticator import AuthContext
from mapping_portal.services.versioning import (
    VersionedService,
    VersionSummary,
    next_instant,
    parse_point_in_time,
    validate_name,
)

logger = logging.getLogger(__name__)


def validate_workflows(workflows: Sequence[WorkflowSpec]) -> list[WorkflowSpec]:
    """Check a submitted workflow set.

    Raises:
        ValidationError: Bad or duplicate workflow names
    """
    seen: set[str] = set()
    for workflow in workflows:
        validate_name(workflow.name, "Workflow")
        if workflow.name in seen:
            raise ValidationError(f"Duplicate workflow name '{workflow.name}'")
        seen.add(workflow.name)
    return list(workflows)


class ProjectService(VersionedService):
    """List, read, save and delete the projects of the requesting user."""

    async def list(self, context: AuthContext) -> list[VersionSummary]:
        """List the user's live projects ordered by name."""

        async def op(session: AsyncSession) -> list[VersionSummary]:
            rows = await ProjectRepository(session).list_current(context.user_id)
            return [VersionSummary.of(row) for row in rows]

        return await self._read(op)

    async def get_versions(self, context: AuthContext, project_id: str) -> list[VersionSummary]:
        """List all versions of a project, newest first.

        Raises:
            NotFoundError: Unknown project
        """

        async def op(session: AsyncSession) -> list[VersionSummary]:
            rows = await ProjectRepository(session).list_versions(context.user_id, project_id)
            return [VersionSummary.of(row) for row in rows]

        versions = await self._read(op)
        if not versions:
            raise NotFoundError(f"Project {project_id} not found")
        return versions

    async def get_at(
        self,
        context: AuthContext,
        project_id: str,
        point_in_time: str | None = None,
    ) -> list[WorkflowSpec]:
        """Read the workflows of a project as they were at an instant.

        Args:
            context: Requesting principal
            project_id: Project identity
            point_in_time: ISO timestamp, or None/"latest" for the live version

        Raises:
            ValidationError: Unparseable timestamp
            NotFoundError: No version of the project valid at that instant
        """
        at = parse_point_in_time(point_in_time)

        async def op(session: AsyncSession) -> list[WorkflowSpec] | None:
            projects = ProjectRepository(session)
            workflows = WorkflowRepository(session)
            if at is None:
                project = await projects.get_current(context.user_id, project_id)
                if project is None:
                    return None
                rows = await workflows.list_current(project.id)
            else:
                project = await projects.get_at(context.user_id, project_id, at)
                if project is None:
                    return None
                rows = await workflows.list_at(project.id, at)
            return [WorkflowSpec(name=row.name, graph=row.graph) for row in rows]

        result = await self._read(op)
        if result is None:
            raise NotFoundError(f"Project {project_id} has no version at {point_in_time or 'latest'}")
        return result

    async def put(
        self,
        context: AuthContext,
        name: str,
        workflows: Sequence[WorkflowSpec],
    ) -> str:
        """Save a project under ``name`` with exactly ``workflows``.

        Creates the project on first use, does nothing when the live
        version already has the same workflow set, and otherwise opens a
        new version while keeping unchanged workflows.

        Returns:
            Project identity

        Raises:
            ForbiddenError: Guest session
            ValidationError: Bad project or workflow names
            VersionConflictError: Lost every retry against concurrent writers
        """
        context.require_writer()
        validate_name(name, "Project")
        specs = validate_workflows(workflows)

        async def op(session: AsyncSession) -> str:
            projects = ProjectRepository(session)
            workflow_repo = WorkflowRepository(session)

            latest = await projects.get_latest_by_name(context.user_id, name, lock=True)
            if (
                latest is not None
                and latest.is_open
                and await workflow_repo.matches_current(latest.id, specs)
            ):
                logger.debug("Project %s unchanged", latest.id)
                return latest.id

            at = next_instant(latest)
            if latest is not None and latest.is_open:
                if not await projects.close_version(latest, at):
                    raise VersionConflictError(f"Project {latest.id} was closed concurrently")

            values = {"user_id": context.user_id, "name": name, "valid_from": at}
            if latest is not None:
                values["id"] = latest.id
            project = await projects.add_version(**values)

            reconciled = await workflow_repo.reconcile(project.id, specs, at)
            logger.info(
                "Project %s saved for user %s (workflows kept=%d closed=%d opened=%d)",
                project.id,
                context.user_id,
                reconciled.kept,
                reconciled.closed,
                reconciled.opened,
            )
            return project.id

        return await self._write(op, description=f"Saving project '{name}'")

    async def delete(self, context: AuthContext, project_id: str) -> None:
        """Close the live version of a project and all of its workflows.

        Raises:
            ForbiddenError: Guest session
            NotFoundError: No live version
        """
        context.require_writer()

        async def op(session: AsyncSession) -> None:
            projects = ProjectRepository(session)
            current = await projects.get_current(context.user_id, project_id)
            if current is None:
                raise NotFoundError(f"Project {project_id} not found")

            at = next_instant(current)
            if not await projects.close_version(current, at):
                raise VersionConflictError(f"Project {project_id} was closed concurrently")
            closed = await WorkflowRepository(session).close_all_current(project_id, at)
            logger.info("Project %s deleted (%d workflows closed)", project_id, closed)

        await self._write(op, description=f"Deleting project {project_id}")
