"""Script service: versioned user scripts."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from mapping_portal.dal.scripts import ScriptRepository, ScriptSpec
from mapping_portal.exceptions import NotFoundError, VersionConflictError
from mapping_portal.services.authenticator import AuthContext
from mapping_portal.services.versioning import (
    VersionedService,
    VersionSummary,
    next_instant,
    parse_point_in_time,
    validate_name,
)

logger = logging.getLogger(__name__)


class ScriptService(VersionedService):
    """List, read, save and delete the scripts of the requesting user."""

    async def list(self, context: AuthContext) -> list[VersionSummary]:
        async def op(session: AsyncSession) -> list[VersionSummary]:
            rows = await ScriptRepository(session).list_current(context.user_id)
            return [VersionSummary.of(row) for row in rows]

        return await self._read(op)

    async def get_versions(self, context: AuthContext, script_id: str) -> list[VersionSummary]:
        async def op(session: AsyncSession) -> list[VersionSummary]:
            rows = await ScriptRepository(session).list_versions(context.user_id, script_id)
            return [VersionSummary.of(row) for row in rows]

        versions = await self._read(op)
        if not versions:
            raise NotFoundError(f"Script {script_id} not found")
        return versions

    async def get_at(
        self,
        context: AuthContext,
        script_id: str,
        point_in_time: str | None = None,
    ) -> ScriptSpec:
        """Read a script as it was at an instant (None/"latest" for live).

        Raises:
            ValidationError: Unparseable timestamp
            NotFoundError: No version valid at that instant
        """
        at = parse_point_in_time(point_in_time)

        async def op(session: AsyncSession) -> ScriptSpec | None:
            repo = ScriptRepository(session)
            if at is None:
                row = await repo.get_current(context.user_id, script_id)
            else:
                row = await repo.get_at(context.user_id, script_id, at)
            if row is None:
                return None
            return ScriptSpec(code=row.code, result_type=row.result_type)

        result = await self._read(op)
        if result is None:
            raise NotFoundError(f"Script {script_id} has no version at {point_in_time or 'latest'}")
        return result

    async def put(self, context: AuthContext, name: str, spec: ScriptSpec) -> str:
        """Save a script under ``name``.

        Returns:
            Script identity (stable across versions)

        Raises:
            ForbiddenError: Guest session
            ValidationError: Bad script name
            VersionConflictError: Lost every retry against concurrent writers
        """
        context.require_writer()
        validate_name(name, "Script")

        async def op(session: AsyncSession) -> str:
            repo = ScriptRepository(session)
            latest = await repo.get_latest_by_name(context.user_id, name, lock=True)
            if latest is not None and latest.is_open and spec.matches(latest):
                return latest.id

            at = next_instant(latest)
            if latest is not None and latest.is_open:
                if not await repo.close_version(latest, at):
                    raise VersionConflictError(f"Script {latest.id} was closed concurrently")

            values = {
                "user_id": context.user_id,
                "name": name,
                "code": spec.code,
                "result_type": spec.result_type,
                "valid_from": at,
            }
            if latest is not None:
                values["id"] = latest.id
            script = await repo.add_version(**values)
            logger.info("Script %s saved for user %s", script.id, context.user_id)
            return script.id

        return await self._write(op, description=f"Saving script '{name}'")

    async def delete(self, context: AuthContext, script_id: str) -> None:
        """Close the live version of a script.

        Raises:
            ForbiddenError: Guest session
            NotFoundError: No live version
        """
        context.require_writer()

        async def op(session: AsyncSession) -> None:
            repo = ScriptRepository(session)
            current = await repo.get_current(context.user_id, script_id)
            if current is None:
                raise NotFoundError(f"Script {script_id} not found")
            if not await repo.close_version(current, next_instant(current)):
                raise VersionConflictError(f"Script {script_id} was closed concurrently")
            logger.info("Script %s deleted", script_id)

        await self._write(op, description=f"Deleting script {script_id}")
