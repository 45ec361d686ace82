"""Unit tests for the project service.

Projects are saved as whole workflow sets; every change opens a new
project version while the history stays readable.
"""

from unittest.mock import patch

import pytest

from mapping_portal.dal import ProjectRepository, WorkflowRepository, WorkflowSpec
from mapping_portal.exceptions import (
    ForbiddenError,
    NotFoundError,
    ValidationError,
    VersionConflictError,
)
from mapping_portal.services import AuthContext, ProjectService
from mapping_portal.storage import Database

BUFFER = '{"type": "buffer", "params": {"distance": 10}}'
CLIP = '{"type": "clip", "sources": []}'
RASTER = '{"type": "gdal_source", "params": {"channel": 0}}'


def _specs(**graphs: str) -> list[WorkflowSpec]:
    return [WorkflowSpec(name, graph) for name, graph in graphs.items()]


class TestProjectPut:
    async def test_create_and_read(self, project_service: ProjectService, alice_context: AuthContext):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER, b=CLIP))

        workflows = await project_service.get_at(alice_context, project_id)

        assert sorted(workflows, key=lambda w: w.name) == _specs(a=BUFFER, b=CLIP)
        listed = await project_service.list(alice_context)
        assert [(s.id, s.name) for s in listed] == [(project_id, "rivers")]

    async def test_identical_put_is_noop(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        first = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        second = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))

        assert first == second
        assert len(await project_service.get_versions(alice_context, first)) == 1

    async def test_changed_put_opens_new_version(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        again = await project_service.put(alice_context, "rivers", _specs(a=BUFFER, b=CLIP))

        assert again == project_id
        versions = await project_service.get_versions(alice_context, project_id)
        assert len(versions) == 2
        assert versions[0].changed > versions[1].changed

    async def test_unchanged_workflow_keeps_row(
        self,
        database: Database,
        project_service: ProjectService,
        alice_context: AuthContext,
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER, b=CLIP))
        async with database.session() as session:
            before = {w.name: w for w in await WorkflowRepository(session).list_current(project_id)}

        await project_service.put(alice_context, "rivers", _specs(a=BUFFER, b=RASTER))

        async with database.session() as session:
            repo = WorkflowRepository(session)
            after = {w.name: w for w in await repo.list_current(project_id)}
            b_history = await repo.list_versions(project_id, before["b"].id)

        assert after["a"].row_id == before["a"].row_id
        assert after["b"].id == before["b"].id
        assert after["b"].row_id != before["b"].row_id
        assert [w.graph for w in b_history] == [RASTER, CLIP]

    async def test_at_most_one_open_project_row(
        self,
        database: Database,
        project_service: ProjectService,
        alice_context: AuthContext,
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        for graph in (CLIP, RASTER, BUFFER):
            await project_service.put(alice_context, "rivers", _specs(a=graph))

        async with database.session() as session:
            rows = await ProjectRepository(session).list_versions(alice_context.user_id, project_id)
        assert len(rows) == 4
        assert sum(1 for r in rows if r.is_open) == 1
        # Windows of consecutive versions touch without overlapping
        for newer, older in zip(rows, rows[1:], strict=False):
            assert older.valid_to == newer.valid_from

    async def test_empty_workflow_set(self, project_service: ProjectService, alice_context: AuthContext):
        project_id = await project_service.put(alice_context, "empty", [])
        assert await project_service.get_at(alice_context, project_id) == []

    async def test_duplicate_workflow_names_rejected(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        with pytest.raises(ValidationError, match="Duplicate"):
            await project_service.put(
                alice_context, "rivers", [WorkflowSpec("a", BUFFER), WorkflowSpec("a", CLIP)]
            )

    async def test_blank_project_name_rejected(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        with pytest.raises(ValidationError):
            await project_service.put(alice_context, " ", _specs(a=BUFFER))

    async def test_guest_may_not_save(self, project_service: ProjectService):
        with pytest.raises(ForbiddenError):
            await project_service.put(AuthContext.guest(), "rivers", _specs(a=BUFFER))

    async def test_projects_are_per_user(
        self,
        project_service: ProjectService,
        alice_context: AuthContext,
        bob_context: AuthContext,
    ):
        alice_id = await project_service.put(alice_context, "shared name", _specs(a=BUFFER))
        bob_id = await project_service.put(bob_context, "shared name", _specs(a=CLIP))

        assert alice_id != bob_id
        with pytest.raises(NotFoundError):
            await project_service.get_at(bob_context, alice_id)
        with pytest.raises(NotFoundError):
            await project_service.get_versions(bob_context, alice_id)


class TestProjectHistory:
    async def test_get_at_past_version(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        await project_service.put(alice_context, "rivers", _specs(a=CLIP, b=RASTER))

        versions = await project_service.get_versions(alice_context, project_id)
        first, latest = versions[-1], versions[0]

        old = await project_service.get_at(alice_context, project_id, first.changed.isoformat())
        new = await project_service.get_at(alice_context, project_id, latest.changed.isoformat())

        assert old == _specs(a=BUFFER)
        assert sorted(new, key=lambda w: w.name) == _specs(a=CLIP, b=RASTER)
        assert await project_service.get_at(alice_context, project_id, "latest") == new

    async def test_before_creation_not_found(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))

        with pytest.raises(NotFoundError):
            await project_service.get_at(alice_context, project_id, "2000-01-01T00:00:00Z")

    async def test_bad_timestamp(self, project_service: ProjectService, alice_context: AuthContext):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))

        with pytest.raises(ValidationError):
            await project_service.get_at(alice_context, project_id, "last tuesday")

    async def test_unknown_project(self, project_service: ProjectService, alice_context: AuthContext):
        with pytest.raises(NotFoundError):
            await project_service.get_versions(alice_context, "does-not-exist")
        with pytest.raises(NotFoundError):
            await project_service.get_at(alice_context, "does-not-exist")


class TestProjectDelete:
    async def test_delete_hides_project_but_keeps_history(
        self,
        database: Database,
        project_service: ProjectService,
        alice_context: AuthContext,
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER, b=CLIP))
        created = (await project_service.get_versions(alice_context, project_id))[0].changed

        await project_service.delete(alice_context, project_id)

        assert await project_service.list(alice_context) == []
        with pytest.raises(NotFoundError):
            await project_service.get_at(alice_context, project_id)
        past = await project_service.get_at(alice_context, project_id, created.isoformat())
        assert len(past) == 2
        async with database.session() as session:
            assert await WorkflowRepository(session).list_current(project_id) == []

    async def test_delete_twice_not_found(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        await project_service.delete(alice_context, project_id)

        with pytest.raises(NotFoundError):
            await project_service.delete(alice_context, project_id)

    async def test_recreate_after_delete_keeps_identity(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        await project_service.delete(alice_context, project_id)

        again = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))

        assert again == project_id
        assert len(await project_service.get_versions(alice_context, project_id)) == 2
        assert await project_service.get_at(alice_context, project_id) == _specs(a=BUFFER)

    async def test_guest_may_not_delete(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        with pytest.raises(ForbiddenError):
            await project_service.delete(AuthContext.guest(), project_id)


class TestProjectConflicts:
    async def test_stale_close_is_retried(
        self, project_service: ProjectService, alice_context: AuthContext
    ):
        project_id = await project_service.put(alice_context, "rivers", _specs(a=BUFFER))
        original = ProjectRepository.close_version
        calls = []

        async def flaky_close(self, row, at):
            calls.append(row.row_id)
            if len(calls) == 1:
                return False
            return await original(self, row, at)

        with patch.object(ProjectRepository, "close_version", flaky_close):
            saved = await project_service.put(alice_context, "rivers", _specs(a=CLIP))

        assert saved == project_id
        assert len(calls) == 2
        assert await project_service.get_at(alice_context, project_id) == _specs(a=CLIP)

    async def test_conflict_escapes_after_retries(
        self, database: Database, alice_context: AuthContext
    ):
        service = ProjectService(database, max_attempts=2)
        await service.put(alice_context, "rivers", _specs(a=BUFFER))

        async def always_stale(self, row, at):
            return False

        with patch.object(ProjectRepository, "close_version", always_stale):
            with pytest.raises(VersionConflictError):
                await service.put(alice_context, "rivers", _specs(a=CLIP))

        listed = await service.list(alice_context)
        assert len(listed) == 1
