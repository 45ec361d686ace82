"""Project and workflow repositories.

Projects are versioned per user; workflows are versioned per project and
reconciled against the submitted workflow set on every project save.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select

from mapping_portal.dal.versioned import VersionedRepository
from mapping_portal.exceptions import VersionConflictError
from mapping_portal.storage.entities import Project, Workflow
from mapping_portal.storage.models import new_identity


@dataclass(frozen=True, slots=True)
class WorkflowSpec:
    """A workflow as submitted in a project save."""

    name: str
    graph: str


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """What a workflow reconciliation did."""

    kept: int
    closed: int
    opened: int

    @property
    def changed(self) -> bool:
        return bool(self.closed or self.opened)


class ProjectRepository(VersionedRepository[Project]):
    """Repository for user-owned project versions."""

    model = Project
    owner_field = "user_id"


class WorkflowRepository(VersionedRepository[Workflow]):
    """Repository for workflow versions scoped to a project identity."""

    model = Workflow
    owner_field = "project_id"

    async def identities_by_name(self, project_id: str, names: Iterable[str]) -> dict[str, str]:
        """Map workflow names to the identity they had in any earlier version.

        Args:
            project_id: Parent project identity
            names: Workflow names to look up

        Returns:
            Dict of name -> workflow identity (latest wins)
        """
        names = list(names)
        if not names:
            return {}
        result = await self.session.execute(
            select(Workflow.name, Workflow.id)
            .where(Workflow.project_id == project_id, Workflow.name.in_(names))
            .order_by(Workflow.valid_from, Workflow.row_id)
        )
        return {name: identity for name, identity in result.all()}

    async def matches_current(self, project_id: str, specs: Sequence[WorkflowSpec]) -> bool:
        """Check whether the open workflows equal the submitted set exactly."""
        current = await self.list_current(project_id)
        if len(current) != len(specs):
            return False
        return {(w.name, w.graph) for w in current} == {(s.name, s.graph) for s in specs}

    async def reconcile(
        self,
        project_id: str,
        specs: Sequence[WorkflowSpec],
        at: datetime,
    ) -> ReconcileResult:
        """Bring the open workflows of a project in line with ``specs``.

        Open workflows whose (name, graph) pair is submitted again stay
        untouched, keeping their row and history. Every other open workflow
        is closed at ``at``. Submitted workflows without an unchanged match
        are inserted, reusing the identity of an earlier workflow with the
        same name in this project.

        Args:
            project_id: Parent project identity
            specs: Submitted workflows (names unique)
            at: Timestamp used for closing and opening rows

        Returns:
            Counts of kept, closed and opened workflows

        Raises:
            VersionConflictError: If an open workflow was closed concurrently
        """
        remaining = {spec.name: spec for spec in specs}
        kept = closed = 0

        for row in await self.list_current(project_id):
            spec = remaining.get(row.name)
            if spec is not None and spec.graph == row.graph:
                del remaining[row.name]
                kept += 1
                continue
            if not await self.close_version(row, at):
                raise VersionConflictError(
                    f"Workflow {row.id} of project {project_id} was closed concurrently"
                )
            closed += 1

        identities = await self.identities_by_name(project_id, remaining)
        for spec in remaining.values():
            self.session.add(
                Workflow(
                    id=identities.get(spec.name) or new_identity(),
                    project_id=project_id,
                    name=spec.name,
                    graph=spec.graph,
                    valid_from=at,
                )
            )
        await self.session.flush()

        return ReconcileResult(kept=kept, closed=closed, opened=len(remaining))
