"""Project schemas.

A project is saved as the list of its workflows; each workflow carries a
query graph either as JSON text or as a JSON object.
"""

from typing import Any

from pydantic import Field

from mapping_portal.api.schemas.base import CamelModel
from mapping_portal.catalog.graph import normalize_query_graph
from mapping_portal.dal.projects import WorkflowSpec


class WorkflowPayload(CamelModel):
    """Workflow as submitted in a project save."""

    name: str = Field(..., description="Workflow name, unique within the project")
    query: str | dict[str, Any] = Field(
        ...,
        description="Query graph as JSON text (stored verbatim) or as a JSON object",
    )

    def to_spec(self) -> WorkflowSpec:
        """Validate the query graph and build the stored form.

        Raises:
            ValidationError: If the query is not a query graph
        """
        return WorkflowSpec(name=self.name, graph=normalize_query_graph(self.query))


class WorkflowResponse(CamelModel):
    """Workflow of a project version; ``query`` is the stored JSON text."""

    name: str
    query: str

    @classmethod
    def from_spec(cls, spec: WorkflowSpec) -> "WorkflowResponse":
        return cls(name=spec.name, query=spec.graph)
