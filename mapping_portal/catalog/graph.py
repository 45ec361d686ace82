"""Query graph documents.

The portal never evaluates query graphs; it only checks that a document
has the shape of an operator node and keeps the text exactly as given.
"""

import json
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from mapping_portal.exceptions import ValidationError


class QueryGraphNode(BaseModel):
    """Root node of a query graph: an operator with parameters and sources."""

    model_config = ConfigDict(extra="allow")

    type: str = Field(min_length=1)
    params: dict[str, Any] | None = None
    sources: dict[str, Any] | list[Any] | None = None


def normalize_query_graph(query: str | Mapping[str, Any]) -> str:
    """Validate a query graph and return the text to store.

    A JSON string is stored verbatim so it round-trips byte for byte; an
    already parsed object is serialized once.

    Raises:
        ValidationError: If the document is not a JSON object with a string ``type``
    """
    if isinstance(query, str):
        try:
            document = json.loads(query)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Query is not valid JSON: {e.msg}") from e
        text = query
    elif isinstance(query, Mapping):
        document = dict(query)
        text = json.dumps(document)
    else:
        raise ValidationError("Query must be a JSON object or a JSON string")

    if not isinstance(document, dict):
        raise ValidationError("Query must be a JSON object")
    try:
        QueryGraphNode.model_validate(document)
    except PydanticValidationError as e:
        raise ValidationError(f"Query is not a query graph: {e.errors()[0]['msg']}") from e
    return text
