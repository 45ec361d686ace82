"""GFBio portal response mocks.

Provides basket payloads and an httpx mock transport for testing the
basket lookup without a portal.
"""

from collections.abc import Callable
from typing import Any

import httpx

# =============================================================================
# GFBIO BASKET FIXTURES
# =============================================================================


def make_basket(
    query: str = "puma concolor",
    *,
    last_modified: Any = 1500000000000,
    selected: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build one basket as the portal's basket service returns it."""
    if selected is None:
        selected = [PANGAEA_HIT, ABCD_HIT]
    return {
        "basketId": 7,
        "userId": 42,
        "lastModifiedDate": last_modified,
        "queryJSON": [
            {
                "query": {
                    "function_score": {
                        "query": {
                            "filtered": {
                                "query": {
                                    "simple_query_string": {
                                        "query": query,
                                        "fields": ["fulltext", "citation^3"],
                                    }
                                }
                            }
                        }
                    }
                }
            }
        ],
        "basketContent": [{"selected": selected}],
    }


PANGAEA_HIT: dict[str, Any] = {
    "title": "Puma observations in the Andes",
    "authors": "Doe, J; Roe, R",
    "dataCenter": "PANGAEA",
    "metadatalink": "https://doi.pangaea.de/10.1594/PANGAEA.123456",
}

ABCD_HIT: dict[str, Any] = {
    "title": "Herbarium specimens",
    "authors": "Museum",
    "dataCenter": "BGBM",
    "metadatalink": "https://biocase.example.org/abcd/123",
}


def mock_transport(
    payload: Any = None,
    *,
    status_code: int = 200,
    on_request: Callable[[httpx.Request], None] | None = None,
) -> httpx.MockTransport:
    """Transport answering every request with ``payload`` as JSON."""

    def handler(request: httpx.Request) -> httpx.Response:
        if on_request is not None:
            on_request(request)
        return httpx.Response(status_code, json=payload)

    return httpx.MockTransport(handler)
