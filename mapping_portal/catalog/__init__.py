"""Read-only catalogs of data-source descriptors and example query graphs."""

from mapping_portal.catalog.base import QueryGraphCatalog
from mapping_portal.catalog.directory import DirectoryCatalog
from mapping_portal.catalog.graph import QueryGraphNode, normalize_query_graph

# Keys every example query document must carry
EXAMPLE_QUERY_KEYS = ("name", "query")

__all__ = [
    "EXAMPLE_QUERY_KEYS",
    "DirectoryCatalog",
    "QueryGraphCatalog",
    "QueryGraphNode",
    "normalize_query_graph",
]
