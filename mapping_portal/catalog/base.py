"""Catalog interface shared by data-source and example-query catalogs."""

from abc import ABC, abstractmethod
from typing import Any


class QueryGraphCatalog(ABC):
    """Read-only mapping from entry names to JSON documents."""

    @abstractmethod
    def list(self) -> dict[str, dict[str, Any]]:
        """Return every entry keyed by name.

        Raises:
            CatalogReadError: If the backing store cannot be read
        """

    @abstractmethod
    def get(self, name: str) -> dict[str, Any]:
        """Return one entry.

        Raises:
            NotFoundError: Unknown entry
            CatalogReadError: If the backing store cannot be read
        """
