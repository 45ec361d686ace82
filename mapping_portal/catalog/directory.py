"""Catalog backed by a directory of ``<name>.json`` files."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from mapping_portal.catalog.base import QueryGraphCatalog
from mapping_portal.exceptions import CatalogReadError, NotFoundError

logger = logging.getLogger(__name__)

# (file name, mtime_ns, size) of every candidate file
Signature = tuple[tuple[str, int, int], ...]


class DirectoryCatalog(QueryGraphCatalog):
    """Serve the JSON files of one directory as catalog entries.

    Every ``*.json`` file becomes an entry named after its stem. Files
    that do not parse as a JSON object, or that lack one of
    ``required_keys``, are skipped with a warning. Parsed entries are
    cached until a file is added, removed or modified.
    """

    def __init__(self, path: Path | str, *, required_keys: Iterable[str] = ()):
        self.path = Path(path)
        self.required_keys = tuple(required_keys)
        self._lock = threading.Lock()
        self._signature: Signature | None = None
        self._entries: dict[str, dict[str, Any]] = {}

    def list(self) -> dict[str, dict[str, Any]]:
        return dict(self._load())

    def get(self, name: str) -> dict[str, Any]:
        entries = self._load()
        if name not in entries:
            raise NotFoundError(f"Catalog entry '{name}' not found")
        return entries[name]

    def _scan(self) -> Signature:
        try:
            files = sorted(
                p for p in self.path.iterdir() if p.suffix == ".json" and p.is_file()
            )
            return tuple((p.name, p.stat().st_mtime_ns, p.stat().st_size) for p in files)
        except OSError as e:
            raise CatalogReadError(f"Could not read catalog directory {self.path}") from e

    def _load(self) -> dict[str, dict[str, Any]]:
        signature = self._scan()
        with self._lock:
            if signature != self._signature:
                self._entries = self._parse(signature)
                self._signature = signature
                logger.debug("Loaded %d entries from %s", len(self._entries), self.path)
            return self._entries

    def _parse(self, signature: Signature) -> dict[str, dict[str, Any]]:
        entries: dict[str, dict[str, Any]] = {}
        for file_name, _, _ in signature:
            path = self.path / file_name
            try:
                document = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                logger.warning("Skipping unreadable catalog file %s: %s", path, e)
                continue
            if not isinstance(document, dict):
                logger.warning("Skipping catalog file %s: not a JSON object", path)
                continue
            missing = [key for key in self.required_keys if key not in document]
            if missing:
                logger.warning("Skipping catalog file %s: missing %s", path, ", ".join(missing))
                continue
            entries[path.stem] = document
        return entries
