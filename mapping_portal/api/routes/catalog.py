"""Catalog routes: data-source descriptors and example query graphs.

Catalog reads scan and parse files on disk, so they run in a worker thread.
"""

import asyncio
from typing import Any

from fastapi import APIRouter

from mapping_portal.api.auth import RequireSession
from mapping_portal.api.deps import Services

router = APIRouter(prefix="/catalog", tags=["Catalog"])


@router.get("/sources")
async def list_sources(context: RequireSession, services: Services) -> dict[str, Any]:
    """All data-source descriptors keyed by name."""
    return await asyncio.to_thread(services.datasources.list)


@router.get("/sources/{name}")
async def get_source(name: str, context: RequireSession, services: Services) -> dict[str, Any]:
    return await asyncio.to_thread(services.datasources.get, name)


@router.get("/examples")
async def list_examples(context: RequireSession, services: Services) -> dict[str, Any]:
    """All example queries keyed by name; each has at least ``name`` and ``query``."""
    return await asyncio.to_thread(services.examples.list)


@router.get("/examples/{name}")
async def get_example(name: str, context: RequireSession, services: Services) -> dict[str, Any]:
    return await asyncio.to_thread(services.examples.get, name)
