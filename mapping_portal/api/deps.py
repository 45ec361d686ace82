"""Shared FastAPI dependencies.

Provides the dependency callables that hand the application's services
to route handlers.
"""

from typing import Annotated

from fastapi import Depends, Request

from mapping_portal.container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """Return the service container built by ``create_app``."""
    return request.app.state.container


Services = Annotated[ServiceContainer, Depends(get_container)]
