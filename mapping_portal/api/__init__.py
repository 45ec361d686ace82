"""FastAPI application factory for the mapping portal.

Provides the application factory and the lazily created singleton app.
"""

from mapping_portal.api.main import create_app, get_app

__all__ = [
    "create_app",
    "get_app",
]
