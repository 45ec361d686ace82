"""Shared test fixtures for the mapping portal.

Provides settings, a per-test SQLite database, the FastAPI app and an
HTTP client, plus ready-made user accounts and sessions.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import httpx
import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from mapping_portal.api.main import create_app
from mapping_portal.services import (
    AuthContext,
    CredentialStore,
    ProjectService,
    ScriptService,
    SessionAuthenticator,
)
from mapping_portal.settings import Settings
from mapping_portal.storage import Database
from mapping_portal.storage.entities import User
from tests.helpers.auth import TEST_PASSWORD, login, make_test_settings

# =============================================================================
# SETTINGS
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Provide test settings rooted in tmp_path."""
    return make_test_settings(tmp_path)


# =============================================================================
# DATABASE
# =============================================================================


@pytest.fixture
async def database(test_settings: Settings) -> AsyncGenerator[Database, None]:
    """Fresh SQLite database with all tables created."""
    db = Database(test_settings.database_url)
    await db.create_all()
    yield db
    await db.dispose()


# =============================================================================
# SERVICES
# =============================================================================


@pytest.fixture
def credentials(database: Database) -> CredentialStore:
    return CredentialStore(database)


@pytest.fixture
def authenticator(database: Database) -> SessionAuthenticator:
    return SessionAuthenticator(database)


@pytest.fixture
def project_service(database: Database) -> ProjectService:
    return ProjectService(database, max_attempts=3)


@pytest.fixture
def script_service(database: Database) -> ScriptService:
    return ScriptService(database, max_attempts=3)


@pytest.fixture
async def alice(credentials: CredentialStore) -> User:
    """A regular user account."""
    return await credentials.create_user("Alice", TEST_PASSWORD, display_name="Alice A.")


@pytest.fixture
async def bob(credentials: CredentialStore) -> User:
    return await credentials.create_user("bob", TEST_PASSWORD)


@pytest.fixture
def alice_context(alice: User) -> AuthContext:
    return AuthContext.for_user(alice.id)


@pytest.fixture
def bob_context(bob: User) -> AuthContext:
    return AuthContext.for_user(bob.id)


# =============================================================================
# API
# =============================================================================


@pytest.fixture
def app(test_settings: Settings, database: Database) -> FastAPI:
    """FastAPI app wired to the test database."""
    return create_app(test_settings, database)


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


@pytest.fixture
async def alice_auth(client: AsyncClient, alice: User) -> httpx.BasicAuth:
    """Session credentials of a logged-in regular user."""
    return await login(client, "alice")


@pytest.fixture
async def guest_auth(client: AsyncClient) -> httpx.BasicAuth:
    """Session credentials of the read-only guest."""
    return await login(client, "guest", "guest")
