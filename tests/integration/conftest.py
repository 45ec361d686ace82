"""Integration test fixtures using testcontainers.

Provides a real PostgreSQL container, so row locks and the partial unique
indexes behave as in production.
"""

import os
import shutil
import subprocess


def _configure_container_runtime() -> None:
    """Auto-detect container runtime so testcontainers works with Docker or Podman.

    Detection order (first match wins):
      1. DOCKER_HOST already set.
      2. /var/run/docker.sock exists (standard Docker).
      3. Linux rootless Podman socket.
      4. macOS Podman machine socket via ``podman machine inspect``.
      5. None found: do nothing; tests will skip.
    """
    if os.environ.get("DOCKER_HOST"):
        return
    if os.path.exists("/var/run/docker.sock"):
        return

    linux_socket = f"/run/user/{os.getuid()}/podman/podman.sock"
    if os.path.exists(linux_socket):
        os.environ["DOCKER_HOST"] = f"unix://{linux_socket}"
        os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
        return

    if shutil.which("podman"):
        try:
            result = subprocess.run(
                ["podman", "machine", "inspect",
                 "--format", "{{.ConnectionInfo.PodmanSocket.Path}}"],
                capture_output=True, text=True, timeout=5,
            )
            if result.returncode == 0:
                sock = result.stdout.strip()
                if sock and os.path.exists(sock):
                    os.environ["DOCKER_HOST"] = f"unix://{sock}"
                    os.environ.setdefault("TESTCONTAINERS_RYUK_DISABLED", "true")
        except (subprocess.TimeoutExpired, FileNotFoundError):
            pass


_configure_container_runtime()

from collections.abc import AsyncGenerator, Generator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402

from mapping_portal.storage import Database  # noqa: E402

# Try to import testcontainers, skip tests if not available
try:
    from testcontainers.postgres import PostgresContainer

    TESTCONTAINERS_AVAILABLE = True
except ImportError:
    TESTCONTAINERS_AVAILABLE = False
    PostgresContainer = None  # type: ignore


@pytest.fixture(scope="session")
def postgres_container() -> Generator[Any, None, None]:
    """Start a PostgreSQL container shared by all integration tests."""
    if not TESTCONTAINERS_AVAILABLE:
        pytest.skip("testcontainers not installed")

    try:
        with PostgresContainer(
            image="postgres:16-alpine",
            username="test",
            password="test",
            dbname="mapping_test",
        ) as postgres:
            yield postgres
    except Exception as e:
        pytest.skip(f"Docker/Podman not available: {e}")


@pytest.fixture(scope="session")
def postgres_url(postgres_container: Any) -> str:
    """Async connection URL for the PostgreSQL container."""
    sync_url = postgres_container.get_connection_url()
    async_url = sync_url.replace("postgresql://", "postgresql+asyncpg://")
    return async_url.replace("psycopg2", "asyncpg")


@pytest.fixture
async def pg_database(postgres_url: str) -> AsyncGenerator[Database, None]:
    """Database handle with fresh tables for one test."""
    database = Database(postgres_url, pool_size=10, max_overflow=10)
    await database.drop_all()
    await database.create_all()
    yield database
    await database.drop_all()
    await database.dispose()
