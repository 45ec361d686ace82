"""Dependency container wiring the portal's services to one database handle."""

from __future__ import annotations

from dataclasses import dataclass

from mapping_portal.assets import AssetAssembler
from mapping_portal.catalog import EXAMPLE_QUERY_KEYS, DirectoryCatalog, QueryGraphCatalog
from mapping_portal.gfbio import GFBioClient
from mapping_portal.services import (
    CredentialStore,
    ProjectService,
    ScriptService,
    SessionAuthenticator,
)
from mapping_portal.settings import Settings
from mapping_portal.storage import Database


@dataclass(slots=True)
class ServiceContainer:
    settings: Settings
    database: Database
    credentials: CredentialStore
    authenticator: SessionAuthenticator
    projects: ProjectService
    scripts: ScriptService
    datasources: QueryGraphCatalog
    examples: QueryGraphCatalog
    assets: AssetAssembler
    gfbio: GFBioClient

    @classmethod
    def build(cls, settings: Settings, database: Database | None = None) -> ServiceContainer:
        """Wire every service from settings, creating the database handle if not given."""
        database = database or Database.from_settings(settings)
        attempts = settings.versioning_max_attempts
        return cls(
            settings=settings,
            database=database,
            credentials=CredentialStore(database, guest_enabled=settings.guest_enabled),
            authenticator=SessionAuthenticator(database, guest_enabled=settings.guest_enabled),
            projects=ProjectService(database, max_attempts=attempts),
            scripts=ScriptService(database, max_attempts=attempts),
            datasources=DirectoryCatalog(settings.datasource_dir),
            examples=DirectoryCatalog(settings.example_query_dir, required_keys=EXAMPLE_QUERY_KEYS),
            assets=AssetAssembler.from_settings(settings),
            gfbio=GFBioClient.from_settings(settings),
        )

    async def close(self) -> None:
        """Release pooled connections and HTTP clients."""
        await self.gfbio.close()
        await self.database.dispose()


__all__ = ["ServiceContainer"]
