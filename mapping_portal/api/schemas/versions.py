"""Version listing schema shared by projects and scripts."""

from datetime import datetime

from mapping_portal.api.schemas.base import CamelModel
from mapping_portal.services.versioning import VersionSummary


class VersionSummaryResponse(CamelModel):
    """One entity (list) or one version (history)."""

    id: str
    name: str
    changed: datetime

    @classmethod
    def from_summary(cls, summary: VersionSummary) -> "VersionSummaryResponse":
        return cls(id=summary.id, name=summary.name, changed=summary.changed)
