"""Script repository."""

from dataclasses import dataclass

from mapping_portal.dal.versioned import VersionedRepository
from mapping_portal.storage.entities import Script


@dataclass(frozen=True, slots=True)
class ScriptSpec:
    """A script as submitted in a save."""

    code: str
    result_type: str

    def matches(self, row: Script) -> bool:
        return row.code == self.code and row.result_type == self.result_type


class ScriptRepository(VersionedRepository[Script]):
    """Repository for user-owned script versions."""

    model = Script
    owner_field = "user_id"
