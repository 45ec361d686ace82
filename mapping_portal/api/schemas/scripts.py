"""Script schemas."""

from pydantic import Field

from mapping_portal.api.schemas.base import CamelModel
from mapping_portal.dal.scripts import ScriptSpec


class ScriptPayload(CamelModel):
    """Script content as submitted or returned."""

    code: str = Field(..., description="Script source")
    result_type: str = Field(..., min_length=1, max_length=50, description="Type of the script result")

    def to_spec(self) -> ScriptSpec:
        return ScriptSpec(code=self.code, result_type=self.result_type)

    @classmethod
    def from_spec(cls, spec: ScriptSpec) -> "ScriptPayload":
        return cls(code=spec.code, result_type=spec.result_type)


ScriptResponse = ScriptPayload
