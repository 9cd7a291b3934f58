from __future__ import annotations

from typing import Any, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from .errors import InvalidRuleError
from .models import (
    PayloadFormat,
    PayloadKind,
    ProtocolVersion,
    RequirementLevel,
    VersionRange,
)


class SpecReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    versions: VersionRange
    section: str


class RuleDescriptor(BaseModel):
    """Static, declarative profile of one rule.

    Applicability fields set to ``None`` declare no constraint: the rule is
    compatible with every context value for that field. ``requires_metadata=False``
    likewise means "metadata not needed", never "metadata must be absent".
    """

    model_config = ConfigDict(frozen=True)

    identifier: str
    category: str
    description: str
    error_message: str = ""
    requirement_level: RequirementLevel
    spec_references: Tuple[SpecReference, ...] = ()
    help_link: Optional[str] = None

    version: Optional[VersionRange] = None
    payload_kind: Optional[PayloadKind] = None
    payload_format: Optional[PayloadFormat] = None
    requires_metadata: bool = False
    offline_capable: Optional[bool] = None

    def __init__(self, **data: Any):
        try:
            super().__init__(**data)
        except ValidationError as exc:
            rule_id = data.get("identifier", "<unknown>")
            raise InvalidRuleError(f"Invalid descriptor for rule {rule_id}: {exc}") from exc

    @model_validator(mode="before")
    @classmethod
    def _default_error_message(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("error_message"):
            data = {**data, "error_message": data.get("description", "")}
        return data

    @model_validator(mode="after")
    def _check_identity(self) -> "RuleDescriptor":
        if not self.identifier or any(ch.isspace() for ch in self.identifier):
            raise ValueError("identifier must be non-empty and contain no whitespace")
        if not self.category.strip():
            raise ValueError("category must be non-empty")
        if not self.description.strip():
            raise ValueError("description must be non-empty")
        return self

    def section_for(self, version: ProtocolVersion) -> Optional[str]:
        for ref in self.spec_references:
            if ref.versions.contains(version):
                return ref.section
        return None
