from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ProtocolVersion(str, Enum):
    V1 = "1.0"
    V2 = "2.0"
    V3 = "3.0"
    V4 = "4.0"
    V4_01 = "4.01"

    @property
    def ordinal(self) -> int:
        return _VERSION_ORDER.index(self)

    @classmethod
    def parse(cls, raw: str) -> "ProtocolVersion":
        """Parse a header value such as "4.0", "4.01", "3.0;NetFx" or "2.0"."""
        value = (raw or "").split(";", 1)[0].strip()
        for member in cls:
            if member.value == value:
                return member
        # "4" / "3" style shorthands.
        for member in cls:
            if member.value.split(".", 1)[0] == value:
                return member
        raise ValueError(f"Unknown protocol version: {raw!r}")


_VERSION_ORDER = (
    ProtocolVersion.V1,
    ProtocolVersion.V2,
    ProtocolVersion.V3,
    ProtocolVersion.V4,
    ProtocolVersion.V4_01,
)


class VersionRange(BaseModel):
    """Inclusive range of protocol versions a rule applies to."""

    model_config = ConfigDict(frozen=True)

    low: ProtocolVersion
    high: ProtocolVersion

    @model_validator(mode="after")
    def _check_order(self) -> "VersionRange":
        if self.low.ordinal > self.high.ordinal:
            raise ValueError(f"Version range is inverted: {self.low.value} > {self.high.value}")
        return self

    @classmethod
    def exactly(cls, version: ProtocolVersion) -> "VersionRange":
        return cls(low=version, high=version)

    @classmethod
    def between(cls, low: ProtocolVersion, high: ProtocolVersion) -> "VersionRange":
        return cls(low=low, high=high)

    def contains(self, version: ProtocolVersion) -> bool:
        return self.low.ordinal <= version.ordinal <= self.high.ordinal

    def label(self) -> str:
        if self.low == self.high:
            return self.low.value
        return f"{self.low.value}-{self.high.value}"


V1_V2_V3 = VersionRange.between(ProtocolVersion.V1, ProtocolVersion.V3)
V4_AND_LATER = VersionRange.between(ProtocolVersion.V4, ProtocolVersion.V4_01)


class RequirementLevel(str, Enum):
    MUST = "MUST"
    SHOULD = "SHOULD"
    MAY = "MAY"
    RECOMMENDED = "RECOMMENDED"
    EXTENSION = "EXTENSION"


class PayloadKind(str, Enum):
    SERVICE_DOCUMENT = "SERVICE_DOCUMENT"
    METADATA = "METADATA"
    FEED = "FEED"
    ENTRY = "ENTRY"
    PROPERTY = "PROPERTY"
    RAW_VALUE = "RAW_VALUE"
    LINK = "LINK"
    ENTITY_REFERENCE = "ENTITY_REFERENCE"
    DELTA = "DELTA"
    ERROR = "ERROR"
    OTHER = "OTHER"


class PayloadFormat(str, Enum):
    XML = "XML"
    JSON = "JSON"
    OTHER = "OTHER"


class ExecutionMode(str, Enum):
    ONLINE = "ONLINE"
    OFFLINE = "OFFLINE"


class OutcomeState(str, Enum):
    PASS = "PASS"
    FAIL = "FAIL"
    NOT_APPLICABLE = "NOT_APPLICABLE"
    ENGINE_ERROR = "ENGINE_ERROR"


class EngineErrorKind(str, Enum):
    PRECONDITION = "PRECONDITION"
    EXCEPTION = "EXCEPTION"
    TIMEOUT = "TIMEOUT"
    INVALID_OUTCOME = "INVALID_OUTCOME"
    NOT_STARTED = "NOT_STARTED"


class ViolationEvidence(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str = Field(min_length=1)
    destination: str = ""
    payload_excerpt: str = ""


class EngineErrorDetail(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: EngineErrorKind
    error_type: str = ""
    message: str = ""


class Outcome(BaseModel):
    """Verdict of one rule against one context.

    FAIL always carries evidence; PASS and NOT_APPLICABLE carry none; ENGINE_ERROR
    carries an error detail instead of evidence.
    """

    model_config = ConfigDict(frozen=True)

    state: OutcomeState
    evidence: Optional[ViolationEvidence] = None
    error: Optional[EngineErrorDetail] = None
    reason: str = ""

    @model_validator(mode="after")
    def _check_payload(self) -> "Outcome":
        if self.state == OutcomeState.FAIL:
            if self.evidence is None:
                raise ValueError("FAIL outcome requires violation evidence")
            if self.error is not None:
                raise ValueError("FAIL outcome cannot carry an engine error")
        elif self.state == OutcomeState.ENGINE_ERROR:
            if self.error is None:
                raise ValueError("ENGINE_ERROR outcome requires an error detail")
            if self.evidence is not None:
                raise ValueError("ENGINE_ERROR outcome cannot carry violation evidence")
        elif self.evidence is not None or self.error is not None:
            raise ValueError(f"{self.state.value} outcome cannot carry evidence or errors")
        return self

    @classmethod
    def passed(cls) -> "Outcome":
        return cls(state=OutcomeState.PASS)

    @classmethod
    def failed(cls, evidence: ViolationEvidence) -> "Outcome":
        return cls(state=OutcomeState.FAIL, evidence=evidence)

    @classmethod
    def not_applicable(cls, reason: str = "") -> "Outcome":
        return cls(state=OutcomeState.NOT_APPLICABLE, reason=reason)

    @classmethod
    def engine_error(cls, kind: EngineErrorKind, error_type: str = "", message: str = "") -> "Outcome":
        return cls(
            state=OutcomeState.ENGINE_ERROR,
            error=EngineErrorDetail(kind=kind, error_type=error_type, message=message),
        )


class ReportEntry(BaseModel):
    rule_id: str
    category: str = ""
    requirement_level: Optional[RequirementLevel] = None
    outcome: Outcome


class ValidationReport(BaseModel):
    run_id: str
    generated_at: datetime
    destination: str = ""
    mode: ExecutionMode = ExecutionMode.ONLINE
    version: Optional[ProtocolVersion] = None

    entries: List[ReportEntry] = Field(default_factory=list)
    totals: Dict[OutcomeState, int] = Field(default_factory=dict)
    cancelled: bool = False

    def rule_ids(self) -> list[str]:
        return [e.rule_id for e in self.entries]

    def outcome_for(self, rule_id: str) -> Optional[Outcome]:
        for entry in self.entries:
            if entry.rule_id == rule_id:
                return entry.outcome
        return None

    def entries_in_state(self, state: OutcomeState) -> list[ReportEntry]:
        return [e for e in self.entries if e.outcome.state == state]

    def overall_state(self) -> OutcomeState:
        return StatusOrdering.default().worst([e.outcome.state for e in self.entries])


@dataclass(frozen=True)
class StatusOrdering:
    order: Dict[OutcomeState, int]

    @classmethod
    def default(cls) -> "StatusOrdering":
        # Higher wins.
        return cls(
            order={
                OutcomeState.ENGINE_ERROR: 40,
                OutcomeState.FAIL: 30,
                OutcomeState.PASS: 20,
                OutcomeState.NOT_APPLICABLE: 10,
            }
        )

    def worst(self, states: List[OutcomeState]) -> OutcomeState:
        if not states:
            return OutcomeState.NOT_APPLICABLE
        return max(states, key=lambda s: self.order.get(s, 0))
