from __future__ import annotations

from ..context import ServiceContext
from ..descriptor import RuleDescriptor, SpecReference
from ..models import Outcome, PayloadFormat, PayloadKind, RequirementLevel, V4_AND_LATER
from ..registry import register_rule
from ..rule import Rule


@register_rule
class ERROR_CORE_4002(Rule):
    descriptor = RuleDescriptor(
        identifier="Error.Core.4002",
        category="core",
        description="The error response MUST be a single object with an error name/value pair containing code and message.",
        requirement_level=RequirementLevel.MUST,
        spec_references=(SpecReference(versions=V4_AND_LATER, section="19"),),
        version=V4_AND_LATER,
        payload_kind=PayloadKind.ERROR,
        payload_format=PayloadFormat.JSON,
        offline_capable=True,
    )

    def evaluate(self, ctx: ServiceContext) -> Outcome:
        body = ctx.payload_json()
        error = body.get("error") if isinstance(body, dict) else None
        if not isinstance(error, dict):
            return self.failed(ctx, message="Error response has no error object.")

        missing = [name for name in ("code", "message") if name not in error]
        if missing:
            return self.failed(ctx, message=f"Error object is missing: {', '.join(missing)}.")
        return self.passed()
