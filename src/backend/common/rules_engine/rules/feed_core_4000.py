from __future__ import annotations

from ..context import ServiceContext
from ..descriptor import RuleDescriptor, SpecReference
from ..models import Outcome, PayloadFormat, PayloadKind, RequirementLevel, V4_AND_LATER
from ..registry import register_rule
from ..rule import Rule


@register_rule
class FEED_CORE_4000(Rule):
    descriptor = RuleDescriptor(
        identifier="Feed.Core.4000",
        category="core",
        description="A JSON collection of entities MUST be represented as an object with a value array.",
        requirement_level=RequirementLevel.MUST,
        spec_references=(SpecReference(versions=V4_AND_LATER, section="12"),),
        version=V4_AND_LATER,
        payload_kind=PayloadKind.FEED,
        payload_format=PayloadFormat.JSON,
        offline_capable=True,
    )

    def evaluate(self, ctx: ServiceContext) -> Outcome:
        body = ctx.payload_json()
        if isinstance(body, dict) and isinstance(body.get("value"), list):
            return self.passed()
        return self.failed(ctx)
