from __future__ import annotations

from ..context import ServiceContext
from ..descriptor import RuleDescriptor, SpecReference
from ..models import Outcome, ProtocolVersion, RequirementLevel, V1_V2_V3, V4_AND_LATER
from ..registry import register_rule
from ..rule import Rule


def version_header_name(version: ProtocolVersion) -> str:
    if V1_V2_V3.contains(version):
        return "DataServiceVersion"
    return "OData-Version"


@register_rule
class COMMON_CORE_1000(Rule):
    descriptor = RuleDescriptor(
        identifier="Common.Core.1000",
        category="core",
        description="A response SHOULD carry the protocol version header (DataServiceVersion or OData-Version).",
        requirement_level=RequirementLevel.SHOULD,
        spec_references=(
            SpecReference(versions=V1_V2_V3, section="2.2.5.3"),
            SpecReference(versions=V4_AND_LATER, section="8.1.5"),
        ),
        offline_capable=True,
    )

    def evaluate(self, ctx: ServiceContext) -> Outcome:
        if not ctx.response_headers:
            return self.not_applicable("No response headers were captured.")

        header = version_header_name(ctx.version)
        if ctx.header(header):
            return self.passed()
        return self.failed(ctx, message=f"Response is missing the {header} header.", excerpt="")
