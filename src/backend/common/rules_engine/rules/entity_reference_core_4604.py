from __future__ import annotations

from ..context import METADATA_NS, ServiceContext, local_name
from ..descriptor import RuleDescriptor, SpecReference
from ..models import (
    Outcome,
    PayloadFormat,
    PayloadKind,
    ProtocolVersion,
    RequirementLevel,
    VersionRange,
)
from ..registry import register_rule
from ..rule import Rule

_CONTEXT_ATTR = f"{{{METADATA_NS}}}context"


@register_rule
class ENTITY_REFERENCE_CORE_4604(Rule):
    descriptor = RuleDescriptor(
        identifier="EntityReference.Core.4604",
        category="core",
        description="If metadata:ref attribute is part of an Atom feed, the metadata:context attribute is optional.",
        requirement_level=RequirementLevel.MAY,
        spec_references=(SpecReference(versions=VersionRange.exactly(ProtocolVersion.V4), section="13.1.1"),),
        version=VersionRange.exactly(ProtocolVersion.V4),
        payload_kind=PayloadKind.ENTITY_REFERENCE,
        payload_format=PayloadFormat.XML,
        requires_metadata=False,
        offline_capable=True,
    )

    def evaluate(self, ctx: ServiceContext) -> Outcome:
        root = ctx.payload_xml()
        if local_name(root.tag) != "feed":
            return self.not_applicable("Payload root is not an Atom feed.")

        refs = [child for child in root if local_name(child.tag) == "ref"]
        if not refs:
            return self.not_applicable("Feed contains no ref elements.")

        for ref in refs:
            if not ref.get(_CONTEXT_ATTR):
                ref_id = ref.get("id", "")
                return self.failed(ctx, excerpt=f"<ref id={ref_id!r}> without metadata:context")
        return self.passed()
