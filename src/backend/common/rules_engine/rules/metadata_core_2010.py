from __future__ import annotations

from ..context import LEGACY_METADATA_NS, ServiceContext, local_name
from ..descriptor import RuleDescriptor, SpecReference
from ..models import Outcome, PayloadFormat, PayloadKind, RequirementLevel, V1_V2_V3
from ..registry import register_rule
from ..rule import Rule

ATOM_SYNDICATION_TARGETS = frozenset(
    {
        "SyndicationAuthorName",
        "SyndicationAuthorEmail",
        "SyndicationAuthorUri",
        "SyndicationPublished",
        "SyndicationRights",
        "SyndicationTitle",
        "SyndicationUpdated",
        "SyndicationContributorName",
        "SyndicationContributorEmail",
        "SyndicationContributorUri",
        "SyndicationSource",
        "SyndicationSummary",
    }
)

_FC_TARGET_PATH = f"{{{LEGACY_METADATA_NS}}}FC_TargetPath"


@register_rule
class METADATA_CORE_2010(Rule):
    descriptor = RuleDescriptor(
        identifier="Metadata.Core.2010",
        category="core",
        description="All mapped properties MUST be mapped to distinct elements within the Atom feed.",
        requirement_level=RequirementLevel.MUST,
        spec_references=(SpecReference(versions=V1_V2_V3, section="2.2.3.7.2.1"),),
        version=V1_V2_V3,
        payload_kind=PayloadKind.METADATA,
        payload_format=PayloadFormat.XML,
        requires_metadata=True,
        offline_capable=False,
    )

    def evaluate(self, ctx: ServiceContext) -> Outcome:
        root = ctx.metadata_xml()
        entity_types = [elem for elem in root.iter() if local_name(elem.tag) == "EntityType"]
        if not entity_types:
            return self.not_applicable("Metadata declares no entity types.")

        # Every entity type is checked; one duplicate anywhere fails the rule.
        offenders: list[str] = []
        for entity_type in entity_types:
            seen: set[str] = set()
            for prop in entity_type:
                if local_name(prop.tag) != "Property":
                    continue
                target = prop.get(_FC_TARGET_PATH)
                if target not in ATOM_SYNDICATION_TARGETS:
                    continue
                if target in seen:
                    offenders.append(f"{entity_type.get('Name', '?')}:{target}")
                    break
                seen.add(target)

        if offenders:
            return self.failed(
                ctx,
                message=f"{self.descriptor.error_message} Duplicate mappings: {', '.join(offenders)}.",
            )
        return self.passed()
