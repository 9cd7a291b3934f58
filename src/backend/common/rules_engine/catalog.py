from __future__ import annotations

import argparse
import json
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .registry import RuleCatalogue, build_default_catalogue


class RuleCatalogEntry(BaseModel):
    rule_id: str
    category: str
    description: str
    requirement_level: str
    spec_sections: Dict[str, str] = Field(default_factory=dict)
    help_link: Optional[str] = None

    version: str = "any"
    payload_kind: str = "any"
    payload_format: str = "any"
    requires_metadata: bool = False
    offline_capable: Optional[bool] = None

    module: str
    class_name: str


def build_catalog(catalogue: Optional[RuleCatalogue] = None) -> List[RuleCatalogEntry]:
    catalogue = catalogue if catalogue is not None else build_default_catalogue()
    entries: List[RuleCatalogEntry] = []
    for rule in catalogue.all():
        d = rule.descriptor
        entries.append(
            RuleCatalogEntry(
                rule_id=d.identifier,
                category=d.category,
                description=d.description,
                requirement_level=d.requirement_level.value,
                spec_sections={ref.versions.label(): ref.section for ref in d.spec_references},
                help_link=d.help_link,
                version=d.version.label() if d.version else "any",
                payload_kind=d.payload_kind.value if d.payload_kind else "any",
                payload_format=d.payload_format.value if d.payload_format else "any",
                requires_metadata=d.requires_metadata,
                offline_capable=d.offline_capable,
                module=type(rule).__module__,
                class_name=type(rule).__name__,
            )
        )

    entries.sort(key=lambda e: e.rule_id)
    return entries


def _dump_json(catalog: list[dict[str, Any]]) -> str:
    return json.dumps(catalog, indent=2, sort_keys=True)


def _dump_yaml(catalog: list[dict[str, Any]]) -> str:
    import yaml

    return yaml.safe_dump(catalog, sort_keys=True)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Generate a rules catalog from the registered rules.")
    parser.add_argument(
        "--format",
        choices=("yaml", "json"),
        default="yaml",
        help="Output format (default: yaml).",
    )
    args = parser.parse_args(argv)

    catalog = [e.model_dump() for e in build_catalog()]
    if args.format == "json":
        print(_dump_json(catalog))
    else:
        print(_dump_yaml(catalog))


if __name__ == "__main__":
    main()
