import os
import sys


# Ensure `src/backend` is on sys.path so imports like `import common...` work.
BACKEND_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if BACKEND_DIR not in sys.path:
    sys.path.insert(0, BACKEND_DIR)

import pytest

from common.rules_engine.context import ServiceContext
from common.rules_engine.descriptor import RuleDescriptor
from common.rules_engine.models import (
    Outcome,
    PayloadFormat,
    PayloadKind,
    ProtocolVersion,
    RequirementLevel,
)
from common.rules_engine.rule import Rule


DESTINATION = "https://services.example.test/odata/Products"

ATOM_FEED = (
    '<feed xmlns="http://www.w3.org/2005/Atom" '
    'xmlns:metadata="http://docs.oasis-open.org/odata/ns/metadata">'
    "<id>Products</id>"
    "</feed>"
)


@pytest.fixture
def destination() -> str:
    return DESTINATION


@pytest.fixture
def make_ctx():
    def _make(
        *,
        payload: str = ATOM_FEED,
        version: ProtocolVersion = ProtocolVersion.V4,
        kind: PayloadKind | None = PayloadKind.FEED,
        fmt: PayloadFormat | None = PayloadFormat.XML,
        metadata: str | None = None,
        metadata_loadable: bool | None = None,
        headers: dict | None = None,
        is_offline: bool = False,
    ) -> ServiceContext:
        return ServiceContext(
            destination=DESTINATION,
            response_payload=payload,
            version=version,
            payload_kind=kind,
            payload_format=fmt,
            status_code=200,
            response_headers=headers or {},
            metadata_document=metadata,
            metadata_loadable=metadata_loadable,
            is_offline=is_offline,
        )

    return _make


@pytest.fixture
def make_descriptor():
    def _make(rule_id: str = "Test.Core.0001", **fields) -> RuleDescriptor:
        fields.setdefault("category", "core")
        fields.setdefault("description", f"{rule_id} test rule.")
        fields.setdefault("requirement_level", RequirementLevel.MUST)
        return RuleDescriptor(identifier=rule_id, **fields)

    return _make


@pytest.fixture
def make_rule(make_descriptor):
    """Build a stub rule. ``behavior(rule, ctx)`` overrides the fixed ``outcome``."""

    def _make(rule_id: str = "Test.Core.0001", *, outcome=None, behavior=None, **descriptor_fields) -> Rule:
        descriptor = make_descriptor(rule_id, **descriptor_fields)

        def evaluate(self, ctx):
            if behavior is not None:
                return behavior(self, ctx)
            return outcome if outcome is not None else Outcome.passed()

        cls = type(rule_id.replace(".", "_").upper(), (Rule,), {"descriptor": descriptor, "evaluate": evaluate})
        return cls()

    return _make
