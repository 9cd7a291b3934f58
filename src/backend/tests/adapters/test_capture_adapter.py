import json
from pathlib import Path

import pytest

from adapters.capture import (
    service_context_from_capture,
    sniff_payload_format,
    sniff_payload_kind,
    sniff_version,
)
from common.rules_engine.models import PayloadFormat, PayloadKind, ProtocolVersion


CAPTURES = Path(__file__).parents[1] / "fixtures" / "captures"


def _load(name: str) -> dict:
    return json.loads((CAPTURES / name).read_text(encoding="utf-8"))


@pytest.mark.parametrize(
    "content_type,body,expected",
    [
        ("application/json;odata.metadata=minimal", "", PayloadFormat.JSON),
        ("application/atom+xml;type=feed", "", PayloadFormat.XML),
        (None, "  <feed/>", PayloadFormat.XML),
        ("", '{"value": []}', PayloadFormat.JSON),
        ("text/plain", "42", PayloadFormat.OTHER),
    ],
)
def test_sniff_payload_format(content_type, body, expected):
    assert sniff_payload_format(content_type, body) == expected


@pytest.mark.parametrize(
    "fmt,body,expected",
    [
        (PayloadFormat.XML, '<feed xmlns="http://www.w3.org/2005/Atom"><entry/></feed>', PayloadKind.FEED),
        (PayloadFormat.XML, '<entry xmlns="http://www.w3.org/2005/Atom"/>', PayloadKind.ENTRY),
        (
            PayloadFormat.XML,
            '<edmx:Edmx xmlns:edmx="http://docs.oasis-open.org/odata/ns/edmx" Version="4.0"/>',
            PayloadKind.METADATA,
        ),
        (PayloadFormat.XML, "<feed", PayloadKind.OTHER),
        (PayloadFormat.JSON, '{"error": {"code": "1"}}', PayloadKind.ERROR),
        (PayloadFormat.JSON, '{"@odata.context": "$metadata#Collection($ref)", "value": []}', PayloadKind.ENTITY_REFERENCE),
        (PayloadFormat.JSON, '{"@odata.context": "$metadata#Products", "value": []}', PayloadKind.FEED),
        (
            PayloadFormat.JSON,
            '{"@odata.context": "$metadata", "value": [{"name": "Products", "url": "Products"}]}',
            PayloadKind.SERVICE_DOCUMENT,
        ),
        (PayloadFormat.JSON, '{"@odata.context": "$metadata#Products/$entity", "ID": 1}', PayloadKind.ENTRY),
        (PayloadFormat.JSON, '{"d": {"results": []}}', PayloadKind.FEED),
        (PayloadFormat.OTHER, "42", PayloadKind.RAW_VALUE),
    ],
)
def test_sniff_payload_kind(fmt, body, expected):
    assert sniff_payload_kind(fmt, body) == expected


def test_sniff_version_prefers_odata_version_header():
    assert sniff_version({"OData-Version": "4.01"}) == ProtocolVersion.V4_01
    assert sniff_version({"DataServiceVersion": "2.0;NetFx"}) == ProtocolVersion.V2
    assert sniff_version({}, ProtocolVersion.V3) == ProtocolVersion.V3


def test_service_context_from_feed_capture():
    ctx = service_context_from_capture(_load("products_feed_v4_json.json"))
    assert ctx.destination.endswith("/Products")
    assert ctx.version == ProtocolVersion.V4
    assert ctx.payload_format == PayloadFormat.JSON
    assert ctx.payload_kind == PayloadKind.FEED
    assert ctx.status_code == 200
    assert ctx.has_metadata
    assert ctx.metadata_loadable is True
    assert ctx.is_offline
    assert ctx.header("odata-version") == "4.0"


def test_service_context_from_entity_reference_capture():
    ctx = service_context_from_capture(_load("entity_refs_atom_v4.json"), offline=False)
    assert ctx.payload_kind == PayloadKind.ENTITY_REFERENCE
    assert ctx.payload_format == PayloadFormat.XML
    assert not ctx.is_offline


def test_explicit_fields_override_sniffing():
    capture = {
        "destination": "https://x.test/svc/Products",
        "body": "{}",
        "version": "3.0",
        "payload_kind": "entry",
        "payload_format": "json",
    }
    ctx = service_context_from_capture(capture)
    assert ctx.version == ProtocolVersion.V3
    assert ctx.payload_kind == PayloadKind.ENTRY
    assert ctx.metadata_loadable is None
    assert not ctx.has_metadata


def test_unloadable_metadata_is_flagged():
    ctx = service_context_from_capture({"destination": "https://x.test/", "body": "", "metadata": "<edmx:Edmx"})
    assert ctx.metadata_loadable is False
    assert not ctx.has_metadata


@pytest.mark.parametrize(
    "capture,message",
    [
        ({"body": ""}, "destination"),
        ({"destination": "https://x.test/"}, "body"),
        ({"destination": "https://x.test/", "body": "", "headers": []}, "headers"),
        ({"destination": "https://x.test/", "body": "", "payload_kind": "blob"}, "payload_kind"),
        ({"destination": "https://x.test/", "body": "", "status_code": "ok"}, "status_code"),
    ],
)
def test_malformed_capture_raises(capture, message):
    with pytest.raises(ValueError) as exc_info:
        service_context_from_capture(capture)
    assert message in str(exc_info.value)


def test_context_is_read_only():
    ctx = service_context_from_capture(_load("products_feed_v4_json.json"))
    with pytest.raises(TypeError):
        ctx.response_headers["OData-Version"] = "3.0"
    with pytest.raises(AttributeError):
        ctx.status_code = 500


def test_context_is_hashable():
    capture = _load("products_feed_v4_json.json")
    first = service_context_from_capture(capture)
    second = service_context_from_capture(capture)
    assert first == second
    assert hash(first) == hash(second)
    assert len({first, second}) == 1
