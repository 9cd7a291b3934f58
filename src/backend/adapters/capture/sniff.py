from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from typing import Any, Mapping, Optional

from common.rules_engine.context import local_name
from common.rules_engine.models import PayloadFormat, PayloadKind, ProtocolVersion

_XML_KINDS = {
    "feed": PayloadKind.FEED,
    "entry": PayloadKind.ENTRY,
    "service": PayloadKind.SERVICE_DOCUMENT,
    "Edmx": PayloadKind.METADATA,
    "error": PayloadKind.ERROR,
    "ref": PayloadKind.ENTITY_REFERENCE,
    "links": PayloadKind.LINK,
    "uri": PayloadKind.LINK,
}


def sniff_payload_format(content_type: Optional[str], body: str) -> PayloadFormat:
    """Decide the payload format from the Content-Type header, falling back to the body."""
    media = (content_type or "").split(";", 1)[0].strip().lower()
    if media.endswith("json"):
        return PayloadFormat.JSON
    if media.endswith("xml"):
        return PayloadFormat.XML

    text = (body or "").lstrip()
    if text.startswith("<"):
        return PayloadFormat.XML
    if text.startswith("{") or text.startswith("["):
        return PayloadFormat.JSON
    return PayloadFormat.OTHER


def sniff_payload_kind(payload_format: PayloadFormat, body: str) -> PayloadKind:
    if payload_format == PayloadFormat.XML:
        return _xml_kind(body)
    if payload_format == PayloadFormat.JSON:
        return _json_kind(body)
    return PayloadKind.RAW_VALUE if body else PayloadKind.OTHER


def _xml_kind(body: str) -> PayloadKind:
    try:
        root = ET.fromstring(body)
    except ET.ParseError:
        return PayloadKind.OTHER
    name = local_name(root.tag)
    if name == "feed":
        # A feed whose children are all refs is an entity reference collection.
        children = [local_name(child.tag) for child in root]
        if "ref" in children and "entry" not in children:
            return PayloadKind.ENTITY_REFERENCE
    return _XML_KINDS.get(name, PayloadKind.OTHER)


def _json_kind(body: str) -> PayloadKind:
    try:
        data: Any = json.loads(body)
    except ValueError:
        return PayloadKind.OTHER
    if not isinstance(data, dict):
        return PayloadKind.OTHER
    if "error" in data or "odata.error" in data:
        return PayloadKind.ERROR

    context = str(data.get("@odata.context") or data.get("odata.metadata") or "")
    # "#$ref" for a single reference, "#Collection($ref)" for a collection.
    if "$ref" in context:
        return PayloadKind.ENTITY_REFERENCE
    if "$delta" in context:
        return PayloadKind.DELTA
    if isinstance(data.get("value"), list):
        if context.endswith("$metadata") or not context:
            # The service document is a value array of named resources.
            items = data["value"]
            if items and all(isinstance(i, dict) and "url" in i and "name" in i for i in items):
                return PayloadKind.SERVICE_DOCUMENT
        return PayloadKind.FEED
    if "value" in data:
        return PayloadKind.PROPERTY
    # V2/V3 verbose JSON wraps everything in "d".
    if isinstance(data.get("d"), (dict, list)):
        inner = data["d"]
        if isinstance(inner, list) or isinstance(inner.get("results"), list):
            return PayloadKind.FEED
        return PayloadKind.ENTRY
    return PayloadKind.ENTRY


def sniff_version(headers: Mapping[str, str], default: ProtocolVersion = ProtocolVersion.V4) -> ProtocolVersion:
    """Read the response version header; V4 services use OData-Version, older ones DataServiceVersion."""
    lowered = {k.lower(): v for k, v in headers.items()}
    for name in ("odata-version", "dataserviceversion"):
        value = lowered.get(name)
        if value:
            return ProtocolVersion.parse(value)
    return default
