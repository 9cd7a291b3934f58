from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Any, Optional

from common.rules_engine.context import ServiceContext
from common.rules_engine.models import PayloadFormat, PayloadKind, ProtocolVersion

from .sniff import sniff_payload_format, sniff_payload_kind, sniff_version

logger = logging.getLogger(__name__)


def service_context_from_capture(
    capture: dict[str, Any],
    *,
    offline: bool = True,
    default_version: ProtocolVersion = ProtocolVersion.V4,
) -> ServiceContext:
    """
    Build a ServiceContext from a captured interaction.

    Expected shape:
      {
        "destination": "https://host/service/Products",
        "status_code": 200,
        "headers": {"Content-Type": "application/json", "OData-Version": "4.0"},
        "body": "...",
        "metadata": "<edmx:Edmx ...>...</edmx:Edmx>",
        "version": "4.0",
        "payload_kind": "FEED",
        "payload_format": "JSON"
      }

    Notes:
    - destination and body are required
    - version/payload_kind/payload_format are sniffed when absent
    - metadata is optional; when present, it is checked for well-formedness
    """
    if not isinstance(capture, dict):
        raise ValueError("Capture must be an object.")
    destination = capture.get("destination")
    if not destination:
        raise ValueError("Capture missing required field: destination")
    if "body" not in capture:
        raise ValueError("Capture missing required field: body")

    body = str(capture.get("body") or "")
    headers = capture.get("headers") or {}
    if not isinstance(headers, dict):
        raise ValueError("Capture field 'headers' must be an object.")
    headers = {str(k): str(v) for k, v in headers.items()}

    version = _parse_version(capture.get("version"), headers, default_version)
    payload_format = _parse_enum(PayloadFormat, capture.get("payload_format"), "payload_format")
    if payload_format is None:
        payload_format = sniff_payload_format(_content_type(headers), body)
    payload_kind = _parse_enum(PayloadKind, capture.get("payload_kind"), "payload_kind")
    if payload_kind is None:
        payload_kind = sniff_payload_kind(payload_format, body)

    metadata = capture.get("metadata") or None
    return ServiceContext(
        destination=str(destination),
        response_payload=body,
        version=version,
        payload_kind=payload_kind,
        payload_format=payload_format,
        status_code=_parse_status(capture.get("status_code")),
        response_headers=headers,
        metadata_document=metadata,
        metadata_loadable=_metadata_loadable(metadata, destination=str(destination)),
        is_offline=offline,
    )


def _content_type(headers: dict[str, str]) -> Optional[str]:
    for key, value in headers.items():
        if key.lower() == "content-type":
            return value
    return None


def _parse_version(value: Any, headers: dict[str, str], default: ProtocolVersion) -> ProtocolVersion:
    if value in (None, ""):
        return sniff_version(headers, default)
    return ProtocolVersion.parse(str(value))


def _parse_enum(enum_cls, value: Any, field_name: str):
    if value in (None, ""):
        return None
    try:
        return enum_cls(str(value).upper())
    except ValueError:
        raise ValueError(f"Capture field '{field_name}' has unknown value: {value!r}") from None


def _parse_status(value: Any) -> Optional[int]:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValueError(f"Capture field 'status_code' must be an integer, got {value!r}") from None


def _metadata_loadable(metadata: Optional[str], *, destination: str) -> Optional[bool]:
    if metadata is None:
        return None
    try:
        ET.fromstring(metadata)
    except ET.ParseError as exc:
        logger.warning("Metadata document captured for %s is not well-formed: %s", destination, exc)
        return False
    return True
