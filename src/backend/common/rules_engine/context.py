from __future__ import annotations

import json
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Tuple, Union

from .errors import PreconditionError
from .models import PayloadFormat, PayloadKind, ProtocolVersion

METADATA_NS = "http://docs.oasis-open.org/odata/ns/metadata"
# V1-V3 data services metadata namespace.
LEGACY_METADATA_NS = "http://schemas.microsoft.com/ado/2007/08/dataservices/metadata"

DEFAULT_EXCERPT_LIMIT = 2000


def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on qualified tags/attributes."""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


@dataclass(frozen=True)
class ServiceContext:
    """Immutable snapshot of one interaction with the service under test.

    Rules only read from it, so a single instance can be shared by concurrent
    evaluations.
    """

    destination: str
    response_payload: str
    version: ProtocolVersion
    payload_kind: Optional[PayloadKind] = None
    payload_format: Optional[PayloadFormat] = None
    status_code: Optional[int] = None
    # Stored as (name, value) pairs so the context stays hashable; a mapping is accepted.
    response_headers: Union[Mapping[str, str], Tuple[Tuple[str, str], ...]] = ()
    metadata_document: Optional[str] = None
    # None means "not checked"; False means the document was present but failed to load.
    metadata_loadable: Optional[bool] = None
    is_offline: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "response_headers", _header_pairs(self.response_headers))

    @property
    def has_metadata(self) -> bool:
        return bool(self.metadata_document) and self.metadata_loadable is not False

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key, value in self.response_headers:
            if key.lower() == wanted:
                return value
        return None

    def payload_excerpt(self, limit: int = DEFAULT_EXCERPT_LIMIT) -> str:
        payload = self.response_payload or ""
        if len(payload) <= limit:
            return payload
        return payload[:limit] + "..."

    def payload_xml(self) -> ET.Element:
        return _parse_xml(self.response_payload, what="response payload")

    def payload_json(self) -> Any:
        try:
            return json.loads(self.response_payload)
        except (TypeError, ValueError) as exc:
            raise PreconditionError(f"Response payload is not well-formed JSON: {exc}") from exc

    def metadata_xml(self) -> ET.Element:
        if not self.metadata_document:
            raise PreconditionError("Metadata document is not available in this context.")
        return _parse_xml(self.metadata_document, what="metadata document")


def _header_pairs(headers: Union[Mapping[str, str], Iterable[Tuple[str, str]]]) -> Tuple[Tuple[str, str], ...]:
    items = headers.items() if isinstance(headers, Mapping) else headers
    return tuple((str(name), str(value)) for name, value in items)


def _parse_xml(text: Optional[str], *, what: str) -> ET.Element:
    if not text:
        raise PreconditionError(f"The {what} is empty.")
    try:
        return ET.fromstring(text)
    except ET.ParseError as exc:
        raise PreconditionError(f"The {what} is not well-formed XML: {exc}") from exc
