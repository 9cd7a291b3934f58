"""Captured-interaction adapters: replayed JSON captures -> ServiceContext (no network I/O)."""

from .interaction import service_context_from_capture
from .sniff import sniff_payload_format, sniff_payload_kind, sniff_version

__all__ = [
    "service_context_from_capture",
    "sniff_payload_format",
    "sniff_payload_kind",
    "sniff_version",
]
