"""Applicability of a rule to a captured interaction.

Each check treats an undeclared constraint as a wildcard; a rule is applicable
only when every check passes.
"""

from __future__ import annotations

from .context import ServiceContext
from .descriptor import RuleDescriptor
from .models import ExecutionMode


def version_matches(descriptor: RuleDescriptor, ctx: ServiceContext) -> bool:
    if descriptor.version is None:
        return True
    return descriptor.version.contains(ctx.version)


def payload_kind_matches(descriptor: RuleDescriptor, ctx: ServiceContext) -> bool:
    if descriptor.payload_kind is None:
        return True
    return ctx.payload_kind == descriptor.payload_kind


def payload_format_matches(descriptor: RuleDescriptor, ctx: ServiceContext) -> bool:
    if descriptor.payload_format is None:
        return True
    return ctx.payload_format == descriptor.payload_format


def metadata_requirement_met(descriptor: RuleDescriptor, ctx: ServiceContext) -> bool:
    if not descriptor.requires_metadata:
        return True
    return ctx.has_metadata


def mode_compatible(descriptor: RuleDescriptor, mode: ExecutionMode) -> bool:
    if mode != ExecutionMode.OFFLINE:
        return True
    return descriptor.offline_capable is not False


def skip_reasons(
    descriptor: RuleDescriptor,
    ctx: ServiceContext,
    mode: ExecutionMode = ExecutionMode.ONLINE,
) -> list[str]:
    reasons: list[str] = []
    if not version_matches(descriptor, ctx):
        reasons.append(f"version {ctx.version.value} outside {descriptor.version.label()}")
    if not payload_kind_matches(descriptor, ctx):
        actual = ctx.payload_kind.value if ctx.payload_kind else "unknown"
        reasons.append(f"payload kind {actual} != {descriptor.payload_kind.value}")
    if not payload_format_matches(descriptor, ctx):
        actual = ctx.payload_format.value if ctx.payload_format else "unknown"
        reasons.append(f"payload format {actual} != {descriptor.payload_format.value}")
    if not metadata_requirement_met(descriptor, ctx):
        reasons.append("metadata document required but not available")
    if not mode_compatible(descriptor, mode):
        reasons.append("rule is not offline-capable")
    return reasons


def is_applicable(
    descriptor: RuleDescriptor,
    ctx: ServiceContext,
    mode: ExecutionMode = ExecutionMode.ONLINE,
) -> bool:
    return (
        version_matches(descriptor, ctx)
        and payload_kind_matches(descriptor, ctx)
        and payload_format_matches(descriptor, ctx)
        and metadata_requirement_met(descriptor, ctx)
        and mode_compatible(descriptor, mode)
    )
