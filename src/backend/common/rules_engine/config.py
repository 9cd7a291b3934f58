from __future__ import annotations

import os
from typing import List, Optional, Set

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from .descriptor import RuleDescriptor
from .models import ExecutionMode, RequirementLevel

DEFAULT_RULE_TIMEOUT_SECONDS = 30.0


class EngineSettings(BaseModel):
    """Operator-level settings for a validation run.

    The include/disable filters narrow the catalogue before applicability is
    checked; rules they exclude are absent from the report.
    """

    mode: ExecutionMode = ExecutionMode.ONLINE
    max_workers: int = Field(default=1, ge=1)
    # None disables the per-rule timeout (and lets the dispatcher run serially).
    rule_timeout_seconds: Optional[float] = Field(default=DEFAULT_RULE_TIMEOUT_SECONDS, gt=0)

    include_categories: Set[str] = Field(default_factory=set)
    include_rule_ids: Set[str] = Field(default_factory=set)
    disabled_rule_ids: Set[str] = Field(default_factory=set)
    requirement_levels: Set[RequirementLevel] = Field(default_factory=set)

    def allows(self, descriptor: RuleDescriptor) -> bool:
        if descriptor.identifier in self.disabled_rule_ids:
            return False
        if self.include_rule_ids and descriptor.identifier not in self.include_rule_ids:
            return False
        if self.include_categories and descriptor.category not in self.include_categories:
            return False
        if self.requirement_levels and descriptor.requirement_level not in self.requirement_levels:
            return False
        return True


def get_engine_settings() -> EngineSettings:
    """
    Load engine settings from environment variables (and a local .env, if any).

    Reads:
      CONFORMANCE_MODE, CONFORMANCE_MAX_WORKERS, CONFORMANCE_RULE_TIMEOUT_SECONDS,
      CONFORMANCE_CATEGORIES, CONFORMANCE_RULE_IDS, CONFORMANCE_DISABLED_RULES,
      CONFORMANCE_REQUIREMENT_LEVELS
    """
    load_dotenv()

    values = {}
    mode = _mode_env("CONFORMANCE_MODE")
    if mode is not None:
        # Left unset otherwise, so callers can tell an operator choice from the default.
        values["mode"] = mode
    return EngineSettings(
        **values,
        max_workers=_int_env("CONFORMANCE_MAX_WORKERS", 1),
        rule_timeout_seconds=_timeout_env("CONFORMANCE_RULE_TIMEOUT_SECONDS"),
        include_categories=set(_list_env("CONFORMANCE_CATEGORIES")),
        include_rule_ids=set(_list_env("CONFORMANCE_RULE_IDS")),
        disabled_rule_ids=set(_list_env("CONFORMANCE_DISABLED_RULES")),
        requirement_levels={
            _level(value, "CONFORMANCE_REQUIREMENT_LEVELS")
            for value in _list_env("CONFORMANCE_REQUIREMENT_LEVELS")
        },
    )


def _mode_env(name: str) -> Optional[ExecutionMode]:
    value = os.getenv(name, "").strip().upper()
    if not value:
        return None
    try:
        return ExecutionMode(value)
    except ValueError:
        raise ValueError(f"{name} must be 'online' or 'offline'.") from None


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name, "").strip()
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}.") from None
    if parsed < 1:
        raise ValueError(f"{name} must be >= 1.")
    return parsed


def _timeout_env(name: str) -> Optional[float]:
    value = os.getenv(name, "").strip().lower()
    if not value:
        return DEFAULT_RULE_TIMEOUT_SECONDS
    if value in ("none", "off", "0"):
        return None
    try:
        parsed = float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number of seconds, got {value!r}.") from None
    if parsed <= 0:
        raise ValueError(f"{name} must be positive.")
    return parsed


def _list_env(name: str) -> List[str]:
    value = os.getenv(name, "")
    return [item.strip() for item in value.split(",") if item.strip()]


def _level(value: str, name: str) -> RequirementLevel:
    try:
        return RequirementLevel(value.upper())
    except ValueError:
        allowed = ", ".join(level.value.lower() for level in RequirementLevel)
        raise ValueError(f"{name} contains unknown level {value!r} (expected: {allowed}).") from None
