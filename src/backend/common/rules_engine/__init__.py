"""Conformance rules engine for OData service responses.

This package intentionally contains only domain logic:
- Rule inputs are a captured ServiceContext (response + metadata document).
- No HTTP fetching, metadata caching, or report rendering lives here.
"""

from .config import EngineSettings, get_engine_settings
from .context import ServiceContext
from .descriptor import RuleDescriptor, SpecReference
from .dispatcher import Dispatcher, evaluate_isolated, run
from .errors import (
    DuplicateRuleError,
    PreconditionError,
    RegistrationError,
    RuleNotFoundError,
)
from .models import (
    ExecutionMode,
    Outcome,
    OutcomeState,
    PayloadFormat,
    PayloadKind,
    ProtocolVersion,
    RequirementLevel,
    ValidationReport,
    VersionRange,
    ViolationEvidence,
)
from .registry import RuleCatalogue, build_default_catalogue, register_rule
from .rule import Rule
from .selection import is_applicable

# Import built-in rules so they self-register with the global registry.
from . import rules as _builtin_rules  # noqa: F401
