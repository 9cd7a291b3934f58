from __future__ import annotations


class RulesEngineError(Exception):
    """Base class for errors raised by the rules engine itself (not validation findings)."""


class RegistrationError(RulesEngineError, ValueError):
    """Catalogue-build failure. Fatal at startup; never raised mid-run."""


class DuplicateRuleError(RegistrationError):
    def __init__(self, rule_id: str):
        super().__init__(f"Duplicate rule_id registered: {rule_id}")
        self.rule_id = rule_id


class InvalidRuleError(RegistrationError):
    pass


class CatalogueFrozenError(RegistrationError):
    pass


class RuleNotFoundError(RulesEngineError, KeyError):
    def __init__(self, rule_id: str):
        super().__init__(rule_id)
        self.rule_id = rule_id

    def __str__(self) -> str:
        return f"Rule not found in catalogue: {self.rule_id}"


class PreconditionError(RulesEngineError):
    """The context does not satisfy an assumption the engine guarantees to rules.

    Examples: the response payload is declared XML but is not well formed, or the
    metadata document is present but cannot be parsed. This is a defect in the
    collaborator that built the context, not a validation finding.
    """
