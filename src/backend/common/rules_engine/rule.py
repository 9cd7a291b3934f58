from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from .context import ServiceContext
from .descriptor import RuleDescriptor
from .errors import InvalidRuleError
from .models import Outcome, ViolationEvidence


class Rule(ABC):
    """One normative check. Subclasses set ``descriptor`` and implement ``evaluate``.

    Rules are stateless: the same instance is reused across contexts and may be
    evaluated from several threads at once.
    """

    descriptor: RuleDescriptor

    def __init__(self):
        if not isinstance(getattr(self, "descriptor", None), RuleDescriptor):
            raise InvalidRuleError(f"Rule {type(self).__name__} must define a RuleDescriptor")

    @property
    def rule_id(self) -> str:
        return self.descriptor.identifier

    @abstractmethod
    def evaluate(self, ctx: ServiceContext) -> Outcome:  # pragma: no cover
        raise NotImplementedError

    def passed(self) -> Outcome:
        return Outcome.passed()

    def not_applicable(self, reason: str = "") -> Outcome:
        return Outcome.not_applicable(reason)

    def failed(
        self,
        ctx: ServiceContext,
        *,
        message: Optional[str] = None,
        excerpt: Optional[str] = None,
    ) -> Outcome:
        return Outcome.failed(
            ViolationEvidence(
                message=message or self.descriptor.error_message,
                destination=ctx.destination,
                payload_excerpt=excerpt if excerpt is not None else ctx.payload_excerpt(),
            )
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.rule_id}>"
