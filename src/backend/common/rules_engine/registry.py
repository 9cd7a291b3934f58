from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Type

from .descriptor import RuleDescriptor
from .errors import (
    CatalogueFrozenError,
    DuplicateRuleError,
    InvalidRuleError,
    RuleNotFoundError,
)
from .rule import Rule


class RuleRegistry:
    """Rule classes known to the process, filled by ``@register_rule`` at import time."""

    def __init__(self):
        self._rules: Dict[str, Type[Rule]] = {}

    def register(self, rule_cls: Type[Rule]) -> None:
        descriptor = getattr(rule_cls, "descriptor", None)
        if not isinstance(descriptor, RuleDescriptor):
            raise InvalidRuleError(f"Rule class {rule_cls.__name__} missing descriptor")
        rule_id = descriptor.identifier
        if rule_id in self._rules:
            raise DuplicateRuleError(rule_id)
        self._rules[rule_id] = rule_cls

    def create_all(self) -> list[Rule]:
        return [cls() for cls in self._rules.values()]


registry = RuleRegistry()


def register_rule(rule_cls: Type[Rule]) -> Type[Rule]:
    registry.register(rule_cls)
    return rule_cls


class RuleCatalogue:
    """Rule instances available to one process, indexed by identifier.

    Iteration order is registration order. Once frozen the catalogue is
    read-only and safe to share between threads.
    """

    def __init__(self):
        self._rules: Dict[str, Rule] = {}
        self._frozen = False

    @classmethod
    def from_rules(cls, rules: Iterable[Rule]) -> "RuleCatalogue":
        catalogue = cls()
        catalogue.register_all(rules)
        catalogue.freeze()
        return catalogue

    def register(self, rule: Rule) -> None:
        self.register_all([rule])

    def register_all(self, rules: Iterable[Rule]) -> None:
        """Register a batch atomically: any invalid or duplicate rule rejects the whole batch."""
        if self._frozen:
            raise CatalogueFrozenError("Catalogue is frozen; rules must be registered at startup.")
        batch: Dict[str, Rule] = {}
        for rule in rules:
            if not isinstance(rule, Rule):
                raise InvalidRuleError(f"Not a Rule instance: {rule!r}")
            rule_id = rule.rule_id
            if rule_id in self._rules or rule_id in batch:
                raise DuplicateRuleError(rule_id)
            batch[rule_id] = rule
        self._rules.update(batch)

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def all(self) -> Iterator[Rule]:
        return iter(list(self._rules.values()))

    def by_identifier(self, rule_id: str) -> Rule:
        try:
            return self._rules[rule_id]
        except KeyError:
            raise RuleNotFoundError(rule_id) from None

    def ids(self) -> List[str]:
        return list(self._rules.keys())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules


def build_default_catalogue() -> RuleCatalogue:
    # Built-in rules register themselves with `registry` on import.
    from . import rules as _builtin_rules  # noqa: F401

    return RuleCatalogue.from_rules(registry.create_all())
