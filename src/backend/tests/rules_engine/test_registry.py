import pytest

from common.rules_engine.errors import (
    CatalogueFrozenError,
    DuplicateRuleError,
    InvalidRuleError,
    RegistrationError,
    RuleNotFoundError,
)
from common.rules_engine.models import Outcome
from common.rules_engine.registry import RuleCatalogue, RuleRegistry, build_default_catalogue
from common.rules_engine.rule import Rule


def test_register_and_lookup(make_rule):
    rule = make_rule("Feed.Core.1")
    catalogue = RuleCatalogue()
    catalogue.register(rule)
    assert catalogue.by_identifier("Feed.Core.1") is rule
    assert "Feed.Core.1" in catalogue
    assert len(catalogue) == 1


def test_duplicate_identifier_is_rejected(make_rule):
    first = make_rule("Feed.Core.1")
    catalogue = RuleCatalogue()
    catalogue.register(first)
    with pytest.raises(DuplicateRuleError) as exc_info:
        catalogue.register(make_rule("Feed.Core.1", outcome=Outcome.not_applicable()))
    assert isinstance(exc_info.value, RegistrationError)
    assert catalogue.ids() == ["Feed.Core.1"]
    assert catalogue.by_identifier("Feed.Core.1") is first


def test_duplicate_in_batch_adds_neither(make_rule):
    catalogue = RuleCatalogue()
    with pytest.raises(DuplicateRuleError):
        catalogue.register_all([make_rule("Feed.Core.1"), make_rule("Feed.Core.1")])
    assert len(catalogue) == 0

    with pytest.raises(RegistrationError):
        RuleCatalogue.from_rules([make_rule("A.1"), make_rule("B.1"), make_rule("A.1")])


def test_by_identifier_not_found():
    catalogue = RuleCatalogue()
    with pytest.raises(RuleNotFoundError) as exc_info:
        catalogue.by_identifier("Missing.1")
    assert isinstance(exc_info.value, KeyError)
    assert "Missing.1" in str(exc_info.value)


def test_all_is_restartable_and_stable(make_rule):
    catalogue = RuleCatalogue.from_rules([make_rule("B.1"), make_rule("A.1"), make_rule("C.1")])
    first = [r.rule_id for r in catalogue.all()]
    second = [r.rule_id for r in catalogue.all()]
    assert first == second == ["B.1", "A.1", "C.1"]


def test_frozen_catalogue_rejects_registration(make_rule):
    catalogue = RuleCatalogue.from_rules([make_rule("A.1")])
    assert catalogue.frozen
    with pytest.raises(CatalogueFrozenError):
        catalogue.register(make_rule("B.1"))


def test_non_rule_is_rejected():
    with pytest.raises(InvalidRuleError):
        RuleCatalogue().register(object())


def test_rule_without_descriptor_cannot_be_instantiated():
    class NoDescriptor(Rule):
        def evaluate(self, ctx):
            return Outcome.passed()

    with pytest.raises(InvalidRuleError):
        NoDescriptor()


def test_class_registry_rejects_duplicates(make_rule):
    reg = RuleRegistry()
    rule_cls = type(make_rule("Feed.Core.1"))
    reg.register(rule_cls)
    with pytest.raises(DuplicateRuleError):
        reg.register(rule_cls)
    created = reg.create_all()
    assert len(created) == 1
    assert isinstance(created[0], rule_cls)


def test_default_catalogue_contains_builtin_rules():
    catalogue = build_default_catalogue()
    assert {
        "Common.Core.1000",
        "EntityReference.Core.4604",
        "Error.Core.4002",
        "Feed.Core.4000",
        "Metadata.Core.2010",
    }.issubset(set(catalogue.ids()))
    assert catalogue.frozen
