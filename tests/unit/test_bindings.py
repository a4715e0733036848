"""Unit tests for hook discovery by marker identity."""

from __future__ import annotations

import contextlib
import types

import pytest

from isoload import markers
from isoload.errors import InvalidRuleError, MarkerResolutionError
from isoload.markers import after, before, rule
from isoload.runner.bindings import (
    HookKind,
    MarkerSet,
    collect_test_methods,
    discover_bindings,
)

# pylint: disable=redefined-outer-name,missing-function-docstring


@pytest.fixture
def marker_set() -> MarkerSet:
    """Markers of the shared context."""
    return MarkerSet.from_module(markers)


class Base:
    @before
    def base_setup(self):
        pass

    @after
    def base_teardown(self):
        pass

    @rule
    def base_rule(self):
        return contextlib.nullcontext()

    def test_base(self):
        pass


class Derived(Base):
    field_rule = rule(contextlib.nullcontext())

    @before
    def derived_setup(self):
        pass

    @after
    def derived_teardown(self):
        pass

    def test_derived(self):
        pass

    def helper(self):
        pass

    test_value = 3


def names(bindings) -> list[str]:
    return [binding.name for binding in bindings]


def test_from_module_reads_markers():
    """Markers are taken from the module by attribute name."""
    marker_set = MarkerSet.from_module(markers)
    assert marker_set.before is markers.BEFORE
    assert marker_set.after is markers.AFTER
    assert marker_set.rule is markers.RULE


def test_from_module_missing_marker_raises():
    """A marker module must define every kind."""
    module = types.ModuleType("fake_markers")
    module.BEFORE = object()
    module.AFTER = object()

    with pytest.raises(MarkerResolutionError, match="RULE"):
        MarkerSet.from_module(module)


def test_befores_and_rules_run_base_first(marker_set):
    """Befores and rules are ordered base class first."""
    bindings = discover_bindings(Derived, marker_set)
    assert names(bindings.befores) == ["base_setup", "derived_setup"]
    assert names(bindings.rules) == ["base_rule", "field_rule"]


def test_afters_run_subclass_first(marker_set):
    """Afters are ordered subclass first."""
    bindings = discover_bindings(Derived, marker_set)
    assert names(bindings.afters) == ["derived_teardown", "base_teardown"]


def test_rule_fields_and_methods_are_distinguished(marker_set):
    """Rule methods are invoked, rule fields are read."""
    bindings = discover_bindings(Derived, marker_set)
    rules = {binding.name: binding for binding in bindings.rules}
    assert rules["base_rule"].is_field is False
    assert rules["field_rule"].is_field is True
    assert rules["field_rule"].owner is Derived
    assert all(binding.kind is HookKind.RULE for binding in rules.values())


def test_overridden_hook_is_bound_once_with_most_derived_definition(marker_set):
    """An override replaces the base hook; untagged overrides drop it."""

    class Override(Base):
        @before
        def base_setup(self):
            pass

        def base_teardown(self):
            pass

    bindings = discover_bindings(Override, marker_set)
    assert names(bindings.befores) == ["base_setup"]
    assert bindings.befores[0].owner is Override
    assert not bindings.afters


def test_markers_from_another_context_match_nothing():
    """Lookalike markers with different identity bind no hooks."""
    foreign = MarkerSet(before=object(), after=object(), rule=object())
    bindings = discover_bindings(Derived, foreign)
    assert not bindings.befores
    assert not bindings.afters
    assert not bindings.rules


def test_static_and_class_methods_can_be_hooks(marker_set):
    """Wrapped functions keep their tags."""

    class Subject:
        @staticmethod
        @before
        def static_setup():
            pass

        @classmethod
        @after
        def class_teardown(cls):
            pass

    bindings = discover_bindings(Subject, marker_set)
    assert names(bindings.befores) == ["static_setup"]
    assert names(bindings.afters) == ["class_teardown"]


def test_rule_manager_rejects_non_context_managers(marker_set):
    """A rule must yield something usable in a ``with`` statement."""

    class Subject:
        @rule
        def broken(self):
            return 42

    binding = discover_bindings(Subject, marker_set).rules[0]
    with pytest.raises(InvalidRuleError, match="broken"):
        binding.rule_manager(Subject())


def test_rule_manager_returns_field_value(marker_set):
    """Rule fields provide their stored manager."""
    target = Derived()
    bindings = discover_bindings(Derived, marker_set)
    rules = {binding.name: binding for binding in bindings.rules}
    assert rules["field_rule"].rule_manager(target) is target.field_rule


def test_collect_test_methods_in_declaration_order():
    """Only ``test*`` functions are collected, base class first."""
    assert collect_test_methods(Derived) == ["test_base", "test_derived"]
