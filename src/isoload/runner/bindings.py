"""Binding discovery: find lifecycle hooks on a context-resolved subject.

Discovery matches members by marker *identity*. The subject and the marker
objects must therefore come from the same isolation context (or both from the
shared context); markers from any other context match nothing, without error.
"""

from __future__ import annotations

import enum
import inspect
from collections.abc import Iterator
from dataclasses import dataclass
from types import ModuleType
from typing import Any

from isoload.errors import InvalidRuleError, MarkerResolutionError
from isoload.markers import MARKERS_ATTR

TEST_PREFIX = "test"


class HookKind(enum.Enum):
    """Lifecycle hook kinds."""

    BEFORE = "before"
    AFTER = "after"
    RULE = "rule"


@dataclass(frozen=True)
class MarkerSet:
    """The lifecycle marker objects of one context."""

    before: object
    after: object
    rule: object
    attr: str = MARKERS_ATTR

    @classmethod
    def from_module(cls, module: ModuleType) -> MarkerSet:
        """Read the markers from a (context-resolved) marker module.

        Raises:
            MarkerResolutionError: If the module lacks one of the markers.
        """
        values = {}
        for kind in HookKind:
            marker_name = kind.name
            if not hasattr(module, marker_name):
                raise MarkerResolutionError(module.__name__, marker_name)
            values[kind.value] = getattr(module, marker_name)
        return cls(**values, attr=getattr(module, "MARKERS_ATTR", MARKERS_ATTR))

    def kinds_of(self, member: Any) -> Iterator[HookKind]:
        """Yield the hook kinds `member` is tagged with, by marker identity."""
        tags = _tags(member, self.attr)
        for kind in HookKind:
            marker = getattr(self, kind.value)
            if any(tag is marker for tag in tags):
                yield kind


def _tags(member: Any, attr: str) -> tuple[Any, ...]:
    tags = getattr(member, attr, None)
    if tags is None:
        # staticmethod/classmethod wrapping a tagged function
        tags = getattr(getattr(member, "__func__", None), attr, ())
    if not isinstance(tags, (tuple, list)):
        return ()
    return tuple(tags)


@dataclass(frozen=True)
class HookBinding:
    """A member of the subject tagged with a lifecycle marker.

    Attributes:
        kind: The hook kind.
        name: Attribute name on the subject.
        owner: Class in the subject's MRO that declares the member.
        is_field: True for rule fields, False for methods.
    """

    kind: HookKind
    name: str
    owner: type
    is_field: bool = False

    def invoke(self, target: object) -> Any:
        """Call the bound method on `target` and return its result."""
        return getattr(target, self.name)()

    def rule_manager(self, target: object) -> Any:
        """Return the context manager provided by this rule on `target`.

        Raises:
            InvalidRuleError: If the value is not a context manager.
        """
        value = getattr(target, self.name) if self.is_field else self.invoke(target)
        if not (hasattr(value, "__enter__") and hasattr(value, "__exit__")):
            raise InvalidRuleError(self.name, value)
        return value


@dataclass(frozen=True)
class Bindings:
    """All hooks discovered on a subject, in execution order.

    `befores` and `rules` run base classes first, `afters` run subclasses
    first; within one class, declaration order is kept.
    """

    befores: tuple[HookBinding, ...]
    afters: tuple[HookBinding, ...]
    rules: tuple[HookBinding, ...]


def _members(subject: type) -> Iterator[tuple[str, type, Any]]:
    """Yield ``(name, owner, member)`` base classes first, declaration order.

    Overridden names are reported once, at the position of their first
    declaration, with the most derived definition.
    """
    seen: dict[str, None] = {}
    for klass in reversed(subject.__mro__):
        if klass is object:
            continue
        for name in vars(klass):
            seen.setdefault(name, None)
    for name in seen:
        owner = next(k for k in subject.__mro__ if name in vars(k))
        yield name, owner, vars(owner)[name]


def discover_bindings(subject: type, markers: MarkerSet) -> Bindings:
    """Enumerate the hooks of `subject` tagged with `markers`.

    Args:
        subject: The test class as resolved by the active context.
        markers: Markers resolved by the same context.

    Returns:
        Bindings: Discovered hooks; empty if the markers come from a different
        context than the subject.
    """
    found: dict[HookKind, list[HookBinding]] = {kind: [] for kind in HookKind}
    for name, owner, member in _members(subject):
        is_method = inspect.isfunction(member) or isinstance(
            member, (staticmethod, classmethod)
        )
        for kind in markers.kinds_of(member):
            is_field = kind is HookKind.RULE and not is_method
            found[kind].append(HookBinding(kind, name, owner, is_field))

    depth = {klass: index for index, klass in enumerate(subject.__mro__)}
    afters = sorted(found[HookKind.AFTER], key=lambda binding: depth[binding.owner])
    return Bindings(
        befores=tuple(found[HookKind.BEFORE]),
        afters=tuple(afters),
        rules=tuple(found[HookKind.RULE]),
    )


def collect_test_methods(test_class: type) -> list[str]:
    """Return the names of the test methods of a class, in declaration order."""
    return [
        name
        for name, _, member in _members(test_class)
        if name.startswith(TEST_PREFIX) and inspect.isfunction(member)
    ]
