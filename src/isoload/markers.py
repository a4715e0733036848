"""Declarative markers for isolated test classes.

`before`, `after` and `rule` tag members of a test class with a lifecycle
`Marker`. Discovery compares markers by identity, so the marker objects used
to find hooks must come from the same loading context as the subject class;
markers from a different context silently match nothing.

`exclude` declares additional name prefixes that must be resolved by the
shared context, on a class or on a single test method. Declarations are
repeatable and additive.

`isolated` opts a test class into per-method isolation when running under the
isoload pytest plugin.

Example:
    ```py
    from isoload import after, before, exclude, isolated

    @isolated
    @exclude("myapp.settings.")
    class TestCounter:
        @before
        def reset(self):
            ...

        @exclude("myapp.cache.")
        def test_increment(self):
            ...
    ```

A marker module used in place of this one must define `BEFORE`, `AFTER` and
`RULE` and tag members with the `MARKERS_ATTR` attribute.
"""

from __future__ import annotations

import inspect
from collections.abc import Callable
from typing import Any, TypeVar

T = TypeVar("T")

MARKERS_ATTR = "__isoload_markers__"
EXCLUDES_ATTR = "__isoload_excludes__"
ISOLATED_ATTR = "__isoload_isolated__"


class Marker:
    """A lifecycle marker. Only its identity matters."""

    __slots__ = ("kind",)

    def __init__(self, kind: str) -> None:
        self.kind = kind

    def __repr__(self) -> str:
        return f"<Marker {self.kind} at {id(self):#x}>"


BEFORE = Marker("before")
AFTER = Marker("after")
RULE = Marker("rule")


def _tag(obj: T, marker: Marker) -> T:
    markers = obj.__dict__.get(MARKERS_ATTR, ())  # type: ignore[attr-defined]
    setattr(obj, MARKERS_ATTR, (*markers, marker))
    return obj


def before(func: Callable[..., Any]) -> Callable[..., Any]:
    """Run the decorated method before each test method."""
    return _tag(func, BEFORE)


def after(func: Callable[..., Any]) -> Callable[..., Any]:
    """Run the decorated method after each test method, even on failure."""
    return _tag(func, AFTER)


class RuleField:
    """A class attribute holding a rule value.

    Reading the attribute from an instance returns the wrapped value; the
    wrapper itself stays visible on the class for discovery.
    """

    def __init__(self, value: Any) -> None:
        self.value = value

    def __get__(self, instance: object, owner: type | None = None) -> Any:
        if instance is None:
            return self
        return self.value


def rule(obj: Any) -> Any:
    """Wrap each test method (and its before/after hooks) with a rule.

    Decorating a method tags it; the method is called with the test instance
    and must return a context manager. Any other value is stored as a rule
    field and must itself be a context manager.
    """
    if inspect.isfunction(obj):
        return _tag(obj, RULE)
    return _tag(RuleField(obj), RULE)


def exclude(*prefixes: str) -> Callable[[T], T]:
    """Declare name prefixes resolved by the shared context.

    Applies to the whole class when decorating a class, or to a single test
    method. Trailing ``*`` wildcards are accepted and stripped later.
    """

    def decorator(obj: T) -> T:
        declared = obj.__dict__.get(EXCLUDES_ATTR, ())  # type: ignore[attr-defined]
        setattr(obj, EXCLUDES_ATTR, (*declared, *prefixes))
        return obj

    return decorator


def declared_exclusions(obj: Any) -> list[str]:
    """Return the prefixes declared on a class (including its bases) or method."""
    if inspect.isclass(obj):
        return [
            prefix
            for klass in reversed(obj.__mro__)
            for prefix in vars(klass).get(EXCLUDES_ATTR, ())
        ]
    return list(getattr(obj, EXCLUDES_ATTR, ()))


def isolated(
    cls: type | None = None, *, marker_module: str | None = None
) -> Any:
    """Run every test method of the decorated class in a fresh loading context.

    Args:
        cls: The test class (when used without arguments).
        marker_module: Dotted name of the module providing the lifecycle
            markers; defaults to this module.
    """

    def decorator(klass: type) -> type:
        setattr(klass, ISOLATED_ATTR, marker_module or True)
        return klass

    if cls is None:
        return decorator
    return decorator(cls)
