"""pytest plugin for isolated test classes.

Classes decorated with `isoload.isolated` are collected as `IsolatedClass`
collectors. Each of their test methods becomes an `IsolatedMethod` item that
runs through the class's `IsolatedTestRunner`, i.e. in a fresh loading
context. Other classes are left to pytest.

The plugin is registered through the ``pytest11`` entry point; it can also be
enabled explicitly with ``-p isoload.plugin``.

Note:
    The test module is loaded again by name inside every context, so it must
    be importable under the name pytest gives it from the search path
    (pytest's default ``prepend`` import mode satisfies this).
"""

from __future__ import annotations

import inspect
from collections.abc import Iterator
from typing import Any

import pytest

from isoload.markers import ISOLATED_ATTR
from isoload.runner import IsolatedTestRunner


class IsolatedClass(pytest.Collector):
    """Collector for a class whose methods each run in a fresh context."""

    def __init__(self, *, obj: type, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.obj = obj
        self.runner = IsolatedTestRunner(obj)

    def collect(self) -> Iterator[IsolatedMethod]:
        for name in self.runner.test_methods():
            yield IsolatedMethod.from_parent(self, name=name)


class IsolatedMethod(pytest.Item):
    """A test method executed by an `IsolatedTestRunner`."""

    parent: IsolatedClass

    def runtest(self) -> None:
        result = self.parent.runner.run_method(self.name)
        if result.error is None:
            return
        error = result.error
        error.add_note(f"isoload: raised during {result.phase.value}")
        for extra in result.secondary:
            error.add_note(f"isoload: also raised during cleanup: {extra!r}")
        raise error

    def reportinfo(self) -> tuple[Any, int | None, str]:
        return self.path, None, f"{self.parent.name}.{self.name} [isolated]"


@pytest.hookimpl(tryfirst=True)
def pytest_pycollect_makeitem(
    collector: pytest.Collector, name: str, obj: object
) -> IsolatedClass | None:
    """Collect `isolated` classes with `IsolatedClass`."""
    if not (inspect.isclass(obj) and getattr(obj, ISOLATED_ATTR, None)):
        return None
    if not collector.classnamefilter(name):  # type: ignore[attr-defined]
        return None
    return IsolatedClass.from_parent(collector, name=name, obj=obj)
