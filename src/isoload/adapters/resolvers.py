"""Resolver tiers used by isolation contexts.

The default chain is, in order:

1. `StandardLibraryResolver`: built-in and standard library modules always
   come from the interpreter, which cannot host a second copy of them.
2. `ExcludedResolver`: names matching the context's exclusion prefixes are
   delegated to the interpreter's import system. When the interpreter cannot
   import them either, resolution falls through to the next tier.
3. `CatalogResolver`: everything else is read from the search path and
   materialized as a new module owned by the context.
"""

from __future__ import annotations

import abc
import importlib
import logging
import sys
from types import ModuleType
from typing import TYPE_CHECKING

from isoload.interfaces.resolver import UnitResolver

if TYPE_CHECKING:
    from isoload.catalog import PathCatalog
    from isoload.loader import IsolationContext

logger = logging.getLogger(__name__)

# pylint: disable=too-few-public-methods

STDLIB_NAMES = frozenset(sys.stdlib_module_names) | frozenset(
    sys.builtin_module_names
)


class ParentDelegatingResolver(UnitResolver):
    """Resolve accepted names through the interpreter's shared import system."""

    @abc.abstractmethod
    def accepts(self, name: str, context: IsolationContext) -> bool:
        """Return True if `name` must come from the shared context."""

    def resolve(self, name: str, context: IsolationContext) -> ModuleType | None:
        if not self.accepts(name, context):
            return None
        try:
            module = importlib.import_module(name)
        except ImportError as e:
            # Best effort: let the isolated tiers have a go.
            logger.debug("Shared context cannot import %s (%s); falling through", name, e)
            return None
        logger.debug("Delegated %s to the shared context", name)
        return module


class StandardLibraryResolver(ParentDelegatingResolver):
    """Shared tier for built-in and standard library modules."""

    def accepts(self, name: str, context: IsolationContext) -> bool:
        return name.partition(".")[0] in STDLIB_NAMES


class ExcludedResolver(ParentDelegatingResolver):
    """Shared tier for names matching the context's exclusion prefixes."""

    def accepts(self, name: str, context: IsolationContext) -> bool:
        return context.exclusions.matches(name)


class CatalogResolver(UnitResolver):
    """Isolated tier: materialize sources found on the search path."""

    def __init__(self, catalog: PathCatalog) -> None:
        self._catalog = catalog

    def resolve(self, name: str, context: IsolationContext) -> ModuleType | None:
        parent_name, _, child = name.rpartition(".")
        parent = context.resolve(parent_name) if parent_name else None

        # Executing the parent package may already have imported `name`.
        if name in context:
            return context.units[name]

        hit = self._catalog.find_module(name)
        if hit is None:
            return None

        module = context.materialize(hit)
        # Shared parents are never mutated.
        if parent is not None and context.owns(parent):
            setattr(parent, child, module)
        return module
