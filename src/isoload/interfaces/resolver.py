"""Unit resolver interface.

A loading context is a small chain of responsibility: an ordered list of
resolvers, each asked in turn whether it can produce the module for a name.
The first resolver that returns a module wins; a resolver that cannot answer
returns None so the next one gets a chance.
"""

from __future__ import annotations

import abc
from types import ModuleType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from isoload.loader import IsolationContext


class UnitResolver(abc.ABC):
    """One tier of a context's resolution chain."""

    @abc.abstractmethod
    def resolve(self, name: str, context: IsolationContext) -> ModuleType | None:
        """Resolve `name` for `context`.

        Args:
            name: Absolute dotted unit name, e.g. ``"pkg.sub.mod"``.
            context: The context the unit is being resolved for. Resolvers
                that materialize units must bind them to this context.

        Returns:
            ModuleType | None: The module, or None to fall through to the next
            resolver.

        Raises:
            Exception: Errors raised while executing a materialized module
                propagate unchanged.
        """
