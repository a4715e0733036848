"""Isolated unit loader.

An `IsolationContext` is an explicit map from unit name to module plus the
chain of resolvers that fills it. Modules materialized by a context are
created from source and executed in a brand-new namespace; the "same" module
materialized by two contexts yields two distinct objects that share no
module-level state and whose classes are not identical.

Imports executed by materialized code are routed back into the owning context
through a private ``__import__``, so a subject and everything it imports from
the search path live in the same context. Excluded and standard library names
resolve to the interpreter's shared modules.

Materialized modules only appear in ``sys.modules`` while their context is
installed (see `IsolationContext.installed`): while a module body runs and
while a test method runs. Library code that looks a class's module up by name
(``dataclasses``, ``pickle``, ``typing.get_type_hints``) then finds the
context's copy. The previous entries are restored when the scope ends.

Example:
    ```py
    context = IsolationContext(PathCatalog.build("tests:src"))
    counter = context.resolve("app.counter")
    counter.increment()
    IsolationContext(context.catalog).resolve("app.counter").value  # -> 0
    ```
"""

from __future__ import annotations

import builtins
import contextlib
import logging
import sys
import threading
from collections.abc import Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from importlib.machinery import ModuleSpec
from importlib.util import decode_source, resolve_name
from types import MappingProxyType, ModuleType
from typing import Any

from isoload.adapters.resolvers import (
    CatalogResolver,
    ExcludedResolver,
    StandardLibraryResolver,
)
from isoload.catalog import PathCatalog, SourceHit
from isoload.errors import UnitNotFoundError
from isoload.exclusions import ExclusionSet, seed_defaults
from isoload.interfaces.resolver import UnitResolver

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _Installation:
    """One context's modules in ``sys.modules`` and the entries they replaced."""

    context: IsolationContext
    owner: int
    depth: int = 0
    saved: dict[str, ModuleType | None] = field(default_factory=dict)

    def install(self, name: str, module: ModuleType) -> None:
        self.saved.setdefault(name, sys.modules.get(name))
        sys.modules[name] = module

    def uninstall(self, name: str) -> None:
        if name in self.saved:
            self._put_back(name, self.saved.pop(name))

    def restore(self) -> None:
        for name, previous in reversed(self.saved.items()):
            self._put_back(name, previous)
        self.saved.clear()

    @staticmethod
    def _put_back(name: str, previous: ModuleType | None) -> None:
        if previous is None:
            sys.modules.pop(name, None)
        else:
            sys.modules[name] = previous


class _ModuleTable:
    """Process-wide stack of installed contexts.

    ``sys.modules`` is shared by the whole process, so only one context is
    installed at a time. Other threads resolving through the installed
    context join its installation. The thread that installed the top context
    may install another one on top of it (nested runs). Every other thread
    waits until the stack is empty.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._stack: list[_Installation] = []

    def enter(self, context: IsolationContext) -> _Installation:
        me = threading.get_ident()
        with self._cond:
            while True:
                top = self._stack[-1] if self._stack else None
                if top is not None and top.context is context:
                    break
                if top is None or top.owner == me:
                    top = _Installation(context, me)
                    self._stack.append(top)
                    for name, module in list(context.units.items()):
                        if context.owns(module):
                            top.install(name, module)
                    break
                self._cond.wait()
            top.depth += 1
            return top

    def exit(self, installation: _Installation) -> None:
        with self._cond:
            installation.depth -= 1
            while self._stack and self._stack[-1].depth == 0:
                self._stack.pop().restore()
            self._cond.notify_all()

    def _find(self, context: IsolationContext) -> _Installation | None:
        for installation in reversed(self._stack):
            if installation.context is context:
                return installation
        return None

    def add(self, context: IsolationContext, name: str, module: ModuleType) -> None:
        with self._cond:
            if (installation := self._find(context)) is not None:
                installation.install(name, module)

    def discard(self, context: IsolationContext, name: str) -> None:
        with self._cond:
            if (installation := self._find(context)) is not None:
                installation.uninstall(name)


_MODULE_TABLE = _ModuleTable()


class IsolationContext:
    """A disposable loading context.

    Args:
        catalog: Search path to materialize units from. Defaults to the
            interpreter's ``sys.path``. Catalogs are read-only and may be shared
            between contexts.
        exclusions: Prefixes resolved by the shared context. The context keeps
            its own copy, which only ever grows.
        resolvers: Replacement resolver chain; defaults to standard library,
            exclusions, then the catalog.

    Note:
        A context is meant to be owned by a single test invocation. Resolution
        is nevertheless serialized with a re-entrant lock, so a context shared
        by accident stays consistent. Dropping every reference to the context
        and its modules is the only teardown.
    """

    def __init__(
        self,
        catalog: PathCatalog | None = None,
        exclusions: ExclusionSet | None = None,
        resolvers: Sequence[UnitResolver] | None = None,
    ) -> None:
        self.catalog = PathCatalog.from_sys_path() if catalog is None else catalog
        self.exclusions = (seed_defaults() if exclusions is None else exclusions).copy()
        self._resolvers: tuple[UnitResolver, ...] = tuple(
            resolvers
            if resolvers is not None
            else (
                StandardLibraryResolver(),
                ExcludedResolver(),
                CatalogResolver(self.catalog),
            )
        )
        self._units: dict[str, ModuleType] = {}
        self._sources: dict[str, bytes] = {}
        self._lock = threading.RLock()
        self._builtins = {**vars(builtins), "__import__": self._import}

    def __repr__(self) -> str:
        return f"<IsolationContext units={len(self._units)} at {id(self):#x}>"

    def __contains__(self, name: object) -> bool:
        return name in self._units

    @property
    def units(self) -> Mapping[str, ModuleType]:
        """Read-only view of the units resolved so far, by name."""
        return MappingProxyType(self._units)

    def add_exclusions(self, prefixes: Iterable[str]) -> None:
        """Append exclusion prefixes; they apply to names not resolved yet."""
        self.exclusions.add_all(prefixes)

    def owns(self, module: ModuleType) -> bool:
        """Return True if `module` was materialized by this context."""
        return getattr(module, "__loader__", None) is self

    @contextlib.contextmanager
    def installed(self) -> Iterator[None]:
        """Expose this context's modules in ``sys.modules`` for the scope.

        Entries the modules replace are restored when the outermost scope of
        this context ends. Units materialized inside the scope are added as
        they appear. Scopes of the same context nest and may be entered from
        several threads; a different context waits until this one is gone,
        unless it is entered from the thread that installed this one.
        """
        installation = _MODULE_TABLE.enter(self)
        try:
            yield
        finally:
            _MODULE_TABLE.exit(installation)

    # --- Resolution ---

    def resolve(self, name: str) -> ModuleType:
        """Resolve a unit name to a module of this context.

        Args:
            name: Absolute dotted module name.

        Returns:
            ModuleType: The cached module if `name` was resolved before,
            otherwise the module produced by the first resolver that answers.

        Raises:
            UnitNotFoundError: If no resolver can produce the module.
            Exception: Anything raised while executing a materialized module.
        """
        with self._lock:
            if (module := self._units.get(name)) is not None:
                return module
            for resolver in self._resolvers:
                if (module := resolver.resolve(name, self)) is not None:
                    break
            else:
                raise UnitNotFoundError(name, len(self.catalog))
            return self._units.setdefault(name, module)

    def load_class(self, module: str, qualname: str) -> Any:
        """Resolve `module` and return the object at `qualname` inside it.

        Raises:
            UnitNotFoundError: If the module cannot be resolved.
            AttributeError: If `qualname` does not exist in the module.
        """
        target: Any = self.resolve(module)
        for part in qualname.split("."):
            target = getattr(target, part)
        return target

    def materialize(self, hit: SourceHit) -> ModuleType:
        """Create, cache and execute a new module from located source.

        The module is cached before its body runs, so circular imports see the
        partially initialized module exactly like the interpreter's import
        system does. A module whose body fails is evicted again.
        """
        name = hit.name
        module = ModuleType(name)
        spec = ModuleSpec(name, self, origin=hit.origin, is_package=hit.is_package)
        spec.has_location = True
        module.__spec__ = spec
        module.__loader__ = self
        module.__file__ = hit.origin
        if hit.is_package:
            module.__path__ = [hit.package_path]
            spec.submodule_search_locations = module.__path__
            module.__package__ = name
        else:
            module.__package__ = name.rpartition(".")[0]
        module.__builtins__ = self._builtins  # type: ignore[attr-defined]

        self._units[name] = module
        self._sources[name] = hit.source
        logger.debug("Materializing %s from %s", name, hit.origin)
        with self.installed():
            _MODULE_TABLE.add(self, name, module)
            try:
                code = compile(hit.source, hit.origin, "exec", dont_inherit=True)
                exec(code, module.__dict__)  # pylint: disable=exec-used
            except BaseException:
                _MODULE_TABLE.discard(self, name)
                del self._units[name]
                del self._sources[name]
                raise
        return module

    # --- Loader protocol (linecache/inspect use this for archive sources) ---

    def get_source(self, fullname: str) -> str | None:
        """Return the decoded source of a unit materialized by this context."""
        if (data := self._sources.get(fullname)) is None:
            return None
        return decode_source(data)

    def is_package(self, fullname: str) -> bool:
        """Return True if `fullname` was materialized as a package."""
        module = self._units.get(fullname)
        return module is not None and self.owns(module) and hasattr(module, "__path__")

    # --- __import__ for materialized code ---

    def _import(  # pylint: disable=too-many-arguments,too-many-positional-arguments
        self,
        name: str,
        globals: Mapping[str, Any] | None = None,  # pylint: disable=redefined-builtin
        locals: Mapping[str, Any] | None = None,  # pylint: disable=redefined-builtin,unused-argument
        fromlist: Sequence[str] | None = (),
        level: int = 0,
    ) -> ModuleType:
        if level > 0:
            package = (globals or {}).get("__package__")
            if not package:
                raise ImportError("attempted relative import with no known parent package")
            absolute = resolve_name("." * level + name, package)
        else:
            absolute = name
        module = self.resolve(absolute)

        if fromlist:
            if hasattr(module, "__path__"):
                self._handle_fromlist(module, absolute, fromlist)
            return module
        if level == 0:
            return self.resolve(name.partition(".")[0])
        if not name:
            return module
        cut_off = len(name) - len(name.partition(".")[0])
        return self.resolve(absolute[: len(absolute) - cut_off])

    def _handle_fromlist(
        self, module: ModuleType, absolute: str, fromlist: Iterable[str]
    ) -> None:
        """Resolve submodules named in a ``from package import ...`` list."""
        for item in fromlist:
            if item == "*":
                if exported := getattr(module, "__all__", None):
                    self._handle_fromlist(module, absolute, exported)
                continue
            if hasattr(module, item):
                continue
            submodule = f"{absolute}.{item}"
            try:
                self.resolve(submodule)
            except UnitNotFoundError as e:
                # A missing attribute that is not a submodule is reported by
                # the import statement itself.
                if e.name != submodule:
                    raise
