"""Per-test lifecycle orchestration.

`IsolatedTestRunner` runs every test method of a class through its own,
freshly created `IsolationContext`:

    DETERMINE_SEARCH_PATH -> CREATE_CONTEXT -> RESOLVE_SUBJECT ->
    RESOLVE_MARKERS -> DISCOVER_BINDINGS -> RUN_BEFORES -> RUN_TEST_BODY ->
    RUN_AFTERS_AND_RULES -> DISPOSE_CONTEXT

The subject class, the lifecycle markers and everything they import are
resolved through that one context. The class object the host discovered is
only used for its name and its `exclude` declarations; the instance that runs
is created from the context's copy of the class.

After-hooks and rule teardown always run once rules and befores have been
attempted, whatever the outcome of befores and the test body. The first
failure is the method's outcome; later failures are kept as secondary errors.
Nothing raised by user code escapes `run_method`.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterable, Mapping
from typing import Any

from isoload.catalog import PathCatalog
from isoload.config import DEFAULT_MARKER_MODULE
from isoload.errors import SubjectResolutionError
from isoload.exclusions import ExclusionSet, build_exclusions
from isoload.loader import IsolationContext
from isoload.markers import ISOLATED_ATTR, declared_exclusions
from isoload.searchpath import determine_search_path

from .bindings import Bindings, MarkerSet, collect_test_methods, discover_bindings
from .results import MethodResult, Phase

logger = logging.getLogger(__name__)


class IsolatedTestRunner:
    """Runs the test methods of one class, each in a fresh loading context.

    Args:
        test_class: The test class as discovered by the host engine.
        search_path: Explicit search path. When None, it is determined once
            from the environment (see `isoload.searchpath`), falling back to
            ``sys.path``.
        marker_module: Dotted name of the marker module. Defaults to the
            module named by ``@isolated(marker_module=...)`` or
            ``isoload.markers``.
        exclusions: Extra prefixes added to every context of this runner.
        environ: Environment mapping; defaults to ``os.environ``.

    Note:
        `run_method` is serialized per runner. Different runners share no
        state, but their test code runs one method at a time, since a running
        method's modules are installed in ``sys.modules``.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        test_class: type,
        *,
        search_path: str | None = None,
        marker_module: str | None = None,
        exclusions: Iterable[str] = (),
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.test_class = test_class
        declared_module = getattr(test_class, ISOLATED_ATTR, None)
        self.marker_module = marker_module or (
            declared_module if isinstance(declared_module, str) else DEFAULT_MARKER_MODULE
        )
        self._search_path = search_path
        self._search_path_determined = search_path is not None
        self._extra_exclusions = tuple(exclusions)
        self._environ = environ
        self._catalog: PathCatalog | None = None
        self._exclusions: ExclusionSet | None = None
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return f"IsolatedTestRunner({self.subject_name})"

    @property
    def subject_name(self) -> str:
        """``module:qualname`` of the test class."""
        return f"{self.test_class.__module__}:{self.test_class.__qualname__}"

    # --- Shared, lazily determined configuration ---

    def get_search_path(self) -> str | None:
        """Return the explicit search path, determining it on first use."""
        with self._lock:
            if not self._search_path_determined:
                self._search_path = determine_search_path(self._environ)
                self._search_path_determined = True
            return self._search_path

    def get_catalog(self) -> PathCatalog:
        """Return the catalog shared (read-only) by this runner's contexts."""
        with self._lock:
            if self._catalog is None:
                search_path = self.get_search_path()
                self._catalog = (
                    PathCatalog.from_sys_path()
                    if search_path is None
                    else PathCatalog.build(search_path)
                )
                logger.debug("%s searches %r", self.subject_name, self._catalog)
            return self._catalog

    def get_exclusions(self) -> ExclusionSet:
        """Return this runner's base exclusions (defaults, resources, extras)."""
        with self._lock:
            if self._exclusions is None:
                exclusions = build_exclusions(self.get_catalog(), self._environ)
                exclusions.add_all(self._extra_exclusions)
                self._exclusions = exclusions
            return self._exclusions

    # --- Running ---

    def test_methods(self) -> list[str]:
        """Names of the test methods of the host-discovered class."""
        return collect_test_methods(self.test_class)

    def run(self) -> list[MethodResult]:
        """Run every test method in declaration order."""
        return [self.run_method(name) for name in self.test_methods()]

    def create_context(self, method_name: str) -> IsolationContext:
        """Create the context for one test method.

        The context's exclusions are the runner's base set plus the class-level
        and then the method-level `exclude` declarations.
        """
        exclusions = self.get_exclusions().copy()
        exclusions.add_all(declared_exclusions(self.test_class))
        exclusions.add_all(declared_exclusions(getattr(self.test_class, method_name)))
        return IsolationContext(self.get_catalog(), exclusions)

    def resolve_subject(self, context: IsolationContext) -> type:
        """Load the test class through `context`.

        Raises:
            SubjectResolutionError: If the class cannot be found in the context.
        """
        module = self.test_class.__module__
        qualname = self.test_class.__qualname__
        try:
            subject = context.load_class(module, qualname)
        except (ImportError, AttributeError) as e:
            raise SubjectResolutionError(module, qualname, str(e)) from e
        if subject is self.test_class:
            logger.warning(
                "%s resolved to the shared class; its state is not isolated",
                self.subject_name,
            )
        return subject

    def run_method(self, method_name: str) -> MethodResult:
        """Run one test method through its own context.

        Args:
            method_name: Name of the test method.

        Returns:
            MethodResult: The outcome. Exceptions are captured, never raised.

        Note:
            The context is dropped when the method ends, but recorded errors
            keep their tracebacks. Their frames reference the context's
            classes and modules, which stay alive until the result is gone.
        """
        with self._lock:
            result = MethodResult(method_name)
            started = time.perf_counter()
            phase = Phase.INIT
            context: IsolationContext | None = None
            try:
                phase = Phase.DETERMINE_SEARCH_PATH
                self.get_catalog()

                phase = Phase.CREATE_CONTEXT
                context = self.create_context(method_name)

                phase = Phase.RESOLVE_SUBJECT
                subject = self.resolve_subject(context)

                phase = Phase.RESOLVE_MARKERS
                markers = MarkerSet.from_module(context.resolve(self.marker_module))

                phase = Phase.DISCOVER_BINDINGS
                bindings = discover_bindings(subject, markers)
                getattr(subject, method_name)

                with context.installed():
                    self._execute(subject, method_name, bindings, result)
            except Exception as e:  # pylint: disable=broad-except
                logger.debug(
                    "%s.%s failed during %s", self.subject_name, method_name, phase.value
                )
                result.record(phase, e)
            finally:
                # The context lives on only through the tracebacks of recorded
                # errors.
                context = None
                result.duration = time.perf_counter() - started

            logger.info(
                "%s.%s %s (%.3fs)",
                self.subject_name,
                method_name,
                result.status.value,
                result.duration,
            )
            return result

    @staticmethod
    def _execute(
        subject: type, method_name: str, bindings: Bindings, result: MethodResult
    ) -> None:
        """Run rules, befores, the test body, afters and rule teardown."""
        phase = Phase.RUN_BEFORES
        target: Any = None
        entered: list[Any] = []
        try:
            target = subject()
            for binding in bindings.rules:
                manager = binding.rule_manager(target)
                type(manager).__enter__(manager)
                entered.append(manager)
            for binding in bindings.befores:
                binding.invoke(target)

            phase = Phase.RUN_TEST_BODY
            getattr(target, method_name)()
        except Exception as e:  # pylint: disable=broad-except
            result.record(phase, e)

        phase = Phase.RUN_AFTERS_AND_RULES
        if target is not None:
            for binding in bindings.afters:
                try:
                    binding.invoke(target)
                except Exception as e:  # pylint: disable=broad-except
                    result.record(phase, e)

        for manager in reversed(entered):
            error = result.error
            try:
                suppressed = type(manager).__exit__(
                    manager,
                    type(error) if error is not None else None,
                    error,
                    error.__traceback__ if error is not None else None,
                )
            except Exception as e:  # pylint: disable=broad-except
                result.record(phase, e)
            else:
                if suppressed and error is not None:
                    result.suppress()
