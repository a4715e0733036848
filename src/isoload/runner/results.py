"""Per-method lifecycle phases and outcomes."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class Phase(enum.Enum):
    """Lifecycle phases of one isolated test method, in execution order."""

    INIT = "init"
    DETERMINE_SEARCH_PATH = "determine-search-path"
    CREATE_CONTEXT = "create-context"
    RESOLVE_SUBJECT = "resolve-subject"
    RESOLVE_MARKERS = "resolve-markers"
    DISCOVER_BINDINGS = "discover-bindings"
    RUN_BEFORES = "run-befores"
    RUN_TEST_BODY = "run-test-body"
    RUN_AFTERS_AND_RULES = "run-afters-and-rules"
    DISPOSE_CONTEXT = "dispose-context"

    @property
    def is_initialization(self) -> bool:
        """True for phases that happen before any user hook runs."""
        return self in _INITIALIZATION_PHASES


_INITIALIZATION_PHASES = frozenset(
    {
        Phase.INIT,
        Phase.DETERMINE_SEARCH_PATH,
        Phase.CREATE_CONTEXT,
        Phase.RESOLVE_SUBJECT,
        Phase.RESOLVE_MARKERS,
        Phase.DISCOVER_BINDINGS,
    }
)


class Status(enum.Enum):
    """Outcome of a test method."""

    PASSED = "passed"
    FAILED = "failed"
    ERROR = "error"


@dataclass
class MethodResult:
    """Outcome of running one test method through its own context.

    Attributes:
        name: Test method name.
        error: The first failure, or None if the method passed.
        phase: Phase in which `error` was raised (`DISPOSE_CONTEXT` on success).
        secondary: Failures raised after `error`, typically by cleanup.
        duration: Wall time of the whole lifecycle in seconds.
    """

    name: str
    error: Exception | None = None
    phase: Phase = Phase.DISPOSE_CONTEXT
    secondary: list[Exception] = field(default_factory=list)
    duration: float = 0.0

    @property
    def status(self) -> Status:
        """`PASSED`, `FAILED` for assertion failures in hooks or the body,
        `ERROR` otherwise (including initialization failures)."""
        if self.error is None:
            return Status.PASSED
        if isinstance(self.error, AssertionError) and not self.phase.is_initialization:
            return Status.FAILED
        return Status.ERROR

    @property
    def passed(self) -> bool:
        """True if the method passed."""
        return self.error is None

    def record(self, phase: Phase, error: Exception) -> None:
        """Record a failure; the first one becomes the outcome."""
        if error is self.error or error in self.secondary:
            return
        if self.error is None:
            self.error = error
            self.phase = phase
        else:
            self.secondary.append(error)

    def suppress(self) -> None:
        """Drop the current outcome (a rule handled it); promote the next failure."""
        # Secondary failures only ever come from cleanup.
        if self.secondary:
            self.error = self.secondary.pop(0)
            self.phase = Phase.RUN_AFTERS_AND_RULES
        else:
            self.error = None
            self.phase = Phase.DISPOSE_CONTEXT
