"""Errors raised while resolving units and running isolated tests."""


class IsolationError(Exception):
    """Base class for all isoload errors."""


class UnitNotFoundError(IsolationError, ImportError):
    """Raised when a unit cannot be resolved by any tier of a context.

    Subclasses `ImportError` so that code executing inside a context can keep
    guarding optional imports with ``except ImportError``.
    """

    def __init__(self, name: str, searched: int = 0) -> None:
        super().__init__(
            f"Unit '{name}' not found in any of {searched} search path entries"
        )
        self.name = name
        self.searched = searched


class SubjectResolutionError(IsolationError):
    """Raised when the test subject cannot be loaded through a fresh context."""

    def __init__(self, module: str, qualname: str, reason: str) -> None:
        super().__init__(f"Cannot load test subject {module}:{qualname}: {reason}")
        self.module = module
        self.qualname = qualname


class MarkerResolutionError(IsolationError):
    """Raised when the lifecycle marker module lacks a required marker."""

    def __init__(self, module: str, marker: str) -> None:
        super().__init__(f"Marker module '{module}' does not define {marker}")
        self.module = module
        self.marker = marker


class InvalidRuleError(IsolationError):
    """Raised when a rule-tagged member does not yield a context manager."""

    def __init__(self, name: str, value: object) -> None:
        super().__init__(
            f"Rule '{name}' must be a context manager, got {type(value).__name__}"
        )
        self.name = name
