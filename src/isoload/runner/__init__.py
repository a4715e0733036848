"""Per-test lifecycle orchestration for isolated test classes."""

from .bindings import Bindings, HookBinding, HookKind, MarkerSet, discover_bindings
from .lifecycle import IsolatedTestRunner
from .results import MethodResult, Phase, Status

__all__ = [
    "Bindings",
    "HookBinding",
    "HookKind",
    "IsolatedTestRunner",
    "MarkerSet",
    "MethodResult",
    "Phase",
    "Status",
    "discover_bindings",
]
