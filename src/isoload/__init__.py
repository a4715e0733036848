"""isoload

Run every test method in a fresh, disposable loading context so that
module-level state, class attributes and singletons of the code under test
never leak from one test method into the next.
"""

from .catalog import PathCatalog
from .errors import IsolationError, UnitNotFoundError
from .exclusions import ExclusionSet
from .loader import IsolationContext
from .markers import after, before, exclude, isolated, rule
from .runner import IsolatedTestRunner, MethodResult

__all__ = [
    "__version__",
    "ExclusionSet",
    "IsolatedTestRunner",
    "IsolationContext",
    "IsolationError",
    "MethodResult",
    "PathCatalog",
    "UnitNotFoundError",
    "after",
    "before",
    "exclude",
    "isolated",
    "rule",
]
__version__ = "0.1.0"
