"""Exclusion prefixes: names resolved by the shared context, not an isolated one.

Excluded names are never materialized a second time. The built-in defaults
cover the test framework's own namespaces so the objects that drive a test run
are the same in every context. More prefixes come from a packaged resource,
an environment-overridable resource, and `exclude` declarations on test
classes and methods, in that order.

Resources are line oriented: one prefix per line, an optional trailing ``*``
is stripped, blank lines and ``#`` comments are ignored.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterable, Iterator, Mapping
from importlib.resources import files
from pathlib import Path

from isoload.catalog import PathCatalog
from isoload.config import EXCLUDES_ENV, EXCLUDES_RESOURCE, PACKAGED_EXCLUDES

logger = logging.getLogger(__name__)

WILDCARD = "*"
COMMENT = "#"
SEPARATOR = "."

DEFAULT_EXCLUSIONS = (
    "isoload.",
    "pytest.",
    "_pytest.",
    "pluggy.",
    "py.",
    "unittest.",
    "__main__.",
)


def strip_wildcard(prefix: str) -> str:
    """Return `prefix` trimmed, without its trailing wildcard marker."""
    prefix = prefix.strip()
    if prefix.endswith(WILDCARD):
        prefix = prefix[: -len(WILDCARD)]
    return prefix


class ExclusionSet:
    """Ordered, append-only set of name prefixes.

    Insertion order is preserved for diagnostics. A name matches when a
    registered prefix is a literal prefix of the name followed by a ``"."``,
    so ``"pkg."`` covers the package ``pkg`` and everything below it while
    ``"pkg"`` keeps its literal meaning and also covers ``pkg_extra``.
    """

    def __init__(self, prefixes: Iterable[str] = ()) -> None:
        self._prefixes: dict[str, None] = {}
        self.add_all(prefixes)

    def add(self, prefix: str) -> None:
        """Append one prefix, stripping a trailing wildcard marker."""
        if prefix := strip_wildcard(prefix):
            self._prefixes.setdefault(prefix, None)

    def add_all(self, prefixes: Iterable[str]) -> None:
        """Append literal prefixes, stripping trailing wildcard markers."""
        for prefix in prefixes:
            self.add(prefix)

    def matches(self, name: str) -> bool:
        """Return True if any registered prefix starts `name` plus a separator.

        A dot-terminated prefix therefore also matches the package it names:
        ``"pkg."`` matches ``pkg`` as well as ``pkg.mod``.
        """
        candidate = name + SEPARATOR
        return any(candidate.startswith(prefix) for prefix in self._prefixes)

    def copy(self) -> ExclusionSet:
        """Return an independent copy; later additions do not affect `self`."""
        return ExclusionSet(self._prefixes)

    def __contains__(self, prefix: object) -> bool:
        return prefix in self._prefixes

    def __iter__(self) -> Iterator[str]:
        return iter(self._prefixes)

    def __len__(self) -> int:
        return len(self._prefixes)

    def __repr__(self) -> str:
        return f"ExclusionSet({list(self._prefixes)!r})"


def seed_defaults() -> ExclusionSet:
    """Return a new set holding the built-in framework prefixes."""
    return ExclusionSet(DEFAULT_EXCLUSIONS)


def parse_lines(text: str) -> list[str]:
    """Parse resource text into prefixes.

    Args:
        text: Line oriented resource content.

    Returns:
        list[str]: Prefixes in file order, wildcard markers stripped.
    """
    prefixes = []
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith(COMMENT):
            continue
        if prefix := strip_wildcard(line):
            prefixes.append(prefix)
    return prefixes


def _read_resource(locator: str, catalog: PathCatalog | None) -> str | None:
    """Return the text of a resource, or None if it cannot be found."""
    path = Path(locator)
    package, sep, resource = locator.partition(":")
    if (
        sep
        and resource
        and not path.is_absolute()
        and all(part.isidentifier() for part in package.split("."))
    ):
        try:
            return files(package).joinpath(resource).read_text(encoding="utf-8")
        except (ModuleNotFoundError, TypeError, OSError) as e:
            logger.debug("Resource %s unavailable: %s", locator, e)
            return None

    if not path.is_absolute() and catalog is not None:
        if (found := catalog.read(locator)) is not None:
            entry, data = found
            logger.debug("Resource %s found in %s", locator, entry)
            return data.decode("utf-8")
    try:
        return path.read_text(encoding="utf-8")
    except OSError:
        return None


def load_from_resource(locator: str, catalog: PathCatalog | None = None) -> list[str]:
    """Read prefixes from a named resource.

    Args:
        locator: Either ``"package:resource"`` (read with importlib.resources),
            an absolute filesystem path, or a relative name looked up on the
            catalog entries and then in the working directory.
        catalog: Search path used for relative names.

    Returns:
        list[str]: The prefixes, or an empty list if the resource is missing or
        unreadable.
    """
    try:
        text = _read_resource(locator, catalog)
    except UnicodeDecodeError as e:
        logger.warning("Ignoring undecodable exclusion resource %s: %s", locator, e)
        return []
    if text is None:
        logger.debug("No exclusion resource at %s", locator)
        return []
    prefixes = parse_lines(text)
    logger.debug("Loaded %d exclusion(s) from %s", len(prefixes), locator)
    return prefixes


def load_override(
    env_var: str,
    default_name: str,
    catalog: PathCatalog | None = None,
    environ: Mapping[str, str] | None = None,
) -> list[str]:
    """Read prefixes from an environment-overridable resource.

    Args:
        env_var: Environment variable that may name an alternate resource.
        default_name: Resource used when `env_var` is unset or empty.
        catalog: Search path used for relative names.
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        list[str]: The prefixes; empty if the resource is absent.
    """
    environ = os.environ if environ is None else environ
    locator = environ.get(env_var) or default_name
    return load_from_resource(locator, catalog)


def build_exclusions(
    catalog: PathCatalog | None = None, environ: Mapping[str, str] | None = None
) -> ExclusionSet:
    """Build the process-wide exclusion set shared by one runner.

    Order: built-in defaults, the packaged resource, then the override
    resource named by `ISOLOAD_EXCLUDES` (default ``isoload-excludes.txt`` on
    the search path). Declared exclusions are added later, per test method, to
    a copy of this set.
    """
    exclusions = seed_defaults()
    exclusions.add_all(load_from_resource(PACKAGED_EXCLUDES))
    exclusions.add_all(load_override(EXCLUDES_ENV, EXCLUDES_RESOURCE, catalog, environ))
    return exclusions
