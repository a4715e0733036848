"""Ordered catalog of search path entries.

A `PathCatalog` is built once from a search path string and then shared,
read-only, by every isolation context created from it. Ordering is
significant: the first entry that holds a requested path wins.
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from isoload.adapters.path_entries import ArchiveEntry, DirectoryEntry
from isoload.interfaces.path_entry import PathEntry

logger = logging.getLogger(__name__)

SOURCE_SUFFIX = ".py"
PACKAGE_INIT = "__init__.py"


@dataclass(frozen=True)
class SourceHit:
    """The outcome of a successful module lookup.

    Attributes:
        name: Dotted module name that was looked up.
        entry: The search path entry that held the source.
        relpath: Path of the source relative to the entry root.
        source: Raw source bytes.
        is_package: True if the source is a package ``__init__.py``.
    """

    name: str
    entry: PathEntry
    relpath: str
    source: bytes
    is_package: bool

    @property
    def origin(self) -> str:
        """Display location of the source (used as ``__file__``)."""
        return self.entry.locate(self.relpath)

    @property
    def package_path(self) -> str:
        """Display location of the package directory (used in ``__path__``)."""
        return self.entry.locate(self.relpath.rpartition("/")[0])


def make_entry(location: str | os.PathLike[str]) -> PathEntry:
    """Create the PathEntry adapter matching a location's suffix."""
    text = os.fspath(location) or os.curdir
    if ArchiveEntry.has_archive_suffix(text):
        return ArchiveEntry(Path(text))
    return DirectoryEntry(Path(text))


class PathCatalog:
    """Ordered, immutable sequence of search path entries."""

    def __init__(self, entries: Iterable[PathEntry]) -> None:
        self._entries = tuple(entries)

    @classmethod
    def build(cls, search_path: str, separator: str = os.pathsep) -> PathCatalog:
        """Build a catalog from a separator-delimited search path.

        Entries are not validated; locations that do not exist are skipped at
        resolution time.

        Args:
            search_path: e.g. ``"build/lib:deps/lib.zip"`` on POSIX.
            separator: Item separator; defaults to the platform separator.

        Returns:
            PathCatalog: Catalog with one entry per non-empty item, in order.
        """
        items = [item for item in search_path.split(separator) if item]
        logger.debug("Search path has %d entries", len(items))
        return cls(make_entry(item) for item in items)

    @classmethod
    def from_sys_path(cls) -> PathCatalog:
        """Build a catalog from the interpreter's own ``sys.path``.

        The empty string on ``sys.path`` stands for the working directory.
        """
        return cls(make_entry(item) for item in sys.path if isinstance(item, str))

    @staticmethod
    def is_archive(entry: PathEntry) -> bool:
        """Return True if `entry` is an archive (suffix check, no sniffing)."""
        return entry.is_archive

    @property
    def entries(self) -> tuple[PathEntry, ...]:
        """The entries, in search order."""
        return self._entries

    def __iter__(self) -> Iterator[PathEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"PathCatalog({[str(entry) for entry in self._entries]!r})"

    def read(self, relpath: str) -> tuple[PathEntry, bytes] | None:
        """Read `relpath` from the first entry that holds it.

        Returns:
            tuple[PathEntry, bytes] | None: The winning entry and its bytes, or
            None if no entry holds the path.
        """
        for entry in self._entries:
            if (data := entry.read(relpath)) is not None:
                return entry, data
        return None

    def find_module(self, name: str) -> SourceHit | None:
        """Find the source of a dotted module name.

        Each entry is asked, in order, for the package form
        (``pkg/mod/__init__.py``) and then the module form (``pkg/mod.py``).
        The first entry holding either form wins.

        Args:
            name: Absolute dotted module name.

        Returns:
            SourceHit | None: The located source, or None if no entry holds it.
        """
        base = name.replace(".", "/")
        candidates = (
            (f"{base}/{PACKAGE_INIT}", True),
            (f"{base}{SOURCE_SUFFIX}", False),
        )
        for entry in self._entries:
            for relpath, is_package in candidates:
                if (data := entry.read(relpath)) is not None:
                    logger.debug("Found %s in %s", name, entry)
                    return SourceHit(name, entry, relpath, data, is_package)
        return None
