"""Search path entry interface definitions."""

import abc
import os
from dataclasses import dataclass
from pathlib import Path

PathLike = str | os.PathLike[str]


@dataclass(frozen=True)
class PathEntry(abc.ABC):
    """One location of a search path: a directory or an archive.

    Entries are immutable once recorded and never validated eagerly. A location
    that does not exist simply yields no data when read.

    Attributes:
        location: Filesystem path of the directory or archive.
    """

    location: Path

    @property
    @abc.abstractmethod
    def is_archive(self) -> bool:
        """Return True if this entry is an archive."""

    @abc.abstractmethod
    def read(self, relpath: str) -> bytes | None:
        """Read the full content addressed by a relative path.

        Args:
            relpath: Forward-slash separated path relative to the entry root,
                e.g. ``"pkg/mod.py"``.

        Returns:
            bytes | None: The content, or None when this entry does not hold
            the path (a miss, never an error).
        """

    @abc.abstractmethod
    def locate(self, relpath: str) -> str:
        """Return a display origin for `relpath` inside this entry.

        Used as the ``__file__`` of materialized modules and in tracebacks.
        """

    def __str__(self) -> str:
        return str(self.location)
