"""Search path entry adapters: directories and archives."""

from .archive import ArchiveEntry
from .directory import DirectoryEntry

__all__ = ["ArchiveEntry", "DirectoryEntry"]
