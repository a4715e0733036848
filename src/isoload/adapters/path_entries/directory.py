"""Directory-backed search path entry."""

import logging
from dataclasses import dataclass

from isoload.interfaces.path_entry import PathEntry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryEntry(PathEntry):
    """PathEntry implementation that reads files below a directory."""

    @property
    def is_archive(self) -> bool:
        return False

    def read(self, relpath: str) -> bytes | None:
        path = self.location / relpath
        try:
            return path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            # Directories named like modules, permission problems, ...
            logger.debug("Cannot read %s: %s", path, e)
            return None

    def locate(self, relpath: str) -> str:
        return str(self.location / relpath)
