"""Archive-backed search path entry (zip, pyz, wheel, egg, jar)."""

import logging
import zipfile
import zlib
from dataclasses import dataclass
from typing import BinaryIO

from isoload.config import ARCHIVE_SUFFIXES
from isoload.interfaces.path_entry import PathEntry

logger = logging.getLogger(__name__)


class ShortReadError(OSError):
    """Raised when a stream stops producing data before the declared size."""

    def __init__(self, expected: int, received: int) -> None:
        super().__init__(f"Short read: expected {expected} bytes, got {received}")
        self.expected = expected
        self.received = received


def read_fully(stream: BinaryIO, size: int) -> bytes:
    """Read exactly `size` bytes from `stream`.

    A single `read` call on an archive member is not guaranteed to return
    everything that was asked for, so partial reads are looped until the
    declared size is reached. A call that makes no progress ends the loop.

    Args:
        stream: Binary stream positioned at the start of the content.
        size: Declared content size in bytes.

    Returns:
        bytes: Exactly `size` bytes.

    Raises:
        ShortReadError: If the stream is exhausted (or stalls) before `size`
            bytes were produced.
    """
    chunks: list[bytes] = []
    received = 0
    while received < size:
        chunk = stream.read(size - received)
        if not chunk:
            raise ShortReadError(size, received)
        chunks.append(chunk)
        received += len(chunk)
    return b"".join(chunks)


@dataclass(frozen=True)
class ArchiveEntry(PathEntry):
    """PathEntry implementation that reads members of a zip archive.

    Members are looked up by their exact relative path. Any failure to open the
    archive or to read a member is a miss, so the catalog walk moves on to the
    next entry.
    """

    @property
    def is_archive(self) -> bool:
        return True

    @staticmethod
    def has_archive_suffix(location: str) -> bool:
        """Return True if `location` names an archive (suffix check only)."""
        return location.lower().endswith(ARCHIVE_SUFFIXES)

    def read(self, relpath: str) -> bytes | None:
        if not self.location.is_file():
            return None
        try:
            with zipfile.ZipFile(self.location) as archive:
                try:
                    info = archive.getinfo(relpath)
                except KeyError:
                    return None
                with archive.open(info) as stream:
                    return read_fully(stream, info.file_size)
        except (OSError, zipfile.BadZipFile, zlib.error) as e:
            logger.debug("Cannot read %s from %s: %s", relpath, self.location, e)
            return None

    def locate(self, relpath: str) -> str:
        return f"{self.location}/{relpath}"
