"""Determine the effective search path for isolated test runs.

The search path is looked up, in order:

1. `ISOLOAD_TEST_PATH`, exported by the build tool running the tests.
2. When the host's own search path (`PYTHONPATH`) is a single archive, the
   ``Class-Path`` attribute of that archive's ``META-INF/MANIFEST.MF``. Build
   tools use such "pathing archives" to pass search paths longer than the
   command line allows.
3. Nothing: the caller falls back to the interpreter's ``sys.path``.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from urllib.parse import urlparse
from urllib.request import url2pathname

from isoload import config
from isoload.adapters.path_entries import ArchiveEntry

logger = logging.getLogger(__name__)

FILE_SCHEME = "file"


def parse_manifest(text: str) -> dict[str, str]:
    """Parse the main section of a manifest into a name -> value mapping.

    Lines are ``Name: value``; a line starting with a single space continues
    the previous value. The main section ends at the first blank line.
    """
    attributes: dict[str, str] = {}
    current: str | None = None
    for line in text.splitlines():
        if not line:
            break
        if line.startswith(" ") and current is not None:
            attributes[current] += line[1:]
            continue
        name, sep, value = line.partition(":")
        if not sep:
            logger.debug("Ignoring malformed manifest line %r", line)
            current = None
            continue
        current = name.strip()
        attributes[current] = value.strip()
    return attributes


def _strip_scheme(item: str) -> str:
    parsed = urlparse(item)
    if parsed.scheme != FILE_SCHEME:
        return item
    return url2pathname(parsed.path)


def translate_class_path(value: str, separator: str = os.pathsep) -> str:
    """Rewrite a space separated manifest class path into a search path.

    Example:
        ``"file:/opt/lib/a.jar lib/b.zip"`` becomes ``"/opt/lib/a.jar:lib/b.zip"``
        on POSIX.
    """
    return separator.join(_strip_scheme(item) for item in value.split(" ") if item)


def load_manifest_class_path(archive: Path) -> str | None:
    """Return the translated ``Class-Path`` of an archive's manifest.

    Any failure (missing archive, missing manifest, undecodable manifest, no
    ``Class-Path`` attribute) yields None.
    """
    data = ArchiveEntry(archive).read(config.MANIFEST_ENTRY)
    if data is None:
        logger.debug("No manifest in %s", archive)
        return None
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        logger.debug("Cannot decode manifest of %s: %s", archive, e)
        return None
    if (value := parse_manifest(text).get(config.MANIFEST_CLASS_PATH)) is None:
        return None
    return translate_class_path(value)


def determine_search_path(environ: Mapping[str, str] | None = None) -> str | None:
    """Determine the explicit search path, if there is one.

    Args:
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        str | None: A search path string, or None to use default discovery.
    """
    if (test_path := config.get_test_path(environ)) is not None:
        logger.debug("Search path from %s", config.TEST_PATH_ENV)
        return test_path

    if (host_path := config.get_host_path(environ)) is None:
        return None

    items = [item for item in host_path.split(os.pathsep) if item]
    if len(items) == 1 and ArchiveEntry.has_archive_suffix(items[0]):
        logger.debug("Search path from the manifest of %s", items[0])
        return load_manifest_class_path(Path(items[0]))
    return None
