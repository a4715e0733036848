"""Configuration helpers and constants for isoload.

All configuration comes from the process environment; there is no config file.
The getters accept an explicit mapping so callers (and tests) can thread their
own environment instead of mutating ``os.environ``.
"""

import os
from collections.abc import Mapping

# Build-tool provided search path (nox/tox sessions export it).
TEST_PATH_ENV = "ISOLOAD_TEST_PATH"

# The host interpreter's own search path as given by its launcher.
HOST_PATH_ENV = "PYTHONPATH"

# Names an alternate exclusion resource.
EXCLUDES_ENV = "ISOLOAD_EXCLUDES"

EXCLUDES_RESOURCE = "isoload-excludes.txt"
PACKAGED_EXCLUDES = f"isoload:{EXCLUDES_RESOURCE}"

DEFAULT_MARKER_MODULE = "isoload.markers"

MANIFEST_ENTRY = "META-INF/MANIFEST.MF"
MANIFEST_CLASS_PATH = "Class-Path"

ARCHIVE_SUFFIXES = (".zip", ".pyz", ".whl", ".egg", ".jar")


def get_test_path(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the build-tool provided search path, if any.

    Args:
        environ: Environment mapping; defaults to ``os.environ``.

    Returns:
        The value of `ISOLOAD_TEST_PATH`, or None when unset or empty.
    """
    environ = os.environ if environ is None else environ
    return environ.get(TEST_PATH_ENV) or None


def get_host_path(environ: Mapping[str, str] | None = None) -> str | None:
    """Return the host interpreter's launcher-provided search path, if any."""
    environ = os.environ if environ is None else environ
    return environ.get(HOST_PATH_ENV) or None

