"""Parsing of ``NAME=LEVEL`` logger overrides given on the command line.

Values may be repeated options or a single comma/space separated string (as
read from an environment variable).
"""

import logging
import re

import click

# The resolution tiers log every lookup at DEBUG; keep them quiet unless asked.
DEFAULT_LIB_LEVELS = {
    "isoload.catalog": logging.INFO,
    "isoload.adapters": logging.INFO,
}


def _normalize_items(value: str | list[str] | tuple[str, ...]) -> list[str]:
    """Split a raw option value into non-empty ``NAME=LEVEL`` items."""
    values = value if isinstance(value, (tuple, list)) else [value]
    return [item for v in values for item in re.split(r"[,\s]+", v) if item]


def parse_log_level(
    ctx: click.Context,  # pylint: disable=unused-argument
    param: click.Parameter | None,  # pylint: disable=unused-argument
    value: str | list[str] | tuple[str, ...],
) -> dict[str, int]:
    """Click callback turning ``NAME=LEVEL`` items into a name -> level dict.

    Starts from DEFAULT_LIB_LEVELS; later items override earlier ones.

    Args:
        ctx: Click context (unused).
        param: Click parameter (unused).
        value: The raw option value(s).

    Returns:
        dict[str, int]: Mapping of logger names to numeric logging levels.

    Raises:
        click.BadParameter: If an item is not NAME=LEVEL or LEVEL is unknown.
    """
    levels = dict(DEFAULT_LIB_LEVELS)
    for item in _normalize_items(value):
        name, sep, level_str = item.partition("=")
        if not sep or not name.strip():
            raise click.BadParameter(f"Expected NAME=LEVEL, got {item!r}")
        lvl = logging.getLevelNamesMapping().get(level_str.strip().upper())
        if lvl is None:
            raise click.BadParameter(f"Invalid log level: {level_str}")
        levels[name.strip()] = lvl
    return levels
