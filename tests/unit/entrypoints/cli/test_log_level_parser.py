"""Unit tests for the CLI ``-L NAME=LEVEL`` parser.

Covers defaults for the noisy resolution loggers, override order, comma/space
separated strings from environment variables, case-insensitive level names and
malformed input.
"""

import logging
import types

import click
import pytest

from isoload.entrypoints.cli.helpers.log_level_parser import (
    DEFAULT_LIB_LEVELS,
    parse_log_level,
)


def make_ctx():
    """The callback ignores its Click context; a namespace stands in for it."""
    return types.SimpleNamespace()


def test_empty_uses_defaults():
    """Without overrides, the resolution loggers stay at INFO."""
    assert parse_log_level(make_ctx(), None, ()) == {
        "isoload.catalog": logging.INFO,
        "isoload.adapters": logging.INFO,
    }


def test_defaults_are_not_mutated():
    """Overrides never leak into the module-level defaults."""
    parse_log_level(make_ctx(), None, ("isoload.catalog=DEBUG",))
    assert DEFAULT_LIB_LEVELS["isoload.catalog"] == logging.INFO


def test_repeated_flags_override_order():
    """Later repeated flags win for the same logger."""
    value = ("isoload.loader=INFO", "isoload.catalog=ERROR", "isoload.loader=WARNING")
    out = parse_log_level(make_ctx(), None, value)
    assert out["isoload.loader"] == logging.WARNING
    assert out["isoload.catalog"] == logging.ERROR


def test_envvar_string_with_commas_and_spaces():
    """A plain string (e.g. from an env var) may use commas and spaces."""
    out = parse_log_level(
        make_ctx(), None, "isoload.loader=INFO,  isoload.runner=WARNING isoload=ERROR"
    )
    assert out["isoload.loader"] == logging.INFO
    assert out["isoload.runner"] == logging.WARNING
    assert out["isoload"] == logging.ERROR


def test_case_insensitive_levels():
    """Level names are case-insensitive."""
    out = parse_log_level(make_ctx(), None, ("isoload.loader=debug", "isoload=WaRnInG"))
    assert out["isoload.loader"] == logging.DEBUG
    assert out["isoload"] == logging.WARNING


@pytest.mark.parametrize("item", ["not-a-pair", "=DEBUG", "isoload.loader=LOUD"])
def test_malformed_items_raise(item):
    """Malformed pairs and unknown levels raise click.BadParameter."""
    with pytest.raises(click.BadParameter):
        parse_log_level(make_ctx(), None, (item,))
