"""isoload CLI entry point.

Defines the top-level ``isoload`` command (via Click-Extra) and registers its
subcommands:

- ``isoload run MODULE:CLASS``: run a test class, one fresh context per method.
- ``isoload excludes [MODULE:CLASS]``: show the effective exclusion prefixes.

Examples
    $ isoload --version
    $ isoload -v run tests.test_counter:TestCounter -p tests:src
    $ isoload excludes
"""

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import click
import click_extra as clickx
from platformdirs import user_log_dir

from isoload import __version__
from isoload.logging import config_console_handler, config_flight_recorder, log_startup

from .helpers.log_level_parser import parse_log_level
from .run import excludes, run

if TYPE_CHECKING:
    from logging import Handler

logger = logging.getLogger(__name__)


HELP = """isoload command-line interface.

    Runs each test method of a class in a fresh, disposable loading context, so
    module globals, class attributes and singletons of the code under test start
    from their initial values in every method.
    """


@clickx.extra_group(
    version=__version__,
    help=HELP,
    params=[
        clickx.ColorOption(show_envvar=True),
        clickx.TimerOption(show_envvar=True),
        clickx.ExtraVersionOption(),
    ],
)
@click.option(
    "--verbose",
    "-v",
    "verbose_count",
    count=True,
    help="Increase the default WARNING verbosity by one level per repetition.",
    default=0,
)
@click.option(
    "--quiet",
    "-q",
    "quiet_count",
    count=True,
    help="Decrease the default WARNING verbosity by one level per repetition.",
    default=0,
)
@click.option(
    "--debug/--no-debug",
    is_flag=True,
    help="Enable debug mode (timestamps, logger names and source paths).",
    default=False,
)
@click.option(
    "--log-path",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Path the flight recorder writes to.",
    default=Path(user_log_dir("isoload", appauthor=False)) / "latest.log",
    envvar="ISOLOAD_LOG_PATH",
    show_default=True,
    show_envvar=True,
)
@click.option(
    "--flight-recorder/--no-flight-recorder",
    "flight_recorder",
    is_flag=True,
    help=(
        "Keep the last log records at DEBUG granularity in memory and write them "
        "to --log-path when a WARNING or ERROR occurs."
    ),
    default=True,
    show_envvar=True,
)
@click.option(
    "-L",
    "--logger-level",
    "logger_levels",
    multiple=True,
    callback=parse_log_level,
    help=(
        "Set the minimum level of specific loggers (NAME=LEVEL). Repeatable, "
        "e.g. -L isoload.catalog=DEBUG -L isoload.loader=WARNING."
    ),
    default=(),
    show_envvar=True,
)
@clickx.pass_context
def isoload(  # pylint: disable=too-many-arguments,too-many-positional-arguments
    ctx: click.Context,
    verbose_count: int,
    quiet_count: int,
    debug: bool,
    log_path: Path,
    flight_recorder: bool,
    logger_levels: dict[str, int],
) -> None:
    """isoload command-line interface."""

    level = logging.WARNING - (10 * verbose_count) + (10 * quiet_count)
    level = max(logging.DEBUG, min(logging.CRITICAL, level))

    use_color = ctx.color is not False  # None or True => allow color
    handlers: list[Handler] = [
        config_console_handler(level=level, debug_mode=debug, color=use_color)
    ]
    if flight_recorder:
        handlers.append(config_flight_recorder(path=log_path))

    logging.basicConfig(level=logging.DEBUG, handlers=handlers, force=True)
    for name, lvl in logger_levels.items():
        logging.getLogger(name).setLevel(lvl)

    log_startup(
        logger,
        app_version=__version__,
        level=level,
        handlers=handlers,
        log_path=log_path,
        flight_recorder=flight_recorder,
        logger_levels=logger_levels,
    )
    ctx.call_on_close(logging.shutdown)


isoload.add_command(run)
isoload.add_command(excludes)
