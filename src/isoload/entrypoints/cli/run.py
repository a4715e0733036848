"""``isoload run`` and ``isoload excludes`` commands.

``run`` executes the test methods of one class, each in a fresh loading
context, and prints one table row per method. ``excludes`` prints the prefixes
that would be resolved by the shared context, in the order they were
registered.

The test class is located through a throwaway context built on the same
search path and exclusions as the runner's, so the command never imports the
code under test into the CLI process itself.
"""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.table import Table

from isoload.catalog import PathCatalog
from isoload.exclusions import ExclusionSet, build_exclusions
from isoload.loader import IsolationContext
from isoload.markers import declared_exclusions
from isoload.runner import IsolatedTestRunner, MethodResult, Status
from isoload.searchpath import determine_search_path

from .helpers import error, success, warn

logger = logging.getLogger(__name__)

STATUS_STYLES = {
    Status.PASSED: "green",
    Status.FAILED: "red",
    Status.ERROR: "bold red",
}


def _split_target(target: str) -> tuple[str, str]:
    module, sep, qualname = target.partition(":")
    if not sep or not module or not qualname:
        raise click.BadParameter(
            f"Expected MODULE:CLASS, got {target!r}", param_hint="TARGET"
        )
    return module, qualname


def _catalog(search_path: str | None) -> PathCatalog:
    search_path = search_path or determine_search_path()
    if search_path is None:
        return PathCatalog.from_sys_path()
    return PathCatalog.build(search_path)


def _discover(target: str, catalog: PathCatalog, exclusions: ExclusionSet) -> type:
    module, qualname = _split_target(target)
    try:
        return IsolationContext(catalog, exclusions).load_class(module, qualname)
    except (ImportError, AttributeError) as e:
        raise click.ClickException(f"Cannot load {target}: {e}") from e


def _describe(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def _results_table(title: str, results: list[MethodResult]) -> Table:
    table = Table(title=title)
    table.add_column("Method", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Phase", no_wrap=True)
    table.add_column("Time", justify="right", no_wrap=True)
    table.add_column("Error", overflow="fold")
    for result in results:
        status = result.status
        table.add_row(
            result.name,
            f"[{STATUS_STYLES[status]}]{status.value}[/]",
            "" if result.passed else result.phase.value,
            f"{result.duration:.3f}s",
            "" if result.error is None else _describe(result.error),
        )
    return table


@click.command()
@click.argument("target")
@click.option(
    "--path",
    "-p",
    "search_path",
    help=(
        "Search path to load the code under test from (os.pathsep separated). "
        "Defaults to ISOLOAD_TEST_PATH, then sys.path."
    ),
)
@click.option(
    "--exclude",
    "-e",
    "exclusions",
    multiple=True,
    help="Extra name prefix resolved by the shared context. Repeatable.",
)
@click.option(
    "--method",
    "-m",
    "methods",
    multiple=True,
    help="Only run the named test method. Repeatable.",
)
@click.pass_context
def run(
    ctx: click.Context,
    target: str,
    search_path: str | None,
    exclusions: tuple[str, ...],
    methods: tuple[str, ...],
) -> None:
    """Run the test methods of TARGET (MODULE:CLASS) in isolation."""
    catalog = _catalog(search_path)
    base = build_exclusions(catalog)
    base.add_all(exclusions)
    test_class = _discover(target, catalog, base)
    runner = IsolatedTestRunner(
        test_class, search_path=search_path, exclusions=exclusions
    )

    names = list(methods) or runner.test_methods()
    if not names:
        warn(f"{target} has no test methods.")
        return

    results = [runner.run_method(name) for name in names]
    Console().print(_results_table(target, results))

    failures = [result for result in results if not result.passed]
    for result in failures:
        for extra in result.secondary:
            logger.warning("%s: also raised during cleanup: %r", result.name, extra)
    if failures:
        error(f"{len(failures)} of {len(results)} test methods did not pass.")
        ctx.exit(1)
    success(f"All {len(results)} test methods passed.")


@click.command()
@click.argument("target", required=False)
@click.option(
    "--path",
    "-p",
    "search_path",
    help="Search path used to look up exclusion resources (os.pathsep separated).",
)
def excludes(target: str | None, search_path: str | None) -> None:
    """Print the effective exclusion prefixes, in registration order.

    With TARGET (MODULE:CLASS), the class-level declarations are included.
    """
    catalog = _catalog(search_path)
    exclusions = build_exclusions(catalog)
    if target is not None:
        test_class = _discover(target, catalog, exclusions)
        exclusions.add_all(declared_exclusions(test_class))
    for prefix in exclusions:
        click.echo(prefix)

