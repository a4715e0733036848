"""End-to-end tests for ``isoload run`` and ``isoload excludes``."""

import sys

import pytest

from isoload.entrypoints.cli.main import isoload

# pylint: disable=unused-argument,redefined-outer-name

QUIET = ["--no-flight-recorder"]


def invoke(runner, *args: str):
    """Invoke the CLI with the flight recorder off."""
    return runner.invoke(isoload, [*QUIET, *args])


# ============================================================================
#                              run
# ============================================================================


def test_run_passes_with_isolated_state(runner, fs, project):
    """Both counter tests pass because every method gets a fresh module."""
    result = invoke(runner, "run", "counter_tests:TestCounter", "-p", str(project))

    assert result.exit_code == 0, result.output
    assert "test_first" in result.output
    assert "test_second" in result.output
    assert "All 2 test methods passed." in result.output


def test_run_never_imports_code_under_test_into_the_cli(runner, fs, project):
    """The CLI process only ever sees the code through isolation contexts."""
    result = invoke(runner, "run", "counter_tests:TestCounter", "-p", str(project))

    assert result.exit_code == 0, result.output
    assert "counter_tests" not in sys.modules
    assert "counterapp" not in sys.modules


def test_run_single_method(runner, fs, project):
    """``-m`` restricts the run to the named methods."""
    result = invoke(
        runner, "run", "counter_tests:TestCounter", "-p", str(project), "-m", "test_second"
    )

    assert result.exit_code == 0, result.output
    assert "test_first" not in result.output
    assert "All 1 test methods passed." in result.output


def test_run_reports_failures_and_exits_non_zero(runner, fs, project):
    """Failures are listed with their phase and the command exits with 1."""
    result = invoke(runner, "run", "failing_tests:TestFailing", "-p", str(project))

    assert result.exit_code == 1
    assert "run-test-body" in result.output
    assert "run-afters-and-rules" in result.output
    assert "2 of 2 test methods did not pass." in result.output


def test_run_class_without_test_methods_warns(runner, fs, project):
    """A class with nothing to run is a warning, not an error."""
    result = invoke(runner, "run", "counter_tests:TestEmpty", "-p", str(project))

    assert result.exit_code == 0
    assert "has no test methods" in result.output


def test_run_rejects_malformed_target(runner, fs, project):
    """TARGET must be MODULE:CLASS."""
    result = invoke(runner, "run", "counter_tests.TestCounter", "-p", str(project))

    assert result.exit_code == 2
    assert "Expected MODULE:CLASS" in result.output


def test_run_unknown_module_is_an_error(runner, fs, project):
    """Targets the search path does not hold fail with a message."""
    result = invoke(runner, "run", "missing_tests:TestNothing", "-p", str(project))

    assert result.exit_code == 1
    assert "Cannot load missing_tests:TestNothing" in result.output


def test_run_uses_test_path_environment_variable(runner, fs, project):
    """Without ``-p`` the search path comes from ISOLOAD_TEST_PATH."""
    result = runner.invoke(
        isoload,
        [*QUIET, "run", "counter_tests:TestCounter"],
        env={"ISOLOAD_TEST_PATH": str(project)},
    )

    assert result.exit_code == 0, result.output
    assert "All 2 test methods passed." in result.output


def test_run_loads_dataclasses_with_postponed_annotations(runner, fs, project):
    """Code that looks its own module up by name runs through the CLI."""
    result = invoke(runner, "run", "shapes_tests:TestShapes", "-p", str(project))

    assert result.exit_code == 0, result.output
    assert "All 1 test methods passed." in result.output


@pytest.fixture
def host_library(tmp_path, monkeypatch, restore_sys_modules):
    """A library importable by the CLI process but absent from the project."""
    site = tmp_path / "site"
    (site / "nativelib").mkdir(parents=True)
    (site / "nativelib" / "__init__.py").write_text("COMPILED = True\n", encoding="utf-8")
    monkeypatch.syspath_prepend(str(site))
    return site


def test_run_discovers_class_with_exclusions(runner, fs, project, host_library):
    """Discovery delegates excluded prefixes to the CLI process like the runner."""
    args = ["run", "native_tests:TestNative", "-p", str(project)]

    missing = invoke(runner, *args)
    assert missing.exit_code == 1
    assert "Cannot load native_tests:TestNative" in missing.output

    result = invoke(runner, *args, "-e", "nativelib.")
    assert result.exit_code == 0, result.output
    assert "All 1 test methods passed." in result.output


# ============================================================================
#                              excludes
# ============================================================================


def test_excludes_lists_defaults_packaged_and_project_prefixes(runner, fs, project):
    """Prefixes are printed one per line in registration order."""
    result = invoke(runner, "excludes", "-p", str(project))

    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert lines[0] == "isoload."
    assert lines.index("hypothesis.") < lines.index("project.shared.")


def test_excludes_with_target_includes_class_declarations(runner, fs, project):
    """Declarations on the test class are appended last."""
    result = invoke(runner, "excludes", "counter_tests:TestCounter", "-p", str(project))

    assert result.exit_code == 0, result.output
    assert result.output.splitlines()[-1] == "declared.prefix."


def test_excludes_honours_override_variable(runner, fs, project, tmp_path):
    """ISOLOAD_EXCLUDES names an alternate resource."""
    alternate = tmp_path / "alternate.txt"
    alternate.write_text("alternate.only.*\n", encoding="utf-8")

    result = runner.invoke(
        isoload,
        [*QUIET, "excludes", "-p", str(project)],
        env={"ISOLOAD_EXCLUDES": str(alternate)},
    )

    assert result.exit_code == 0, result.output
    assert "alternate.only." in result.output.splitlines()
    assert "project.shared." not in result.output.splitlines()
