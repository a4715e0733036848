"""Fixtures and helpers for end-to-end CLI tests.

Provides a CliRunner, an isolated filesystem per test, a scrubbed environment
and a small project on disk for ``isoload run`` to execute.
"""

import logging
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

# pylint: disable=redefined-outer-name

PROJECT_SOURCES = {
    "counterapp/__init__.py": "",
    "counterapp/counter.py": """
        value = 0


        def increment():
            global value
            value += 1
            return value
        """,
    "counter_tests.py": """
        from counterapp import counter
        from isoload import exclude


        @exclude("declared.prefix.")
        class TestCounter:
            def test_first(self):
                assert counter.increment() == 1

            def test_second(self):
                assert counter.increment() == 1


        class TestEmpty:
            def helper(self):
                pass
        """,
    "failing_tests.py": """
        from isoload import after


        class TestFailing:
            @after
            def cleanup(self):
                raise RuntimeError("cleanup broke")

            def test_ok(self):
                pass

            def test_bad(self):
                assert False, "deliberate failure"
        """,
    "native_tests.py": """
        import nativelib


        class TestNative:
            def test_uses_library(self):
                assert nativelib.COMPILED
        """,
    "shapes_tests.py": """
        from __future__ import annotations

        import dataclasses


        @dataclasses.dataclass
        class Point:
            x: int


        class TestShapes:
            def test_point(self):
                assert Point(2).x == 2
        """,
    "isoload-excludes.txt": "# project level\nproject.shared.*\n",
}


@pytest.fixture
def runner():
    """Return a Click CliRunner for invoking CLI commands in tests."""
    return CliRunner()


@pytest.fixture
def fs(runner):
    """Run the test inside an isolated working directory."""
    with runner.isolated_filesystem():
        yield


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep the caller's isoload and search path settings out of the CLI."""
    for var in ("ISOLOAD_TEST_PATH", "ISOLOAD_EXCLUDES", "ISOLOAD_LOG_PATH", "PYTHONPATH"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Undo the handlers and level the CLI installs on the root logger."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    try:
        yield
    finally:
        root.handlers[:] = handlers
        root.setLevel(level)


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """Write the sample project and return its root (the search path)."""
    root = tmp_path / "project"
    for relpath, text in PROJECT_SOURCES.items():
        path = root / relpath
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
    return root
