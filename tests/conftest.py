"""Global pytest configuration for the isoload test suite."""

from __future__ import annotations

from pathlib import Path

import pytest

pytest_plugins = [
    "pytester",
    "tests.fixtures.sources",
]

TESTS_ROOT = Path(__file__).parent.resolve()
LAYER_MARKS = {
    "unit": pytest.mark.unit,
    "integration": pytest.mark.integration,
    "e2e": pytest.mark.e2e,
}


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(
    config: pytest.Config,  # pylint: disable=unused-argument
    items: list[pytest.Item],
) -> None:
    """Mark every item with the layer (top-level folder) it lives in."""
    for item in items:
        path = item.path.resolve()
        if TESTS_ROOT not in path.parents:
            continue
        layer = path.relative_to(TESTS_ROOT).parts[0]
        if (mark := LAYER_MARKS.get(layer)) is None:
            continue
        if not any(marker.name == mark.name for marker in item.iter_markers()):
            item.add_marker(mark)
