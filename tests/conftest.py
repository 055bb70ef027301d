"""Pytest fixtures and configuration."""

from collections.abc import Iterator

import pytest

from signalist.config import get_settings


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Skip integration tests by default unless -m integration is specified."""
    markexpr = config.getoption("-m", default="")
    if "integration" in markexpr:
        return

    skip_integration = pytest.mark.skip(reason="Integration test - run with: pytest -m integration")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip_integration)


@pytest.fixture(autouse=True)
def _clear_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()