"""Shared fixtures for goalti tests."""

from collections.abc import Iterator

import pytest

from goalti.statistics import remove_statistics_listener, statistics_listeners


def _clear_listeners() -> None:
    for listener in statistics_listeners():
        remove_statistics_listener(listener)


@pytest.fixture(autouse=True)
def isolated_listeners() -> Iterator[None]:
    """Start and end every test with no process-wide listeners."""
    _clear_listeners()
    yield
    _clear_listeners()
