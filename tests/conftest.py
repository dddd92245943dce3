"""
Shared pytest fixtures for sentinel tests.

Provides:
- Global option reset around every test
- A MagicMock installed as the mutation handler
"""
import pytest
from unittest.mock import MagicMock

from mutation_sentinel.config import configure_sentinels, current_options


@pytest.fixture(autouse=True)
def reset_sentinel_options():
    previous = current_options()
    configure_sentinels()
    yield
    configure_sentinels(previous)


@pytest.fixture
def handler():
    mock = MagicMock()
    configure_sentinels(mutation_handler=mock)
    return mock


@pytest.fixture
def records(handler):
    """Returns a callable listing the mutation records seen so far, in call order."""
    return lambda: [call.args[0] for call in handler.call_args_list]
