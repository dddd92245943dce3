import pytest
from unittest.mock import MagicMock

from mutation_sentinel import make_sentinel
from mutation_sentinel.config import (
    SentinelOptions,
    configure_sentinels,
    current_options,
    never_ignore,
    sentinel_options,
)
from mutation_sentinel.reporter import default_mutation_handler


def test_updates_the_global_options():
    should_ignore = MagicMock()
    mutation_handler = MagicMock()
    with sentinel_options(should_ignore=should_ignore, mutation_handler=mutation_handler):
        assert current_options().should_ignore is should_ignore
        assert current_options().mutation_handler is mutation_handler


def test_defaults():
    assert current_options().should_ignore is never_ignore
    assert current_options().mutation_handler is default_mutation_handler


def test_non_callable_should_ignore_is_dropped():
    with sentinel_options(should_ignore=1):
        assert current_options().should_ignore is never_ignore


def test_non_callable_mutation_handler_is_dropped():
    with sentinel_options(mutation_handler="print"):
        assert current_options().mutation_handler is default_mutation_handler


def test_omitting_a_field_resets_it():
    should_ignore = MagicMock()
    with sentinel_options(should_ignore=should_ignore):
        with sentinel_options(should_ignore=None):
            assert current_options().should_ignore is never_ignore
        # Outer configuration restored
        assert current_options().should_ignore is should_ignore


def test_accepts_model_and_mapping_input():
    mutation_handler = MagicMock()
    configure_sentinels(SentinelOptions(mutation_handler=mutation_handler))
    assert current_options().mutation_handler is mutation_handler

    configure_sentinels({"mutation_handler": 42, "unknown": True})
    assert current_options().mutation_handler is default_mutation_handler


def test_options_model_drops_non_callables():
    options = SentinelOptions(should_ignore=5, mutation_handler=print)
    assert options.should_ignore is None
    assert options.mutation_handler is print


def test_sentinel_options_restores_after_error():
    with pytest.raises(RuntimeError):
        with sentinel_options(mutation_handler=MagicMock()):
            raise RuntimeError("boom")
    assert current_options().mutation_handler is default_mutation_handler


def test_reconfiguration_applies_to_existing_sentinels():
    obj = {"a": 1}
    sentinel = make_sentinel(obj)
    first, second = MagicMock(), MagicMock()

    configure_sentinels(mutation_handler=first)
    sentinel["a"] = 2
    configure_sentinels(mutation_handler=second)
    sentinel["a"] = 3

    assert first.call_count == 1
    assert second.call_count == 1
    assert obj["a"] == 3
