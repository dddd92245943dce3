import io
import logging
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from mutation_sentinel import (
    DefinePropertyMutation,
    DeletePropertyMutation,
    PropertyAccess,
    PropertyDescriptor,
    SetMutation,
    SetPrototypeMutation,
    default_mutation_handler,
    make_logging_handler,
    setup_logging,
)
from mutation_sentinel.utils.error_handling import contain_handler_errors
from mutation_sentinel.utils.logging_config import PACKAGE_LOGGER


class Point:
    def __init__(self):
        self.x = 1


class Other(Point):
    pass


@pytest.fixture
def package_logger():
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)


def test_describe_formats():
    point = Point()
    assert SetMutation(target={"a": 1}, property="a", value=2, via=PropertyAccess.ITEM).describe() == "set dict['a'] = 2"
    assert DeletePropertyMutation(target=point, property="x").describe() == "deleteProperty Point.x"
    assert SetPrototypeMutation(target=point, prototype=Other).describe() == "setPrototypeOf Point -> Other"
    assert DefinePropertyMutation(
        target=Point, property="y", descriptor=PropertyDescriptor(getter=lambda self: 1)
    ).describe() == "defineProperty Point.y (accessor)"


def test_record_types():
    record = SetMutation(target={}, property="a", value=1)
    assert record.type == "set"
    assert SetPrototypeMutation(target={}, prototype=dict).type == "setPrototypeOf"


def test_default_handler_logs_a_warning(caplog):
    record = DeletePropertyMutation(target={"a": 1}, property="a", via=PropertyAccess.ITEM)
    with caplog.at_level(logging.WARNING, logger=PACKAGE_LOGGER):
        default_mutation_handler(record)
    assert [r.getMessage() for r in caplog.records] == [
        "Mutation detected by a sentinel! deleteProperty dict['a']"
    ]
    assert caplog.records[0].levelno == logging.WARNING


def test_logging_handler_uses_given_logger_and_level():
    logger = MagicMock()
    handler = make_logging_handler(logger, level=logging.INFO)
    handler(DeletePropertyMutation(target=Point(), property="x"))
    logger.log.assert_called_once_with(logging.INFO, "Mutation detected by a sentinel! deleteProperty Point.x")


def test_setup_logging_attaches_one_handler(package_logger):
    stream = io.StringIO()
    setup_logging(logging.WARNING, stream=stream)
    setup_logging(logging.WARNING, stream=stream)

    ours = [h for h in package_logger.handlers if getattr(h, "_sentinel_handler", False)]
    assert len(ours) == 1

    default_mutation_handler(SetMutation(target={}, property="a", value=1, via=PropertyAccess.ITEM))
    assert "Mutation detected by a sentinel! set dict['a'] = 1" in stream.getvalue()


def test_contain_handler_errors_logs_and_returns_none(caplog):
    @contain_handler_errors
    def failing(mutation):
        raise KeyError("missing")

    with caplog.at_level(logging.ERROR, logger=PACKAGE_LOGGER):
        assert failing(object()) is None
    assert len(caplog.records) == 1
    assert caplog.records[0].exc_info is not None
    assert "KeyError" in caplog.records[0].getMessage()


def test_records_and_descriptors_are_frozen_models():
    assert SetMutation.model_config["frozen"] is True
    assert SetMutation.model_config["arbitrary_types_allowed"] is True
    assert PropertyDescriptor.model_config["frozen"] is True

    record = SetMutation(target={}, property="a", value=1)
    with pytest.raises(ValidationError):
        record.value = 2
    with pytest.raises(ValidationError):
        PropertyDescriptor(value=1).value = 2
