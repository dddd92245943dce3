"""
Global sentinel configuration.

Process-wide options read by every sentinel trap. Reconfiguration replaces the
whole options object: any field that is omitted or not callable falls back to
its default, which is also how a field is reset.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional, Union

from pydantic import BaseModel, Field, field_validator

from mutation_sentinel.reporter import default_mutation_handler

logger = logging.getLogger(__name__)


def never_ignore(value: Any) -> bool:
    return False


class SentinelOptions(BaseModel):
    """Validated, partial configuration input."""
    should_ignore: Optional[Callable[[Any], bool]] = Field(
        None, description="Predicate; values it returns True for are never wrapped"
    )
    mutation_handler: Optional[Callable[[Any], None]] = Field(
        None, description="Receives every genuine mutation record"
    )

    @field_validator("should_ignore", "mutation_handler", mode="before")
    @classmethod
    def _drop_non_callables(cls, value):
        if value is not None and not callable(value):
            logger.debug(f"Ignoring non-callable sentinel option of type {type(value).__name__}")
            return None
        return value


@dataclass(frozen=True)
class FullSentinelOptions:
    should_ignore: Callable[[Any], bool] = never_ignore
    mutation_handler: Callable[[Any], None] = default_mutation_handler


_lock = threading.RLock()
_global_opts = FullSentinelOptions()


def current_options() -> FullSentinelOptions:
    return _global_opts


def configure_sentinels(options: Union[SentinelOptions, Mapping[str, Any], None] = None, **fields) -> FullSentinelOptions:
    """
    Replace the global options.

    Args:
        options: SentinelOptions, a mapping of fields, or None.
        **fields: should_ignore / mutation_handler, merged over ``options``.

    Returns:
        The options now in effect.
    """
    global _global_opts

    if isinstance(options, (SentinelOptions, FullSentinelOptions)):
        data = {"should_ignore": options.should_ignore, "mutation_handler": options.mutation_handler}
    elif isinstance(options, Mapping):
        data = dict(options)
    else:
        data = {}
    data.update(fields)
    validated = SentinelOptions.model_validate(data)

    with _lock:
        _global_opts = FullSentinelOptions(
            should_ignore=validated.should_ignore or never_ignore,
            mutation_handler=validated.mutation_handler or default_mutation_handler,
        )
        return _global_opts


@contextmanager
def sentinel_options(options=None, **fields):
    """Apply options for the duration of a ``with`` block, then restore the previous ones."""
    previous = current_options()
    configure_sentinels(options, **fields)
    try:
        yield current_options()
    finally:
        configure_sentinels(previous)
