"""Mutation Sentinel - transparent proxies that report structural mutations"""

__version__ = "1.0.0"

from .config import SentinelOptions, configure_sentinels, current_options, sentinel_options
from .contracts.mutation_schema import (
    DefinePropertyMutation,
    DeletePropertyMutation,
    Mutation,
    MutationType,
    PropertyAccess,
    PropertyDescriptor,
    SetMutation,
    SetPrototypeMutation,
)
from .reporter import default_mutation_handler, make_logging_handler
from .sentinel import define_property, is_sentinel, make_sentinel
from .utils.logging_config import setup_logging

__all__ = [
    "make_sentinel",
    "is_sentinel",
    "define_property",
    "configure_sentinels",
    "current_options",
    "sentinel_options",
    "SentinelOptions",
    "Mutation",
    "MutationType",
    "PropertyAccess",
    "PropertyDescriptor",
    "DefinePropertyMutation",
    "DeletePropertyMutation",
    "SetMutation",
    "SetPrototypeMutation",
    "default_mutation_handler",
    "make_logging_handler",
    "setup_logging",
]
