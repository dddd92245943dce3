"""
Default mutation reporter.

Used whenever no custom handler is configured. A configured handler replaces
it entirely; there is no chaining.
"""

import logging

from mutation_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)


def make_logging_handler(target_logger, level=logging.WARNING):
    """Build a mutation handler that writes each record to ``target_logger``."""
    def handler(mutation):
        target_logger.log(level, f"Mutation detected by a sentinel! {mutation.describe()}")
    return handler


def default_mutation_handler(mutation) -> None:
    logger.warning(f"Mutation detected by a sentinel! {mutation.describe()}")
