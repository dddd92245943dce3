import logging
import sys

PACKAGE_LOGGER = "mutation_sentinel"


def setup_logging(level=logging.WARNING, stream=None):
    """Attach a stream handler to the package logger so mutation reports show up."""
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    if not any(getattr(h, "_sentinel_handler", False) for h in package_logger.handlers):
        handler = logging.StreamHandler(stream or sys.stderr)
        handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handler._sentinel_handler = True
        package_logger.addHandler(handler)
    return package_logger


def get_logger(name):
    """Get a named logger."""
    return logging.getLogger(name)
