import functools
import logging

logger = logging.getLogger(__name__)


def contain_handler_errors(func):
    """
    Decorator for calls into user-supplied mutation handlers.

    A failing handler is logged with its traceback and the call returns None,
    so the structural operation that triggered the report still runs.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception as e:
            logger.exception(f"Mutation handler raised {type(e).__name__}: {e}")
            return None
    return wrapper
