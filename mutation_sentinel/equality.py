"""Mutation equality check: tells a real change from re-assigning a value its own sentinel."""

from typing import Any

from mutation_sentinel.descriptors import classify, is_scalar
from mutation_sentinel.identity_cache import sentinel_cache


def same_value(a: Any, b: Any) -> bool:
    """Identity for objects, equality for scalars of the same type (NaN never matches)."""
    if a is b:
        return True
    if is_scalar(a) and type(a) is type(b):
        return bool(a == b)
    return False


def value_eq(current: Any, new: Any) -> bool:
    """
    True if assigning ``new`` over ``current`` is not a mutation.

    Reading a nested value through a sentinel yields its sentinel, so writing
    that sentinel back into the same slot must not be reported.
    """
    if same_value(current, new):
        return True
    if new is None or classify(new) is None:
        return False
    return sentinel_cache.lookup(current) is new
