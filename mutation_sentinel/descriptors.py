"""
Value classification and own-property descriptors.

Decides which values can be observed at all (capability tag per value) and
answers "is this an own property, and may a sentinel stand in for it?" for
both attribute and item access.
"""

import datetime
import decimal
import enum
import fractions
import inspect
import types
from collections.abc import MutableMapping, MutableSequence
from typing import Any, Optional

from mutation_sentinel.contracts.mutation_schema import PropertyAccess, PropertyDescriptor

# Compared by value in the equality check
SCALAR_TYPES = (
    bool, int, float, complex, str, bytes,
    decimal.Decimal, fractions.Fraction,
    datetime.date, datetime.time, datetime.timedelta,
    enum.Enum,
)

# Never observable, but compared by identity
_OPAQUE_TYPES = (
    bytearray, memoryview, range, slice,
    tuple, frozenset, set,
    type(Ellipsis), type(NotImplemented),
)

_HEAPTYPE_FLAG = 1 << 9


class ObservableKind(str, enum.Enum):
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    CALLABLE = "callable"
    RECORD = "record"


def is_scalar(value: Any) -> bool:
    return isinstance(value, SCALAR_TYPES)


def _has_slots(value: Any) -> bool:
    return any("__slots__" in vars(klass) for klass in type(value).__mro__[:-1])


def classify(value: Any) -> Optional[ObservableKind]:
    """Return the capability tag for ``value``, or None for primitives."""
    if value is None or isinstance(value, SCALAR_TYPES) or isinstance(value, _OPAQUE_TYPES):
        return None
    if isinstance(value, MutableMapping):
        return ObservableKind.MAPPING
    if isinstance(value, MutableSequence):
        return ObservableKind.SEQUENCE
    if callable(value):
        return ObservableKind.CALLABLE
    if hasattr(value, "__dict__") or _has_slots(value):
        return ObservableKind.RECORD
    return None


def is_frozen(target: Any) -> bool:
    """True when the target refuses attribute writes by construction."""
    if isinstance(target, type):
        return not (target.__flags__ & _HEAPTYPE_FLAG)
    params = getattr(type(target), "__dataclass_params__", None)
    if params is not None and params.frozen:
        return True
    model_config = getattr(type(target), "model_config", None)
    if isinstance(model_config, dict) and model_config.get("frozen"):
        return True
    return False


def _slot_member(target: Any, name: str) -> Optional[Any]:
    try:
        static = inspect.getattr_static(type(target), name)
    except AttributeError:
        return None
    if isinstance(static, types.MemberDescriptorType):
        return static
    return None


def _own_attribute(target: Any, name: str) -> Optional[PropertyDescriptor]:
    if not isinstance(name, str):
        return None

    if isinstance(target, type):
        if name not in vars(target):
            return None
        raw = vars(target)[name]
        mutable = not is_frozen(target)
        if isinstance(raw, property):
            return PropertyDescriptor(getter=raw.fget, setter=raw.fset, writable=False, configurable=mutable)
        return PropertyDescriptor(value=raw, writable=mutable, configurable=mutable)

    frozen = is_frozen(target)
    namespace = getattr(target, "__dict__", None)
    if isinstance(namespace, dict) and name in namespace:
        return PropertyDescriptor(value=namespace[name], writable=not frozen, configurable=not frozen)

    member = _slot_member(target, name)
    if member is not None:
        try:
            value = member.__get__(target, type(target))
        except AttributeError:
            # Declared but never assigned
            return None
        return PropertyDescriptor(value=value, writable=not frozen, configurable=not frozen)
    return None


def _own_item(target: Any, key: Any) -> Optional[PropertyDescriptor]:
    if isinstance(target, MutableMapping):
        try:
            if key not in target:
                return None
        except TypeError:
            return None
        return PropertyDescriptor(value=target[key])

    if isinstance(target, MutableSequence):
        if not isinstance(key, int) or isinstance(key, bool):
            return None
        if not -len(target) <= key < len(target):
            return None
        return PropertyDescriptor(value=target[key])
    return None


def get_own_descriptor(target: Any, key: Any, via: PropertyAccess) -> Optional[PropertyDescriptor]:
    """
    Describe ``key`` if it is an own property of ``target``.

    Args:
        target: Unwrapped value.
        key: Attribute name or item key.
        via: Namespace the key belongs to.

    Returns:
        A PropertyDescriptor, or None when the property is missing or only
        reachable through the class (methods, class attributes, properties).
    """
    if via == PropertyAccess.ITEM:
        return _own_item(target, key)
    return _own_attribute(target, key)


def has_own_property(target: Any, key: Any, via: PropertyAccess) -> bool:
    return get_own_descriptor(target, key, via) is not None


def apply_descriptor(target: Any, key: Any, descriptor: PropertyDescriptor, via: PropertyAccess) -> None:
    """
    Define ``key`` on ``target`` directly, the way ``object.__setattr__`` does
    inside a frozen dataclass ``__init__``: custom ``__setattr__`` hooks and
    frozen guards are bypassed.
    """
    accessor = descriptor.getter is not None or descriptor.setter is not None

    if via == PropertyAccess.ITEM:
        if accessor:
            raise TypeError("item properties cannot be defined with a getter or setter")
        target[key] = descriptor.value
        return

    if isinstance(target, type):
        if accessor:
            type.__setattr__(target, key, property(descriptor.getter, descriptor.setter))
        else:
            type.__setattr__(target, key, descriptor.value)
        return

    if accessor:
        raise TypeError(
            f"accessor properties can only be defined on classes, not on {type(target).__name__} instances"
        )

    namespace = getattr(target, "__dict__", None)
    if isinstance(namespace, dict) and _slot_member(target, key) is None:
        namespace[key] = descriptor.value
    else:
        object.__setattr__(target, key, descriptor.value)
