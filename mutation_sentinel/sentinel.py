"""
Mutation Sentinels v1.0 - transparent mutation detection.

``make_sentinel(value)`` returns a proxy that behaves like ``value`` but reports
every structural change made through it (attribute and item writes, deletes,
``__class__`` reassignment, property definitions, builtin list/dict mutators)
to the configured mutation handler. Nested values read through a sentinel are
wrapped lazily, so ``sentinel.a.b.c = 1`` is reported too.

Reporting never prevents a change: the check runs first, the record (if any)
is handed to the handler, and then the operation is always performed.
"""

import copy
import inspect
import logging
import operator
import types
import weakref
from collections.abc import ItemsView, ValuesView
from typing import Any, Optional, TypeVar

import wrapt

from mutation_sentinel import config
from mutation_sentinel.container_traps import is_builtin_mutator, mutator_trap, run_mutator
from mutation_sentinel.contracts.mutation_schema import (
    PROTOTYPE_PROPERTY,
    DefinePropertyMutation,
    DeletePropertyMutation,
    PropertyAccess,
    PropertyDescriptor,
    SetMutation,
    SetPrototypeMutation,
)
from mutation_sentinel.descriptors import (
    ObservableKind,
    apply_descriptor,
    classify,
    get_own_descriptor,
    has_own_property,
)
from mutation_sentinel.equality import same_value, value_eq
from mutation_sentinel.identity_cache import sentinel_cache
from mutation_sentinel.utils.error_handling import contain_handler_errors

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()

ATTRIBUTE = PropertyAccess.ATTRIBUTE
ITEM = PropertyAccess.ITEM


@contain_handler_errors
def _report(mutation) -> None:
    config.current_options().mutation_handler(mutation)


def _current_item(target: Any, key: Any) -> Any:
    descriptor = get_own_descriptor(target, key, ITEM)
    if descriptor is not None:
        return descriptor.value
    if classify(target) in (ObservableKind.MAPPING, ObservableKind.SEQUENCE):
        return _MISSING
    try:
        return target[key]
    except (LookupError, TypeError):
        return _MISSING


def _normalize_index(target: Any, key: Any) -> Any:
    if isinstance(target, list) and isinstance(key, int) and -len(target) <= key < 0:
        return key + len(target)
    return key


class Sentinel(wrapt.ObjectProxy):
    """
    Proxy that reports structural mutations of its target.

    Internal state uses the ``_self_`` prefix so wrapt keeps it on the proxy
    instead of forwarding it to the target.
    """

    def __init__(self, wrapped, kind: ObservableKind):
        super().__init__(wrapped)
        self._self_kind = kind

    @property
    def __dict__(self):
        return self.__wrapped__.__dict__

    def __repr__(self):
        return repr(self.__wrapped__)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def _self_nested(self, value, descriptor: Optional[PropertyDescriptor]):
        # Non-writable, non-configurable own properties must come back untouched
        if descriptor is None or not (descriptor.writable or descriptor.configurable):
            return value
        if sentinel_cache.is_known(value):
            return value
        return make_sentinel(value)

    def _self_read_item(self, key):
        target = self.__wrapped__
        value = target[key]
        return self._self_nested(value, get_own_descriptor(target, key, ITEM))

    def _self_bound_method(self, name):
        """Methods defined in Python run with ``self`` bound to the sentinel."""
        target = self.__wrapped__
        if isinstance(target, type) or has_own_property(target, name, ATTRIBUTE):
            return None
        static = inspect.getattr_static(type(target), name, None)
        if inspect.isfunction(static):
            return types.MethodType(static, self)
        return None

    def _self_container_reader(self, name):
        target = self.__wrapped__
        if isinstance(target, dict):
            if name == "get":
                return self._self_get
            if name == "values":
                return self._self_values
            if name == "items":
                return self._self_items
        if name == "copy" and isinstance(target, (dict, list)):
            return self.__copy__
        return None

    def _self_get(self, key, default=None):
        if key in self.__wrapped__:
            return self._self_read_item(key)
        return default

    def _self_values(self):
        # Views look values up through this sentinel, so they stay live
        return ValuesView(self)

    def _self_items(self):
        return ItemsView(self)

    def _self_iterate(self, reverse=False):
        target = self.__wrapped__
        step = 0
        while step < len(target):
            index = len(target) - 1 - step if reverse else step
            yield self._self_read_item(index)
            step += 1

    def __getattr__(self, name):
        if name == "__wrapped__" or name.startswith("_self_"):
            raise AttributeError(name)
        target = self.__wrapped__

        method = self._self_bound_method(name)
        if method is not None:
            return method
        if is_builtin_mutator(target, self._self_kind, name):
            return mutator_trap(target, name, _report, make_sentinel)
        reader = self._self_container_reader(name)
        if reader is not None:
            return reader

        value = getattr(target, name)
        return self._self_nested(value, get_own_descriptor(target, name, ATTRIBUTE))

    def __getitem__(self, key):
        if isinstance(key, slice) and self._self_kind == ObservableKind.SEQUENCE:
            return [self._self_read_item(index) for index in range(*key.indices(len(self.__wrapped__)))]
        return self._self_read_item(key)

    def __iter__(self):
        if self._self_kind == ObservableKind.SEQUENCE:
            return self._self_iterate()
        return iter(self.__wrapped__)

    def __reversed__(self):
        if self._self_kind == ObservableKind.SEQUENCE:
            return self._self_iterate(reverse=True)
        return reversed(self.__wrapped__)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def __setattr__(self, name, value):
        if name == "__wrapped__" or name.startswith("_self_"):
            super().__setattr__(name, value)
            return
        target = self.__wrapped__

        if name == PROTOTYPE_PROPERTY:
            if type(target) is not value:
                _report(SetPrototypeMutation(target=target, prototype=value))
            target.__class__ = value
            return

        current = getattr(target, name, _MISSING)
        if not value_eq(current, value):
            _report(SetMutation(target=target, property=name, value=value, via=ATTRIBUTE))
        setattr(target, name, value)

    def __delattr__(self, name):
        if name == "__wrapped__" or name.startswith("_self_"):
            super().__delattr__(name)
            return
        target = self.__wrapped__
        if has_own_property(target, name, ATTRIBUTE):
            _report(DeletePropertyMutation(target=target, property=name, via=ATTRIBUTE))
        delattr(target, name)

    def __setitem__(self, key, value):
        target = self.__wrapped__
        if isinstance(key, slice) and is_builtin_mutator(target, self._self_kind, "__setitem__"):
            run_mutator(target, "__setitem__", (key, value), {}, _report)
            return

        current = _current_item(target, key)
        if not value_eq(current, value):
            _report(SetMutation(target=target, property=_normalize_index(target, key), value=value, via=ITEM))
        target[key] = value

    def __delitem__(self, key):
        target = self.__wrapped__
        # Deleting from a list shifts every later index
        if self._self_kind == ObservableKind.SEQUENCE and is_builtin_mutator(target, self._self_kind, "__delitem__"):
            run_mutator(target, "__delitem__", (key,), {}, _report)
            return

        if has_own_property(target, key, ITEM):
            _report(DeletePropertyMutation(target=target, property=_normalize_index(target, key), via=ITEM))
        del target[key]

    def _self_define_property(self, key, descriptor: PropertyDescriptor, via: PropertyAccess):
        target = self.__wrapped__
        current = get_own_descriptor(target, key, via)
        # A getter can return anything, so defining one always counts
        if current is None or not same_value(current.value, descriptor.value) or descriptor.getter is not None:
            _report(DefinePropertyMutation(target=target, property=key, descriptor=descriptor, via=via))
        apply_descriptor(target, key, descriptor, via)

    def _self_inplace(self, name, fallback, other):
        target = self.__wrapped__
        if is_builtin_mutator(target, self._self_kind, name):
            run_mutator(target, name, (other,), {}, _report, make_sentinel)
            return self
        method = self._self_bound_method(name)
        result = method(other) if method is not None else fallback(target, other)
        if result is target or result is self:
            return self
        # The name the operator rebinds stays observed
        return make_sentinel(result)

    def __iadd__(self, other):
        return self._self_inplace("__iadd__", operator.iadd, other)

    def __isub__(self, other):
        return self._self_inplace("__isub__", operator.isub, other)

    def __imul__(self, other):
        return self._self_inplace("__imul__", operator.imul, other)

    def __ior__(self, other):
        return self._self_inplace("__ior__", operator.ior, other)

    def __iand__(self, other):
        return self._self_inplace("__iand__", operator.iand, other)

    def __ixor__(self, other):
        return self._self_inplace("__ixor__", operator.ixor, other)

    def __itruediv__(self, other):
        return self._self_inplace("__itruediv__", operator.itruediv, other)

    def __ifloordiv__(self, other):
        return self._self_inplace("__ifloordiv__", operator.ifloordiv, other)

    def __imod__(self, other):
        return self._self_inplace("__imod__", operator.imod, other)

    def __ipow__(self, other):
        return self._self_inplace("__ipow__", operator.ipow, other)

    def __ilshift__(self, other):
        return self._self_inplace("__ilshift__", operator.ilshift, other)

    def __irshift__(self, other):
        return self._self_inplace("__irshift__", operator.irshift, other)

    def __imatmul__(self, other):
        return self._self_inplace("__imatmul__", operator.imatmul, other)

    # -------------------------------------------------------------------------
    # Copying
    # -------------------------------------------------------------------------

    def __copy__(self):
        """Shallow copy whose nested values are read through this sentinel."""
        target = self.__wrapped__
        kind = self._self_kind
        clone = copy.copy(target)

        if kind == ObservableKind.MAPPING:
            for key in list(clone.keys()):
                clone[key] = self._self_read_item(key)
        elif kind == ObservableKind.SEQUENCE:
            for index in range(len(clone)):
                clone[index] = self._self_read_item(index)
        elif kind == ObservableKind.RECORD and clone is not target:
            namespace = getattr(clone, "__dict__", None)
            if isinstance(namespace, dict):
                for name in list(namespace):
                    namespace[name] = self._self_nested(
                        namespace[name], get_own_descriptor(target, name, ATTRIBUTE)
                    )
        return clone

    def __deepcopy__(self, memo):
        return copy.deepcopy(self.__wrapped__, memo)

    def __reduce__(self):
        return self.__wrapped__.__reduce__()

    def __reduce_ex__(self, protocol):
        return self.__wrapped__.__reduce_ex__(protocol)


class CallableSentinel(Sentinel):
    """Sentinel for functions, classes and other callables."""

    def __call__(self, *args, **kwargs):
        return self.__wrapped__(*args, **kwargs)


def _probe_support() -> bool:
    """Checked once: sentinels must be proxyable and weakly referenceable."""
    class _Probe:
        pass

    try:
        weakref.ref(Sentinel(_Probe(), ObservableKind.RECORD))
    except TypeError as e:
        logger.warning(f"Mutation sentinels disabled, values will be returned unwrapped: {e}")
        return False
    return True


SENTINELS_SUPPORTED = _probe_support()


def make_sentinel(value: T) -> T:
    """
    Return the sentinel for ``value``, or ``value`` itself when it cannot or
    should not be observed (None, primitives, ignored values, existing
    sentinels). The same target always yields the same sentinel.
    """
    if not SENTINELS_SUPPORTED:
        return value
    if sentinel_cache.is_known(value):
        return value
    kind = classify(value)
    if kind is None:
        return value
    if config.current_options().should_ignore(value):
        return value

    with sentinel_cache.lock:
        cached = sentinel_cache.lookup(value)
        if cached is not None:
            return cached
        proxy_class = CallableSentinel if callable(value) else Sentinel
        sentinel = proxy_class(value, kind)
        sentinel_cache.register(value, sentinel)
    return sentinel


def is_sentinel(value: Any) -> bool:
    return sentinel_cache.is_known(value)


def define_property(obj: Any, key: Any, descriptor: Any = None, via: PropertyAccess = ATTRIBUTE) -> Any:
    """
    Define an own property, bypassing ``__setattr__`` and frozen guards.

    Args:
        obj: A sentinel (the definition is reported) or any plain value.
        key: Attribute name or item key.
        descriptor: PropertyDescriptor or a mapping of its fields
            (``{"value": 1}``, ``{"getter": fn}``).
        via: Attribute or item namespace.

    Returns:
        ``obj``
    """
    descriptor = PropertyDescriptor.coerce(descriptor if descriptor is not None else {})
    if is_sentinel(obj):
        obj._self_define_property(key, descriptor, via)
    else:
        apply_descriptor(obj, key, descriptor, via)
    return obj
