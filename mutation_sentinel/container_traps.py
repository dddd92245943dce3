"""
Traps for the C-implemented methods of builtin ``list`` and ``dict``.

``list.append`` and friends mutate their instance directly and never go
through ``__setitem__``, so a sentinel cannot see them as item writes. Instead
the method runs on a shallow working copy, the copy is compared slot by slot
with the target, one record is reported per changed slot, and only then are
the copy's contents committed back into the target.

Appends, tail pops and key-level dict updates skip the copy: their records
follow from the arguments alone.
"""

import inspect
import logging
from typing import Any, Callable, Dict, Iterator, List, Optional

from mutation_sentinel.contracts.mutation_schema import (
    DeletePropertyMutation,
    PropertyAccess,
    SetMutation,
)
from mutation_sentinel.descriptors import ObservableKind
from mutation_sentinel.equality import value_eq

logger = logging.getLogger(__name__)

_MISSING = object()
_FALLBACK = object()

LIST_MUTATORS = frozenset({
    "append", "extend", "insert", "pop", "remove", "clear", "sort", "reverse",
    "__iadd__", "__imul__", "__setitem__", "__delitem__",
})

DICT_MUTATORS = frozenset({
    "update", "pop", "popitem", "clear", "setdefault", "move_to_end",
    "__ior__", "__setitem__", "__delitem__",
})


def _builtin_base(target: Any, kind: ObservableKind) -> Optional[type]:
    if kind == ObservableKind.SEQUENCE and isinstance(target, list):
        return list
    if kind == ObservableKind.MAPPING and isinstance(target, dict):
        return dict
    return None


def is_builtin_mutator(target: Any, kind: ObservableKind, name: str) -> bool:
    """True if ``name`` is an unmodified C method of list/dict that mutates in place."""
    base = _builtin_base(target, kind)
    if base is None:
        return False
    mutators = LIST_MUTATORS if base is list else DICT_MUTATORS
    if name not in mutators:
        return False
    static = inspect.getattr_static(type(target), name, None)
    # Methods overridden in Python go through the sentinel-bound path instead
    return static is not None and not inspect.isfunction(static)


def _diff_sequence(target: list, before: List[Any], after: List[Any]) -> Iterator[Any]:
    for index, value in enumerate(after):
        if index >= len(before) or not value_eq(before[index], value):
            yield SetMutation(target=target, property=index, value=value, via=PropertyAccess.ITEM)
    for index in reversed(range(len(after), len(before))):
        yield DeletePropertyMutation(target=target, property=index, via=PropertyAccess.ITEM)


def _diff_mapping(target: dict, before: Dict[Any, Any], after: Dict[Any, Any]) -> Iterator[Any]:
    for key, value in after.items():
        if not value_eq(before.get(key, _MISSING), value):
            yield SetMutation(target=target, property=key, value=value, via=PropertyAccess.ITEM)
    for key in before:
        if key not in after:
            yield DeletePropertyMutation(target=target, property=key, via=PropertyAccess.ITEM)


def _commit(target: Any, working: Any) -> None:
    if isinstance(target, list):
        list.__setitem__(target, slice(None), working)
        return
    # OrderedDict keeps its own ordering links, so prefer the class's C methods
    klass = type(target)
    if inspect.isfunction(inspect.getattr_static(klass, "clear")) or \
            inspect.isfunction(inspect.getattr_static(klass, "update")):
        klass = dict
    klass.clear(target)
    klass.update(target, working)


def _unchanged(value: Any) -> Any:
    return value


def _list_append(target, args, kwargs, report, wrap):
    if len(args) != 1 or kwargs:
        return _FALLBACK
    value = args[0]
    report(SetMutation(target=target, property=len(target), value=value, via=PropertyAccess.ITEM))
    list.append(target, value)
    return None


def _list_extend(target, args, kwargs, report, wrap):
    if len(args) != 1 or kwargs:
        return _FALLBACK
    values = list(args[0])
    start = len(target)
    for offset, value in enumerate(values):
        report(SetMutation(target=target, property=start + offset, value=value, via=PropertyAccess.ITEM))
    list.extend(target, values)
    return None


def _list_pop(target, args, kwargs, report, wrap):
    if not target or kwargs:
        return _FALLBACK
    if args:
        index = args[0]
        # Only the tail can be popped without shifting other indices
        if not isinstance(index, int) or index not in (-1, len(target) - 1):
            return _FALLBACK
    report(DeletePropertyMutation(target=target, property=len(target) - 1, via=PropertyAccess.ITEM))
    return wrap(list.pop(target))


def _dict_update(target, args, kwargs, report, wrap):
    incoming = dict(*args, **kwargs)
    for key, value in incoming.items():
        if not value_eq(target.get(key, _MISSING), value):
            report(SetMutation(target=target, property=key, value=value, via=PropertyAccess.ITEM))
    target.update(incoming)
    return None


def _dict_setdefault(target, args, kwargs, report, wrap):
    if not 1 <= len(args) <= 2 or kwargs:
        return _FALLBACK
    key = args[0]
    default = args[1] if len(args) > 1 else None
    if key not in target:
        report(SetMutation(target=target, property=key, value=default, via=PropertyAccess.ITEM))
    return wrap(target.setdefault(key, default))


def _dict_pop(target, args, kwargs, report, wrap):
    if not 1 <= len(args) <= 2 or kwargs:
        return _FALLBACK
    key = args[0]
    if key not in target:
        return target.pop(*args)
    report(DeletePropertyMutation(target=target, property=key, via=PropertyAccess.ITEM))
    return wrap(target.pop(key))


# Mutators whose effect follows from their arguments alone
_DIRECT_LIST = {
    "append": _list_append,
    "extend": _list_extend,
    "__iadd__": _list_extend,
    "pop": _list_pop,
}

_DIRECT_DICT = {
    "update": _dict_update,
    "__ior__": _dict_update,
    "setdefault": _dict_setdefault,
    "pop": _dict_pop,
}


def _direct_mutator(target: Any, name: str) -> Optional[Callable[..., Any]]:
    if isinstance(target, list):
        return _DIRECT_LIST.get(name)
    # dict subclasses (OrderedDict) may keep extra state, so they take the copying path
    if type(target) is dict:
        return _DIRECT_DICT.get(name)
    return None


def _wrap_result(name: str, result: Any, wrap: Callable[[Any], Any]) -> Any:
    if name in ("pop", "setdefault"):
        return wrap(result)
    if name == "popitem":
        key, value = result
        return key, wrap(value)
    return result


def run_mutator(target: Any, name: str, args: tuple, kwargs: dict,
                report: Callable[[Any], None], wrap: Callable[[Any], Any] = _unchanged) -> Any:
    """
    Run builtin method ``name`` against ``target`` with reporting.

    Args:
        target: Unwrapped list or dict.
        name: Method name (one of LIST_MUTATORS / DICT_MUTATORS).
        args, kwargs: Call arguments.
        report: Receives each mutation record, before the target changes.
        wrap: Applied to values handed back that are (or were) stored in the
            target, e.g. the results of ``pop`` and ``setdefault``.

    Returns:
        Whatever the method returned.
    """
    direct = _direct_mutator(target, name)
    if direct is not None:
        result = direct(target, args, kwargs, report, wrap)
        if result is not _FALLBACK:
            return result

    base = list if isinstance(target, list) else dict
    before = base.copy(target)
    working = target.copy() if base is dict else base.copy(target)
    result = getattr(working, name)(*args, **kwargs)

    if base is list:
        mutations = list(_diff_sequence(target, before, working))
    else:
        mutations = list(_diff_mapping(target, before, working))

    for mutation in mutations:
        report(mutation)
    _commit(target, working)
    return _wrap_result(name, result, wrap)


def mutator_trap(target: Any, name: str, report: Callable[[Any], None],
                 wrap: Callable[[Any], Any] = _unchanged) -> Callable[..., Any]:
    def trap(*args, **kwargs):
        return run_mutator(target, name, args, kwargs, report, wrap)
    trap.__name__ = name
    trap.__qualname__ = f"{type(target).__name__}.{name}"
    trap.__doc__ = getattr(getattr(type(target), name, None), "__doc__", None)
    return trap
