"""
Wrapper identity cache.

Maps a target to its sentinel and remembers which values are sentinels. Both
tables are keyed by ``id()`` so targets are matched by identity, never by
equality, and unhashable targets (dict, list) work. Entries hold only a weak
reference to the sentinel; the sentinel holds the target, so an entry lives
exactly as long as its sentinel does.
"""

import logging
import threading
import weakref
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class SentinelCache:

    def __init__(self):
        self._by_target: Dict[int, weakref.ref] = {}
        self._known: Dict[int, weakref.ref] = {}
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return sum(1 for ref in list(self._by_target.values()) if ref() is not None)

    def lookup(self, target: Any) -> Optional[Any]:
        """Return the live sentinel for ``target``, or None."""
        ref = self._by_target.get(id(target))
        if ref is None:
            return None
        sentinel = ref()
        # Guards against a recycled id() whose eviction callback has not run yet
        if sentinel is None or sentinel.__wrapped__ is not target:
            return None
        return sentinel

    def is_known(self, value: Any) -> bool:
        ref = self._known.get(id(value))
        return ref is not None and ref() is value

    def register(self, target: Any, sentinel: Any) -> None:
        """Pair ``target`` with ``sentinel``. Registering the same pair twice is a no-op."""
        with self.lock:
            if self.lookup(target) is sentinel:
                return
            target_key = id(target)
            sentinel_key = id(sentinel)
            by_target = self._by_target
            known = self._known

            def _evict(ref):
                if by_target.get(target_key) is ref:
                    by_target.pop(target_key, None)
                if known.get(sentinel_key) is ref:
                    known.pop(sentinel_key, None)

            ref = weakref.ref(sentinel, _evict)
            by_target[target_key] = ref
            known[sentinel_key] = ref
        logger.debug(f"Registered sentinel for {type(target).__name__} at {target_key:#x}")


sentinel_cache = SentinelCache()
