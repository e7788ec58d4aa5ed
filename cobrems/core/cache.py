"""
Caching of reciprocal-lattice tables.

A lattice table depends only on the crystal species and the Miller-index
cutoff, never on the orientation, so one table is built per (species, hmax)
and shared read-only between radiator models, including clones handed to
worker threads.
"""

import inspect
import threading
from collections import OrderedDict
from functools import wraps
from typing import Any, Callable, Dict, Hashable, Optional

from cobrems.core.logging_config import get_logger

logger = get_logger("core.cache")


class LRUCache:
    """
    Thread-safe least-recently-used mapping with a size limit.

    Keys are any hashable objects; frozen species dataclasses and integer
    cutoffs qualify directly.
    """

    def __init__(self, max_size: int = 16):
        if max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {max_size}")
        self.max_size = max_size
        self._entries: "OrderedDict[Hashable, Any]" = OrderedDict()
        self.hits = 0
        self.misses = 0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: Hashable) -> Optional[Any]:
        """Return the cached value, or None on a miss."""
        with self._lock:
            if key not in self._entries:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return self._entries[key]

    def set(self, key: Hashable, value: Any) -> None:
        """Store a value, evicting the least recently used entry when full."""
        with self._lock:
            self._entries[key] = value
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted lattice table {evicted!r}")

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> Dict[str, Any]:
        """Size, hit and miss counters."""
        with self._lock:
            lookups = self.hits + self.misses
            return {
                "size": len(self._entries),
                "max_size": self.max_size,
                "hits": self.hits,
                "misses": self.misses,
                "hit_rate": self.hits / lookups if lookups else 0.0,
            }


_lattice_table_cache = LRUCache(max_size=16)


def cached_lattice_table(func: Callable) -> Callable:
    """
    Memoize a lattice-table builder on its bound arguments.

    Positional and keyword spellings of the same call share one entry, and
    defaults are filled in before the key is formed.
    """
    signature = inspect.signature(func)

    @wraps(func)
    def wrapper(*args, **kwargs):
        bound = signature.bind(*args, **kwargs)
        bound.apply_defaults()
        key = (func.__qualname__,) + tuple(bound.arguments.values())

        table = _lattice_table_cache.get(key)
        if table is None:
            table = func(*bound.args, **bound.kwargs)
            _lattice_table_cache.set(key, table)
        return table

    return wrapper


def get_cache_stats() -> Dict[str, Dict[str, Any]]:
    """Statistics of every cache, by name."""
    return {"lattice_tables": _lattice_table_cache.stats()}


def clear_all_caches() -> None:
    _lattice_table_cache.clear()
    logger.info("All caches cleared")
