"""
Concurrent Caches

Read-mostly maps shared by every thread of the process.

``get_or_add`` computes a missing value outside of any lock and publishes it
with ``dict.setdefault``, which is atomic under the interpreter. Two threads
racing on the same key may both compute; the first insert wins and every
caller gets the published value.
"""

from dataclasses import dataclass
from typing import Any, Callable, Generic, Hashable, Iterator, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")

_MISSING = object()


@dataclass
class CacheStats:
    """Counters for one cache."""

    name: str
    entries: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total * 100

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "entries": self.entries,
            "hits": self.hits,
            "misses": self.misses,
            "evictions": self.evictions,
            "hit_rate": round(self.hit_rate, 1),
        }


class ConcurrentCache(Generic[K, V]):
    """
    Process-wide memo table with atomic get-or-add.

    Example:
        >>> cache = ConcurrentCache("descriptors")
        >>> cache.get_or_add(User, build_descriptor)

    Args:
        name: Cache name used in statistics and diagnostics
        max_entries: Bound on stored entries (None = unbounded). When the
            bound is exceeded the oldest insertions are evicted. A callable
            is read on every insert, so the bound can follow configuration.
    """

    def __init__(
        self,
        name: str,
        max_entries: int | None | Callable[[], int | None] = None,
    ):
        self.name = name
        self._max_entries = max_entries
        self._data: dict[K, V] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    @property
    def max_entries(self) -> int | None:
        if callable(self._max_entries):
            return self._max_entries()
        return self._max_entries

    def get_or_add(self, key: K, factory: Callable[[K], V]) -> V:
        """Return the cached value for ``key``, computing and publishing it if absent."""
        value = self._data.get(key, _MISSING)
        if value is not _MISSING:
            self._hits += 1
            return value

        self._misses += 1
        created = factory(key)
        value = self._data.setdefault(key, created)
        if value is created:
            self._trim()
        return value

    def try_get(self, key: K, default: Any = None) -> Any:
        value = self._data.get(key, _MISSING)
        if value is _MISSING:
            return default
        self._hits += 1
        return value

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def set(self, key: K, value: V) -> V:
        """Publish ``value`` unless another value is already stored; return the stored one."""
        stored = self._data.setdefault(key, value)
        if stored is value:
            self._trim()
        return stored

    def _trim(self) -> None:
        limit = self.max_entries
        if limit is None:
            return
        while len(self._data) > limit:
            try:
                oldest = next(iter(self._data))
            except (StopIteration, RuntimeError):
                # Another thread changed the map mid-iteration; next insert retries
                return
            if self._data.pop(oldest, _MISSING) is not _MISSING:
                self._evictions += 1

    def invalidate(self, key: K | None = None) -> None:
        """
        Drop one entry, or everything when ``key`` is None.

        Values already handed out stay valid; they are simply no longer shared
        with future callers.
        """
        if key is None:
            self._data.clear()
        else:
            self._data.pop(key, None)

    def keys(self) -> list[K]:
        return list(self._data)

    def values(self) -> list[V]:
        return list(self._data.values())

    def __iter__(self) -> Iterator[K]:
        return iter(self.keys())

    def __len__(self) -> int:
        return len(self._data)

    def stats(self) -> CacheStats:
        return CacheStats(
            name=self.name,
            entries=len(self._data),
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
        )

    def __repr__(self) -> str:
        return f"ConcurrentCache({self.name}, entries={len(self._data)})"


class CacheRegistry:
    """
    Named process-wide caches, so they can be inspected and cleared together.
    """

    def __init__(self) -> None:
        self._caches: dict[str, ConcurrentCache] = {}

    def register(self, cache: ConcurrentCache) -> ConcurrentCache:
        return self._caches.setdefault(cache.name, cache)

    def get(self, name: str) -> ConcurrentCache | None:
        return self._caches.get(name)

    def invalidate(self, name: str | None = None) -> None:
        """Clear one named cache, or all of them."""
        if name:
            cache = self._caches.get(name)
            if cache is not None:
                cache.invalidate()
        else:
            for cache in self._caches.values():
                cache.invalidate()

    def get_cache_info(self) -> dict[str, dict[str, Any]]:
        return {name: cache.stats().to_dict() for name, cache in self._caches.items()}


registry = CacheRegistry()


def configured_max_entries() -> int | None:
    from runtime_stuff.config import get_config

    return get_config().cache.max_entries


def create_cache(name: str) -> ConcurrentCache:
    """Create and register a process-wide cache bounded by configuration."""
    return registry.register(ConcurrentCache(name, max_entries=configured_max_entries))
