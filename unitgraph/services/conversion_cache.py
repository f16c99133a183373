"""Conversion Cache - memoizes resolved LinearMaps per SchemaContext.

Invariants:
    - Keyed by (from key, to key, delta); keys compare case-insensitively
    - Insert-if-absent: the first stored map wins, later racers get it back
    - Absence of an entry never changes a result, only the time to produce it
    - A map resolved before a clear() is never stored after it (generation check)

Design Decisions:
    - Concurrent resolutions may compute the same map twice, but never store two
      different maps for one key
    - No per-entry invalidation: items are immutable, the owning context clears
      the whole cache when a schema is added, removed or replaced
"""

import threading
from dataclasses import dataclass

from unitgraph.core.linear_map import LinearMap
from unitgraph.schemas.items import SchemaItemKey


@dataclass(frozen=True)
class CacheKey:
    from_key: SchemaItemKey
    to_key: SchemaItemKey
    delta: bool = False


class ConversionCache:
    """Process-lifetime map store owned by a SchemaContext."""

    def __init__(self):
        self._maps: dict[CacheKey, LinearMap] = {}
        self._lock = threading.Lock()
        self.generation = 0
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._maps)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._maps

    def get(self, key: CacheKey) -> LinearMap | None:
        found = self._maps.get(key)
        if found is None:
            self.misses += 1
        else:
            self.hits += 1
        return found

    def put_if_absent(
        self, key: CacheKey, linear_map: LinearMap, generation: int | None = None,
    ) -> LinearMap:
        """Store linear_map unless an entry exists; return the stored entry.

        When generation is given and the cache was cleared since it was read,
        linear_map is returned unstored.
        """
        with self._lock:
            if generation is not None and generation != self.generation:
                return linear_map
            return self._maps.setdefault(key, linear_map)

    def clear(self) -> None:
        with self._lock:
            self._maps = {}
            self.generation += 1
