import threading
from typing import Any, Callable, Dict, Hashable, Tuple

CacheKey = Tuple[Hashable, ...]

# Views whose rows carry stock levels
PRODUCT_QUERY_KEYS = ("products", "admin-products", "product")


class QueryCache:
    """
    Results of remote reads keyed by (name, *params).

    Invalidation works on the name, so invalidate("product") drops
    ("product", "ray-ban-aviator") and ("product", "42") alike.
    """

    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}
        self._lock = threading.Lock()

    def get_or_fetch(self, key: CacheKey, fetch: Callable[[], Any]) -> Any:
        with self._lock:
            if key in self._entries:
                return self._entries[key]
        value = fetch()
        # Misses are not remembered
        if value is not None:
            with self._lock:
                self._entries[key] = value
        return value

    def invalidate(self, *names: str) -> int:
        with self._lock:
            stale = [key for key in self._entries if key[0] in names]
            for key in stale:
                del self._entries[key]
        return len(stale)

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries


query_cache = QueryCache()


def get_query_cache() -> QueryCache:
    return query_cache


def invalidate_product_queries(cache: QueryCache) -> int:
    """Mark every stock-bearing view stale so the next read refetches it"""
    return cache.invalidate(*PRODUCT_QUERY_KEYS)
