"""
Cache TTL en mémoire des lectures API réussies (GET idempotents uniquement).
- Clé: URL + paramètres triés + options sérialisées
- Une entrée plus vieille que le TTL est considérée absente (et purgée à la lecture)
"""
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional
import json
import time

from storefront.config import CACHE_TTL_SECONDS


@dataclass
class CacheEntry:
    key: str
    data: Any
    timestamp: float


def make_cache_key(url: str, params: Optional[Mapping[str, Any]] = None, options: Optional[Mapping[str, Any]] = None) -> str:
    query = "&".join(f"{k}={params[k]}" for k in sorted(params or {}))
    opts = json.dumps(dict(options or {}), sort_keys=True)
    return f"{url}?{query}-{opts}"


class TTLCache:
    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.data

    def set(self, key: str, data: Any) -> None:
        self._entries[key] = CacheEntry(key=key, data=data, timestamp=self._clock())

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return len(self._entries)

    def clear(self) -> None:
        self._entries.clear()
