from __future__ import annotations

from time import monotonic
from typing import Any, Dict, Hashable, Optional, Tuple
import threading

from app.config.settings import settings


class TTLCache:
    """Small in-memory TTL cache for Azure DevOps lookups.

    - Capacity-bounded; evicts entries closest to expiry first when over capacity.
    - Thread-safe using a simple lock.
    - Expired entries are purged opportunistically on every write.
    """

    def __init__(self, max_items: int = 256) -> None:
        self._data: Dict[Hashable, Tuple[float, Any]] = {}
        self._max = max_items
        self._lock = threading.Lock()

    def _purge(self) -> None:
        now = monotonic()
        with self._lock:
            expired = [k for k, (exp, _) in self._data.items() if exp < now]
            for k in expired:
                self._data.pop(k, None)
            if len(self._data) > self._max:
                over = len(self._data) - self._max
                for k, _ in sorted(self._data.items(), key=lambda kv: kv[1][0])[:over]:
                    self._data.pop(k, None)

    def get(self, key: Hashable) -> Optional[Any]:
        with self._lock:
            item = self._data.get(key)
            if not item:
                return None
            exp, val = item
            if exp < monotonic():
                self._data.pop(key, None)
                return None
            return val

    def set(self, key: Hashable, value: Any, ttl_seconds: float) -> None:
        with self._lock:
            self._data[key] = (monotonic() + float(ttl_seconds), value)
        self._purge()

    def clear(self, key: Hashable) -> None:
        with self._lock:
            self._data.pop(key, None)

    def clear_all(self) -> None:
        with self._lock:
            self._data.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)


CACHE_TTL_PROJECTS = settings.azure_projects_cache_ttl_seconds

# Keyed by (organization_url, pat fingerprint)
AZURE_PROJECTS_CACHE = TTLCache(max_items=64)
