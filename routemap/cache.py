"""
In-memory TTL cache for geolocation results
"""

import threading
import time
from typing import Callable, Optional

from .config import DEFAULT_CACHE_TTL
from .models import CacheEntry, GeoInfo


class GeoCache:
    """
    In-memory geolocation cache.

    Maps an IP address to its last resolution outcome, which may be a
    negative result (value None). Entries expire lazily: an entry whose
    age reaches the TTL is dropped when it is next read. There is no
    background sweep and nothing is written to disk.

    Safe to share between concurrent pipeline runs.
    """

    def __init__(self, ttl: Optional[float] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = DEFAULT_CACHE_TTL if ttl is None else ttl
        self._clock = clock
        self._data: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _is_valid(self, entry: CacheEntry) -> bool:
        """Check if cache entry is still valid"""
        return self._clock() - entry.inserted_at < self.ttl

    def get(self, ip: str) -> Optional[CacheEntry]:
        """
        Get cached entry for IP.

        Args:
            ip: IP address

        Returns:
            CacheEntry (possibly negative) or None if not found/expired
        """
        with self._lock:
            entry = self._data.get(ip)
            if entry is None:
                return None
            if not self._is_valid(entry):
                del self._data[ip]
                return None
            return entry

    def put(self, ip: str, value: Optional[GeoInfo]) -> CacheEntry:
        """
        Store a resolution outcome for IP, replacing any existing entry.

        Args:
            ip: IP address
            value: GeoInfo, or None to record a negative result
        """
        entry = CacheEntry(value=value, inserted_at=self._clock())
        with self._lock:
            self._data[ip] = entry
        return entry

    def clear(self):
        """Clear all cache entries"""
        with self._lock:
            self._data = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def __contains__(self, ip: str) -> bool:
        return self.get(ip) is not None
