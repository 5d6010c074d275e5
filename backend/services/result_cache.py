"""
In-process TTL cache for provider lookups.

One instance is created per application and handed to the PlacesClient.
Entries are never mutated after insertion; they simply expire.
"""
from __future__ import annotations

import hashlib
import json
import logging
import time
from collections import OrderedDict
from typing import Any, Callable, Optional, Tuple

from domain.models import Coordinate

logger = logging.getLogger(__name__)


def places_cache_key(
    location: Coordinate,
    radius_m: int,
    place_type: Optional[str],
    keywords: Optional[str],
    limit: int,
) -> str:
    """Key a nearby search by every parameter that changes the provider result."""
    payload = json.dumps(
        [location.lat, location.lng, radius_m, place_type, keywords, limit],
        ensure_ascii=False,
    )
    return "places:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def place_details_cache_key(place_id: str) -> str:
    return f"place:{place_id}"


class ResultCache:
    def __init__(
        self,
        ttl_seconds: int = 300,
        max_entries: Optional[int] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        # None or 0 means unbounded; entries then only leave through TTL.
        self.max_entries = max_entries or None
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def _is_expired(self, stored_at: float, now: float) -> bool:
        return self.ttl_seconds > 0 and (now - stored_at) >= self.ttl_seconds

    def get(self, key: str) -> Optional[Any]:
        """
        Return the cached value for key, or None if absent or expired.
        """
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache miss %s", key)
            return None
        stored_at, value = entry
        if self._is_expired(stored_at, self._clock()):
            del self._entries[key]
            logger.debug("cache expired %s", key)
            return None
        logger.debug("cache hit %s", key)
        return value

    def set(self, key: str, value: Any) -> None:
        """Store value under key, evicting the oldest entries past max_entries."""
        now = self._clock()
        self._entries.pop(key, None)
        self._entries[key] = (now, value)
        if self.max_entries is not None and len(self._entries) > self.max_entries:
            self.purge_expired()
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache evict %s", evicted)

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, (stored_at, _) in self._entries.items() if self._is_expired(stored_at, now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()
