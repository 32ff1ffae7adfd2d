"""
Media Manager Module

Session-only cache of media elements that have already been loaded, so the same
image or video is not fetched and decoded twice. Nothing here is persisted.
"""

import math
import time
import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 50
EVICTION_FRACTION = 0.2


@dataclass
class MediaEntry:
    key: str
    loaded: bool
    element: Any
    last_access: float


class BoundedMediaCache:
    """
    Fixed-capacity media cache with batch eviction.

    When a new URL is added at capacity, the oldest 20% of entries (by last
    access) are dropped in one pass rather than one entry per insert. Entries
    are kept in recency order, so a touch is O(1) and eviction is O(k).
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY,
                 eviction_fraction: float = EVICTION_FRACTION,
                 clock: Optional[Callable[[], float]] = None):
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}")
        if not 0 < eviction_fraction <= 1:
            raise ValueError(f"eviction_fraction must be in (0, 1], got {eviction_fraction}")

        self.capacity = capacity
        self.eviction_fraction = eviction_fraction
        self._clock = clock or time.monotonic
        self._entries: "OrderedDict[str, MediaEntry]" = OrderedDict()
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, url: str) -> bool:
        return url in self._entries

    def is_loaded(self, url: str) -> bool:
        entry = self._entries.get(url)
        return bool(entry and entry.loaded)

    def mark_loaded(self, url: str, element: Any = None) -> None:
        """Record a loaded media element, evicting the oldest batch first if full."""
        if url not in self._entries and len(self._entries) >= self.capacity:
            self._evict_oldest()

        self._entries[url] = MediaEntry(key=url, loaded=True, element=element, last_access=self._clock())
        self._entries.move_to_end(url)

    def get_element(self, url: str) -> Optional[Any]:
        entry = self._entries.get(url)
        if entry is None:
            return None
        entry.last_access = self._clock()
        self._entries.move_to_end(url)
        return entry.element

    def _evict_oldest(self) -> None:
        to_remove = max(1, math.floor(len(self._entries) * self.eviction_fraction))
        for _ in range(to_remove):
            self._entries.popitem(last=False)
        self.evictions += to_remove
        logger.debug(f"Evicted {to_remove} media entries, {len(self._entries)} remain")

    def clear(self) -> None:
        self._entries.clear()

    def get_cache_stats(self) -> Dict[str, int]:
        return {
            "size": len(self._entries),
            "max_size": self.capacity,
            "evictions": self.evictions,
        }
