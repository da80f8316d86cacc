from __future__ import annotations
from typing import Optional
import logging

from cachetools import LRUCache

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 300


class IconCache:
    """Bounded LRU map from item key to resolved icon payload.

    Reads and writes both move the key to the most-recent position. When a
    write pushes the size over capacity the least-recently-used key is evicted.
    Empty payloads are never stored, so a key that resolved to "no icon" is
    fetched again on the next request.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 1:
            raise ValueError(f"Icon cache capacity must be positive, got {capacity}")
        self._icons: LRUCache = LRUCache(maxsize=capacity)

    @property
    def capacity(self) -> int:
        return int(self._icons.maxsize)

    def get(self, key: str) -> Optional[str]:
        """Get cached payload by key, refreshing its recency on a hit."""
        return self._icons.get(key)

    def put(self, key: str, payload: Optional[str]) -> None:
        """Store a payload as the most recently used entry."""
        if not payload:
            return
        # re-insert so an existing key lands at the most-recent position
        self._icons.pop(key, None)
        self._icons[key] = payload
        logger.debug(f"Cached icon for {key} ({len(self._icons)}/{self.capacity})")

    def clear(self) -> None:
        self._icons.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._icons

    def __len__(self) -> int:
        return len(self._icons)
