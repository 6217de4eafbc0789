"""
Time-bounded in-process cache for decoded documents.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Cache TTL: 5 minutes
CACHE_TTL_SECONDS = 300.0


@dataclass(frozen=True)
class CacheEntry:
    value: BaseModel
    version: Optional[int]
    stored_at: float


class TTLCache:
    """
    Cache of decoded documents keyed by ``collection/id``.

    An entry is valid for exactly ``ttl_seconds`` from its last write or
    fetch. Expired entries are never returned and are dropped on access.
    """

    def __init__(
        self,
        ttl_seconds: float = CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_valid(self, entry: CacheEntry) -> bool:
        return self._clock() - entry.stored_at < self._ttl

    def get(self, key: str) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not self._is_valid(entry):
            logger.debug(f"Cache entry expired: {key}")
            del self._entries[key]
            return None
        return entry

    def put(self, key: str, value: BaseModel, version: Optional[int] = None) -> bool:
        """
        Store ``value`` unless the live entry holds a newer version.

        Returns False when the write was ignored as stale.
        """
        current = self.get(key)
        if (
            current is not None
            and current.version is not None
            and version is not None
            and version < current.version
        ):
            logger.debug(f"Ignoring stale cache write for {key}: v{version} < v{current.version}")
            return False
        self._entries[key] = CacheEntry(value=value, version=version, stored_at=self._clock())
        return True

    def evict(self, key: str) -> None:
        self._entries.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return sum(1 for entry in self._entries.values() if self._is_valid(entry))
