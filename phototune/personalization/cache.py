"""
Bounded in-process cache for user editing profiles.
"""

import logging
import threading
import zlib
from collections import OrderedDict
from typing import Any, Dict, Optional

from ..processing.models import UserEditingProfile

logger = logging.getLogger(__name__)


class ProfileCache:
    """
    Thread-safe LRU cache of UserEditingProfile keyed by user id.

    Reads and writes are guarded by one re-entrant lock. Rebuilds for the
    same user are serialized through :meth:`lock_for`, which hands out one
    of a fixed set of striped locks so memory stays bounded no matter how
    many users are seen.
    """

    def __init__(self, max_size: int = 256, lock_stripes: int = 64):
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1, got {max_size}")
        self.max_size = max_size
        self._entries: "OrderedDict[str, UserEditingProfile]" = OrderedDict()
        self._lock = threading.RLock()
        self._build_locks = [threading.Lock() for _ in range(max(1, lock_stripes))]
        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.invalidations = 0

    def get(self, user_id: str) -> Optional[UserEditingProfile]:
        with self._lock:
            profile = self._entries.get(user_id)
            if profile is None:
                self.misses += 1
                return None
            self._entries.move_to_end(user_id)
            self.hits += 1
            return profile

    def peek(self, user_id: str) -> Optional[UserEditingProfile]:
        """Look up without touching LRU order or counters."""
        with self._lock:
            return self._entries.get(user_id)

    def put(self, user_id: str, profile: UserEditingProfile) -> None:
        with self._lock:
            self._entries[user_id] = profile
            self._entries.move_to_end(user_id)
            while len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"Evicted profile for user {evicted}")

    def invalidate(self, user_id: str) -> bool:
        with self._lock:
            removed = self._entries.pop(user_id, None) is not None
            if removed:
                self.invalidations += 1
            return removed

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def lock_for(self, user_id: str) -> threading.Lock:
        """Build lock serializing profile rebuilds for ``user_id``."""
        index = zlib.crc32(user_id.encode('utf-8')) % len(self._build_locks)
        return self._build_locks[index]

    def __contains__(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def stats(self) -> Dict[str, Any]:
        with self._lock:
            lookups = self.hits + self.misses
            return {
                'size': len(self._entries),
                'max_size': self.max_size,
                'hits': self.hits,
                'misses': self.misses,
                'hit_rate': self.hits / lookups if lookups else 0.0,
                'evictions': self.evictions,
                'invalidations': self.invalidations,
            }
