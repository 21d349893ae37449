"""Bounded resolution cache with exact and partial lookup paths.

The store is an LRU keyed by normalized name. A secondary ring of recently
written keys is what partial lookups scan, so their cost stays bounded by the
ring size instead of the store size. Entries never expire; clear() is the
invalidation hook for catalog reloads.
"""

from __future__ import annotations

import threading
from collections import OrderedDict, deque
from dataclasses import dataclass

from .catalog import ExerciseRecord


@dataclass(frozen=True)
class CacheEntry:
    record: ExerciseRecord | None
    display_name: str
    tier: str
    confidence: float
    tokens: tuple[str, ...] = ()

    @property
    def exercise_id(self) -> str | None:
        return self.record.exercise_id if self.record is not None else None


def token_overlap(left: tuple[str, ...] | frozenset[str], right: tuple[str, ...] | frozenset[str]) -> float:
    """Shared tokens over the larger token count, in [0, 1]."""
    a, b = set(left), set(right)
    if not a or not b:
        return 0.0
    return len(a & b) / max(len(a), len(b))


class ResolutionCache:
    def __init__(self, max_entries: int = 2048, recent_size: int = 256) -> None:
        if max_entries <= 0 or recent_size <= 0:
            raise ValueError("cache sizes must be positive")
        self.max_entries = max_entries
        self._store: OrderedDict[str, CacheEntry] = OrderedDict()
        self._recent: deque[str] = deque(maxlen=recent_size)
        self._lock = threading.Lock()
        self._stats = {
            "exact_hits": 0,
            "partial_hits": 0,
            "misses": 0,
            "writes": 0,
            "evictions": 0,
        }

    def __len__(self) -> int:
        return len(self._store)

    def get_exact(self, key: str) -> CacheEntry | None:
        with self._lock:
            entry = self._store.get(key)
            if entry is None:
                self._stats["misses"] += 1
                return None
            self._store.move_to_end(key)
            self._stats["exact_hits"] += 1
            return entry

    def get_partial(self, key: str, min_overlap: float, tokens: tuple[str, ...] = ()) -> tuple[CacheEntry, float] | None:
        """Best recent entry whose key tokens overlap ``key``'s by at least ``min_overlap``.

        Ties go to the most recently written key.
        """
        query_tokens = tokens or tuple(key.split())
        best: tuple[CacheEntry, float] | None = None
        with self._lock:
            for recent_key in reversed(self._recent):
                if recent_key == key:
                    continue
                entry = self._store.get(recent_key)
                if entry is None:
                    continue
                overlap = token_overlap(query_tokens, entry.tokens or tuple(recent_key.split()))
                if overlap >= min_overlap and (best is None or overlap > best[1]):
                    best = (entry, overlap)
            if best is None:
                self._stats["misses"] += 1
            else:
                self._stats["partial_hits"] += 1
        return best

    def put(self, key: str, entry: CacheEntry) -> None:
        """Last write wins for a key."""
        if not key:
            return
        with self._lock:
            self._store[key] = entry
            self._store.move_to_end(key)
            self._stats["writes"] += 1
            if key in self._recent:
                self._recent.remove(key)
            self._recent.append(key)
            while len(self._store) > self.max_entries:
                self._store.popitem(last=False)
                self._stats["evictions"] += 1

    def clear(self) -> None:
        with self._lock:
            self._store.clear()
            self._recent.clear()

    def stats(self) -> dict[str, int]:
        with self._lock:
            return {"entries": len(self._store), "recent": len(self._recent), **self._stats}
