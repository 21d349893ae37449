from __future__ import annotations

import threading

import pytest

from exercise_resolution.cache import CacheEntry, ResolutionCache, token_overlap
from exercise_resolution.catalog import ExerciseRecord

PUSH_UP = ExerciseRecord("a1B2c3D", "push-up")
SQUAT = ExerciseRecord("k7Lm2Qx", "squat")


def _entry(record: ExerciseRecord, key: str, confidence: float = 0.8) -> CacheEntry:
    return CacheEntry(record=record, display_name=record.name, tier="semantic", confidence=confidence, tokens=tuple(key.split()))


def test_exact_roundtrip_and_miss():
    cache = ResolutionCache()
    cache.put("push up", _entry(PUSH_UP, "push up"))
    assert cache.get_exact("push up").exercise_id == "a1B2c3D"
    assert cache.get_exact("squat") is None
    stats = cache.stats()
    assert stats["exact_hits"] == 1
    assert stats["misses"] == 1


def test_lru_evicts_least_recently_used():
    cache = ResolutionCache(max_entries=2, recent_size=8)
    cache.put("a", _entry(PUSH_UP, "a"))
    cache.put("b", _entry(SQUAT, "b"))
    cache.get_exact("a")
    cache.put("c", _entry(SQUAT, "c"))
    assert cache.get_exact("b") is None
    assert cache.get_exact("a") is not None
    assert len(cache) == 2
    assert cache.stats()["evictions"] == 1


def test_last_write_wins():
    cache = ResolutionCache()
    cache.put("x", _entry(PUSH_UP, "x"))
    cache.put("x", _entry(SQUAT, "x"))
    assert cache.get_exact("x").exercise_id == "k7Lm2Qx"


def test_partial_scans_recent_ring_for_best_overlap():
    cache = ResolutionCache()
    cache.put("wide push up", _entry(PUSH_UP, "wide push up"))
    cache.put("deep squat", _entry(SQUAT, "deep squat"))
    found = cache.get_partial("wide push up hold", 0.5)
    assert found is not None
    entry, overlap = found
    assert entry.exercise_id == "a1B2c3D"
    assert overlap == pytest.approx(0.75)
    assert cache.get_partial("lateral raise", 0.5) is None


def test_partial_only_sees_ring_window():
    cache = ResolutionCache(max_entries=16, recent_size=1)
    cache.put("wide push up", _entry(PUSH_UP, "wide push up"))
    cache.put("deep squat", _entry(SQUAT, "deep squat"))
    assert cache.get_partial("wide push up hold", 0.5) is None
    assert cache.get_exact("wide push up") is not None


def test_clear_drops_everything():
    cache = ResolutionCache()
    cache.put("x", _entry(PUSH_UP, "x"))
    cache.clear()
    assert len(cache) == 0
    assert cache.get_partial("x", 0.1) is None


def test_rejects_non_positive_sizes():
    with pytest.raises(ValueError):
        ResolutionCache(max_entries=0)


def test_token_overlap_bounds():
    assert token_overlap(("a", "b"), ("a", "b")) == 1.0
    assert token_overlap((), ("a",)) == 0.0
    assert token_overlap(("a", "b", "c"), ("a",)) == pytest.approx(1 / 3)


def test_concurrent_writers_keep_structure_consistent():
    cache = ResolutionCache(max_entries=50, recent_size=10)

    def writer(offset: int) -> None:
        for i in range(200):
            key = f"k{(i + offset) % 80}"
            cache.put(key, _entry(PUSH_UP, key))
            cache.get_exact(key)
            cache.get_partial(key, 0.5)

    threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(cache) <= 50
    assert cache.stats()["recent"] <= 10
