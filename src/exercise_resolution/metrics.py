"""In-memory resolution metrics.

Counters are updated from the event loop and from worker threads alike, so
updates go through a lock.
"""

import threading
import time

_start_time = time.monotonic()
_lock = threading.Lock()

_metrics: dict = {
    "resolutions": 0,
    "plans_validated": 0,
    "plans_failed": 0,
    "tiers": {},
    "replacements": {},
}


def record_tier_hit(tier: str, duration_ms: float) -> None:
    """Record one resolution answered by ``tier``."""
    with _lock:
        _metrics["resolutions"] += 1
        t = _metrics["tiers"].setdefault(tier, {"hits": 0, "total_duration_ms": 0.0})
        t["hits"] += 1
        t["total_duration_ms"] += duration_ms


def record_replacement(strategy: str) -> None:
    with _lock:
        _metrics["replacements"][strategy] = _metrics["replacements"].get(strategy, 0) + 1


def record_plan_validated(success: bool) -> None:
    with _lock:
        if success:
            _metrics["plans_validated"] += 1
        else:
            _metrics["plans_failed"] += 1


def get_metrics() -> dict:
    """Return a snapshot of current metrics."""
    with _lock:
        return {
            "uptime_seconds": round(time.monotonic() - _start_time, 1),
            "resolutions": _metrics["resolutions"],
            "plans_validated": _metrics["plans_validated"],
            "plans_failed": _metrics["plans_failed"],
            "tiers": {name: dict(stats) for name, stats in _metrics["tiers"].items()},
            "replacements": dict(_metrics["replacements"]),
        }


def reset_metrics() -> None:
    with _lock:
        _metrics["resolutions"] = 0
        _metrics["plans_validated"] = 0
        _metrics["plans_failed"] = 0
        _metrics["tiers"].clear()
        _metrics["replacements"].clear()
