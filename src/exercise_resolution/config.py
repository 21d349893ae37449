import os
from dataclasses import dataclass

DEFAULT_MEDIA_URL = "https://media.giphy.com/media/3oEjI6SIIHBdRxXI40/giphy.gif"


def _env_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        return float(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be a number, got {raw!r}") from None


def _env_int(name: str, default: str) -> int:
    raw = os.environ.get(name, default)
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"{name} must be an integer, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"{name} must be positive, got {value}")
    return value


@dataclass(frozen=True)
class EngineConfig:
    catalog_path: str | None = None
    catalog_database_url: str | None = None
    search_url: str | None = None
    search_timeout_seconds: float = 3.0
    cache_max_entries: int = 2048
    cache_recent_size: int = 256
    semantic_min_score: float = 0.5
    partial_min_overlap: float = 0.5
    default_media_url: str = DEFAULT_MEDIA_URL
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> "EngineConfig":
        return cls(
            catalog_path=os.environ.get("EXERCISE_CATALOG_PATH") or None,
            catalog_database_url=os.environ.get("EXERCISE_CATALOG_DATABASE_URL") or None,
            search_url=os.environ.get("EXERCISE_SEARCH_URL") or None,
            search_timeout_seconds=_env_float("EXERCISE_SEARCH_TIMEOUT", "3.0"),
            cache_max_entries=_env_int("EXERCISE_CACHE_MAX_ENTRIES", "2048"),
            cache_recent_size=_env_int("EXERCISE_CACHE_RECENT_SIZE", "256"),
            semantic_min_score=_env_float("EXERCISE_SEMANTIC_MIN_SCORE", "0.5"),
            partial_min_overlap=_env_float("EXERCISE_PARTIAL_MIN_OVERLAP", "0.5"),
            default_media_url=os.environ.get("EXERCISE_DEFAULT_MEDIA_URL") or DEFAULT_MEDIA_URL,
            log_format=os.environ.get("EXERCISE_LOG_FORMAT", "json"),
        )
