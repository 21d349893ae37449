from __future__ import annotations

import pytest

from exercise_resolution import metrics
from exercise_resolution.cache import ResolutionCache
from exercise_resolution.catalog import ExerciseCatalog, load_catalog
from exercise_resolution.config import EngineConfig
from exercise_resolution.pipeline import ExerciseEngine

_SEED = load_catalog()


@pytest.fixture
def catalog() -> ExerciseCatalog:
    return _SEED


@pytest.fixture
def engine(catalog: ExerciseCatalog) -> ExerciseEngine:
    """Fresh cache per test, no external search."""
    return ExerciseEngine(catalog, config=EngineConfig(), cache=ResolutionCache(max_entries=128, recent_size=32))


@pytest.fixture(autouse=True)
def _reset_metrics():
    metrics.reset_metrics()
    yield
    metrics.reset_metrics()
