import pytest

from exercise_resolution.config import DEFAULT_MEDIA_URL, EngineConfig

_VARS = (
    "EXERCISE_CATALOG_PATH",
    "EXERCISE_CATALOG_DATABASE_URL",
    "EXERCISE_SEARCH_URL",
    "EXERCISE_SEARCH_TIMEOUT",
    "EXERCISE_CACHE_MAX_ENTRIES",
    "EXERCISE_CACHE_RECENT_SIZE",
    "EXERCISE_SEMANTIC_MIN_SCORE",
    "EXERCISE_PARTIAL_MIN_OVERLAP",
    "EXERCISE_DEFAULT_MEDIA_URL",
    "EXERCISE_LOG_FORMAT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in _VARS:
        monkeypatch.delenv(var, raising=False)


def test_defaults():
    config = EngineConfig.from_env()
    assert config == EngineConfig()
    assert config.default_media_url == DEFAULT_MEDIA_URL
    assert config.search_url is None
    assert config.log_format == "json"


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("EXERCISE_SEARCH_URL", "https://search.example.com")
    monkeypatch.setenv("EXERCISE_SEARCH_TIMEOUT", "1.5")
    monkeypatch.setenv("EXERCISE_CACHE_MAX_ENTRIES", "10")
    monkeypatch.setenv("EXERCISE_LOG_FORMAT", "text")
    config = EngineConfig.from_env()
    assert config.search_url == "https://search.example.com"
    assert config.search_timeout_seconds == 1.5
    assert config.cache_max_entries == 10
    assert config.log_format == "text"


def test_empty_values_mean_unset(monkeypatch):
    monkeypatch.setenv("EXERCISE_CATALOG_PATH", "")
    monkeypatch.setenv("EXERCISE_DEFAULT_MEDIA_URL", "")
    config = EngineConfig.from_env()
    assert config.catalog_path is None
    assert config.default_media_url == DEFAULT_MEDIA_URL


@pytest.mark.parametrize(
    "var,value",
    [
        ("EXERCISE_SEARCH_TIMEOUT", "soon"),
        ("EXERCISE_CACHE_MAX_ENTRIES", "many"),
        ("EXERCISE_CACHE_RECENT_SIZE", "0"),
    ],
)
def test_bad_values_name_the_variable(monkeypatch, var, value):
    monkeypatch.setenv(var, value)
    with pytest.raises(RuntimeError, match=var):
        EngineConfig.from_env()
