from __future__ import annotations

import logging

from exercise_resolution.catalog import ExerciseHint, ExerciseRecord, MediaRef
from exercise_resolution.media import (
    DEFAULT_MEDIA_BY_CATEGORY,
    FALLBACK_PROVIDER,
    ExerciseDBProvider,
    MediaProviderRegistry,
    WrkoutProvider,
    media_category,
)


def test_free_providers_in_priority_order(catalog):
    registry = MediaProviderRegistry()
    url, provider = registry.resolve(catalog.get("RbZ4t8Y"))
    assert provider == "exercisedb"
    assert url == "https://static.exercisedb.dev/media/RbZ4t8Y.gif"

    # wrkout (priority 9) is consulted before exercisedb (10)
    url, provider = registry.resolve(catalog.get("a1B2c3D"))
    assert provider == "wrkout"
    assert url.endswith("/media/Pushups.gif")


def test_premium_providers_only_for_entitled_callers(catalog):
    registry = MediaProviderRegistry()
    url, provider = registry.resolve(catalog.get("a1B2c3D"), premium=True)
    assert provider == "gym_animations"
    assert url == "https://cdn.gymanimations.com/media/push-up-front.mp4"

    url, provider = registry.resolve(catalog.get("RbZ4t8Y"), premium=True)
    assert provider == "exercise_animatic"
    assert url == "https://cdn.exerciseanimatic.com/media/mountain-climber.mp4"


def test_preferred_library_goes_first_when_accessible(catalog):
    registry = MediaProviderRegistry()
    _, provider = registry.resolve(catalog.get("a1B2c3D"), preferred="exercisedb")
    assert provider == "exercisedb"


def test_preferred_premium_without_access_is_ignored(catalog, caplog):
    registry = MediaProviderRegistry()
    with caplog.at_level(logging.WARNING):
        _, provider = registry.resolve(catalog.get("a1B2c3D"), preferred="gym_animations")
    assert provider == "wrkout"
    assert "without access" in caplog.text


def test_legacy_cdn_host_is_rewritten(catalog):
    url = ExerciseDBProvider().get_media_url(catalog.get("t4Fj9Eu"))
    assert url == "https://static.exercisedb.dev/media/t4Fj9Eu.gif"


def test_runtime_mapping_adds_coverage():
    record = ExerciseRecord("abc1234", "bear crawl")
    provider = WrkoutProvider()
    assert not provider.has_media(record)
    provider.add_mapping("abc1234", "Bear_Crawl")
    assert provider.get_media_url(record).endswith("/media/Bear_Crawl.gif")


def test_uncovered_records_get_category_default(catalog):
    registry = MediaProviderRegistry()
    url, provider = registry.resolve(catalog.get("w5Bz3Ka"))
    assert provider == FALLBACK_PROVIDER
    assert url == DEFAULT_MEDIA_BY_CATEGORY["flexibility"]

    url, _ = registry.resolve(catalog.get("Dy2gN7v"))
    assert url == DEFAULT_MEDIA_BY_CATEGORY["strength"]


def test_no_record_uses_configured_general_default():
    registry = MediaProviderRegistry(default_media_url="https://example.com/fallback.gif")
    url, provider = registry.resolve(None)
    assert (url, provider) == ("https://example.com/fallback.gif", FALLBACK_PROVIDER)


def test_media_category_from_hint_and_name():
    assert media_category(name="light jog") == "cardio"
    assert media_category(hint=ExerciseHint(body_parts=("waist",))) == "core"
    assert media_category(hint=ExerciseHint(body_parts=("chest",))) == "strength"
    assert media_category(name="dynamic elevators") == "general"


def test_media_sources_and_available_libraries(catalog):
    registry = MediaProviderRegistry()
    push_up = catalog.get("a1B2c3D")
    assert [s.provider for s in registry.media_sources(push_up)] == ["wrkout", "exercisedb"]
    premium_sources = registry.media_sources(push_up, premium=True)
    assert premium_sources[0].provider == "gym_animations"
    assert premium_sources[0].format == "mp4"

    libraries = registry.available_libraries(premium=False)
    assert [lib["id"] for lib in libraries] == ["gym_animations", "exercise_animatic", "wrkout", "exercisedb"]
    assert [lib["available"] for lib in libraries] == [False, False, True, True]


def test_empty_asset_key_is_not_coverage():
    record = ExerciseRecord("abc1234", "x", media_refs=(MediaRef("exercisedb", ""),))
    assert MediaProviderRegistry().resolve(record)[1] == FALLBACK_PROVIDER
