"""Media provider registry.

Providers form a closed set of variants behind one interface. The registry
walks them in priority order (lower number first), premium variants only for
entitled callers, and finally falls back to a fixed default asset per
category so that a media lookup never comes back empty.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Literal

from .catalog import ExerciseHint, ExerciseRecord
from .config import DEFAULT_MEDIA_URL
from .normalization import tokenize

logger = logging.getLogger(__name__)

MediaCategory = Literal["general", "cardio", "strength", "core", "flexibility"]
MediaFormat = Literal["gif", "mp4", "webm"]
MediaQuality = Literal["standard", "hd", "4k"]

FALLBACK_PROVIDER = "default"

DEFAULT_MEDIA_BY_CATEGORY: dict[str, str] = {
    "general": DEFAULT_MEDIA_URL,
    "cardio": "https://media.giphy.com/media/3oEjI6SIIHBdRxXI40/giphy.gif",
    "strength": "https://media.giphy.com/media/l1J9EdzfOSgfyueLm/giphy.gif",
    "core": "https://media.giphy.com/media/ZAOJHWhgLdHEI/giphy.gif",
    "flexibility": "https://media.giphy.com/media/3oEjI5TqjzqZWQzKus/giphy.gif",
}

_CARDIO_TOKENS = frozenset({"cardio", "run", "jog", "jump", "sprint", "jack", "burpee", "skip", "hop"})
_CORE_TOKENS = frozenset({"waist", "abs", "core", "plank", "crunch", "oblique"})
_FLEXIBILITY_TOKENS = frozenset({"stretch", "yoga", "mobility", "flexibility", "cooldown"})


@dataclass(frozen=True)
class MediaSource:
    url: str
    format: MediaFormat
    quality: MediaQuality
    provider: str


class MediaProvider(ABC):
    """One media library that may or may not cover a given exercise."""

    id: str
    name: str
    description: str
    is_premium: bool = False
    priority: int = 100
    media_format: MediaFormat = "gif"
    quality: MediaQuality = "standard"

    def has_media(self, record: ExerciseRecord) -> bool:
        return self.get_media_url(record) is not None

    @abstractmethod
    def get_media_url(self, record: ExerciseRecord) -> str | None:
        """Playable URL for ``record``, or None without coverage."""

    def get_media_sources(self, record: ExerciseRecord) -> list[MediaSource]:
        url = self.get_media_url(record)
        if not url:
            return []
        return [MediaSource(url=url, format=self.media_format, quality=self.quality, provider=self.id)]

    def describe(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "premium": self.is_premium,
            "priority": self.priority,
        }


class ExerciseDBProvider(MediaProvider):
    id = "exercisedb"
    name = "ExerciseDB"
    description = "Free, open-source exercise GIFs"
    priority = 10

    LEGACY_CDN_HOST = "v1.cdn.exercisedb.dev"
    CDN_HOST = "static.exercisedb.dev"

    def get_media_url(self, record: ExerciseRecord) -> str | None:
        ref = record.media_ref(self.id)
        if ref is None:
            return None
        return ref.asset_key.replace(self.LEGACY_CDN_HOST, self.CDN_HOST)


class MappedAssetProvider(MediaProvider):
    """Provider addressing assets by key through a URL template.

    Keys come from the record's media refs, or from mappings registered at
    runtime with add_mapping() for libraries that are mapped out of band.
    """

    url_template: str

    def __init__(self) -> None:
        self._mappings: dict[str, str] = {}

    def add_mapping(self, exercise_id: str, asset_key: str) -> None:
        self._mappings[exercise_id] = asset_key

    def get_media_url(self, record: ExerciseRecord) -> str | None:
        asset_key = self._mappings.get(record.exercise_id)
        if asset_key is None:
            ref = record.media_ref(self.id)
            asset_key = ref.asset_key if ref else None
        if not asset_key:
            return None
        return self.url_template.format(asset=asset_key)


class WrkoutProvider(MappedAssetProvider):
    id = "wrkout"
    name = "Wrkout Exercises"
    description = "Free public domain exercise demonstrations"
    priority = 9
    url_template = "https://raw.githubusercontent.com/wrkout/exercises.json/master/media/{asset}.gif"


class GymAnimationsProvider(MappedAssetProvider):
    id = "gym_animations"
    name = "Gym Animations 3D"
    description = "Premium 3D realistic animations"
    is_premium = True
    priority = 5
    media_format = "mp4"
    quality = "hd"
    url_template = "https://cdn.gymanimations.com/media/{asset}.mp4"


class ExerciseAnimaticProvider(MappedAssetProvider):
    id = "exercise_animatic"
    name = "Exercise Animatic"
    description = "Premium 4K animations"
    is_premium = True
    priority = 6
    media_format = "mp4"
    quality = "4k"
    url_template = "https://cdn.exerciseanimatic.com/media/{asset}.mp4"


def default_providers() -> list[MediaProvider]:
    return [ExerciseDBProvider(), GymAnimationsProvider(), ExerciseAnimaticProvider(), WrkoutProvider()]


def media_category(
    record: ExerciseRecord | None = None,
    hint: ExerciseHint | None = None,
    name: str = "",
) -> MediaCategory:
    """Pick the default-asset category from whatever context is available."""
    tokens: set[str] = set(tokenize(name))
    if record is not None:
        tokens.update(tokenize(record.name))
        for tag in (*record.body_parts, *record.target_muscles):
            tokens.update(tokenize(tag))
    if hint:
        for tag in (*hint.body_parts, *hint.target_muscles):
            tokens.update(tokenize(tag))

    if tokens & _FLEXIBILITY_TOKENS:
        return "flexibility"
    if tokens & _CARDIO_TOKENS:
        return "cardio"
    if tokens & _CORE_TOKENS:
        return "core"
    if record is not None or hint:
        return "strength"
    return "general"


class MediaProviderRegistry:
    """Priority-ordered provider lookup with a guaranteed default asset."""

    def __init__(
        self,
        providers: list[MediaProvider] | None = None,
        default_media_url: str = DEFAULT_MEDIA_URL,
    ) -> None:
        self._providers: dict[str, MediaProvider] = {}
        for provider in providers if providers is not None else default_providers():
            self.register(provider)
        self._default_media = dict(DEFAULT_MEDIA_BY_CATEGORY)
        if default_media_url:
            self._default_media["general"] = default_media_url

    def register(self, provider: MediaProvider) -> None:
        self._providers[provider.id] = provider
        logger.debug(
            "Registered media provider %s (%s)",
            provider.name,
            "premium" if provider.is_premium else "free",
        )

    def get(self, provider_id: str) -> MediaProvider | None:
        return self._providers.get(provider_id)

    def providers(self) -> list[MediaProvider]:
        return sorted(self._providers.values(), key=lambda p: (p.priority, p.id))

    def _lookup_order(self, premium: bool, preferred: str | None) -> list[MediaProvider]:
        ordered = self.providers()
        if premium:
            ordered = [p for p in ordered if p.is_premium] + [p for p in ordered if not p.is_premium]
        else:
            ordered = [p for p in ordered if not p.is_premium]
        if preferred:
            preferred_provider = self._providers.get(preferred)
            if preferred_provider is not None and preferred_provider in ordered:
                ordered.remove(preferred_provider)
                ordered.insert(0, preferred_provider)
            elif preferred_provider is not None:
                logger.warning("Caller requested premium library %s without access", preferred)
        return ordered

    def resolve(
        self,
        record: ExerciseRecord | None,
        *,
        premium: bool = False,
        preferred: str | None = None,
        category: MediaCategory | None = None,
    ) -> tuple[str, str]:
        """Return ``(media_url, provider_id)``; never an empty URL."""
        if record is not None:
            for provider in self._lookup_order(premium, preferred):
                url = provider.get_media_url(record)
                if url:
                    return url, provider.id
        return self.default_media(category or media_category(record)), FALLBACK_PROVIDER

    def default_media(self, category: str = "general") -> str:
        return self._default_media.get(category) or self._default_media["general"]

    def media_sources(self, record: ExerciseRecord, *, premium: bool = False) -> list[MediaSource]:
        sources: list[MediaSource] = []
        for provider in self.providers():
            if provider.is_premium and not premium:
                continue
            sources.extend(provider.get_media_sources(record))
        return sources

    def available_libraries(self, premium: bool = False) -> list[dict[str, object]]:
        return [
            {**provider.describe(), "available": not provider.is_premium or premium}
            for provider in self.providers()
        ]
