"""Tiered exercise resolver.

An explicit, ordered list of strategies is evaluated by a single loop that
stops at the first hit:

    catalog exact > alias > cache exact > semantic > external search
    > cache partial > synthesized

The last strategy always answers, and media is attached through the provider
registry (which has its own default asset), so resolve() is total: every call
returns a result with a non-empty media URL. A synthesized result whose name
hits a movement pattern (push, pull, squat, hinge, core, cardio) borrows the
stand-in exercise's media. Only tiers backed by a real match write to the
cache.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from enum import Enum

from . import metrics
from .aliases import AliasIndex
from .cache import CacheEntry, ResolutionCache
from .catalog import ExerciseCatalog, ExerciseHint, ExerciseRecord
from .media import FALLBACK_PROVIDER, MediaProviderRegistry, media_category
from .normalization import display_name, normalize, tokenize
from .search import ExerciseSearchBackend, SearchHit

logger = logging.getLogger(__name__)


class ResolutionTier(str, Enum):
    CATALOG_EXACT = "catalog_exact"
    ALIAS = "alias"
    CACHE_EXACT = "cache_exact"
    SEMANTIC = "semantic"
    EXTERNAL_SEARCH = "external_search"
    CACHE_PARTIAL = "cache_partial"
    SYNTHESIZED = "synthesized"


CACHEABLE_TIERS = frozenset(
    {
        ResolutionTier.CATALOG_EXACT,
        ResolutionTier.ALIAS,
        ResolutionTier.CACHE_EXACT,
        ResolutionTier.SEMANTIC,
        ResolutionTier.EXTERNAL_SEARCH,
    }
)

ID_CONFIDENCE = 1.0
NAME_CONFIDENCE = 0.95
ALIAS_CONFIDENCE = 0.9
SYNTHESIZED_CONFIDENCE = 0.5

# Semantic scoring weights: query coverage dominates, record coverage breaks
# near-ties toward shorter names, tags and hints only nudge.
_QUERY_COVERAGE_WEIGHT = 0.7
_RECORD_COVERAGE_WEIGHT = 0.3
_TAG_WEIGHT = 0.1
_HINT_BONUS = 0.1
_MIN_STEM = 4

# Keyword prefix -> stand-in exercise whose media a synthesized result borrows.
# First pattern with a hit wins.
MOVEMENT_PATTERNS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("push", "press", "chest", "shoulder", "tricep"), "push up"),
    (("pull", "row", "lat", "back", "bicep", "chin"), "pull up"),
    (("squat", "quad", "glute", "leg", "thigh"), "squat"),
    (("deadlift", "hinge", "hamstring", "hip", "posterior"), "deadlift"),
    (("plank", "core", "abs", "rotation", "twist", "crunch"), "plank"),
    (("jump", "cardio", "hiit", "explosive", "plyometric", "burpee"), "jumping jack"),
)


@dataclass(frozen=True)
class ResolutionQuery:
    raw: str
    hint: ExerciseHint | None = None


@dataclass(frozen=True)
class ResolutionResult:
    query: ResolutionQuery
    record: ExerciseRecord | None
    display_name: str
    tier: ResolutionTier
    confidence: float
    media_url: str
    media_provider: str
    elapsed_ms: float = 0.0

    def __post_init__(self) -> None:
        if not self.media_url:
            raise ValueError(f"Resolution for {self.query.raw!r} has no media URL")
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"Confidence out of range: {self.confidence}")

    @property
    def exercise_id(self) -> str | None:
        return self.record.exercise_id if self.record is not None else None

    def to_dict(self) -> dict[str, object]:
        return {
            "query": self.query.raw,
            "exercise_id": self.exercise_id,
            "name": self.display_name,
            "tier": self.tier.value,
            "confidence": round(self.confidence, 3),
            "media_url": self.media_url,
            "media_provider": self.media_provider,
            "elapsed_ms": round(self.elapsed_ms, 2),
        }


@dataclass(frozen=True)
class _Match:
    record: ExerciseRecord | None
    display_name: str
    confidence: float
    # Borrowed for media only; synthesized results keep record=None.
    media_record: ExerciseRecord | None = None


def tokens_related(a: str, b: str) -> bool:
    """Equal, or sharing a stem of at least four characters (climb/climber/climbing)."""
    if a == b:
        return True
    if len(a) < _MIN_STEM or len(b) < _MIN_STEM:
        return False
    shorter = min(len(a), len(b))
    common = 0
    for x, y in zip(a, b):
        if x != y:
            break
        common += 1
    return common >= _MIN_STEM and common >= shorter - 3


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


Strategy = Callable[[ResolutionQuery, str, tuple[str, ...]], Awaitable[_Match | None]]


class TieredResolver:
    def __init__(
        self,
        catalog: ExerciseCatalog,
        *,
        aliases: AliasIndex | None = None,
        cache: ResolutionCache | None = None,
        media: MediaProviderRegistry | None = None,
        search: ExerciseSearchBackend | None = None,
        semantic_min_score: float = 0.5,
        partial_min_overlap: float = 0.5,
        search_timeout_seconds: float = 3.0,
    ) -> None:
        self.catalog = catalog
        self.aliases = aliases if aliases is not None else AliasIndex(catalog)
        self.cache = cache if cache is not None else ResolutionCache()
        self.media = media if media is not None else MediaProviderRegistry()
        self.search = search
        self.semantic_min_score = semantic_min_score
        self.partial_min_overlap = partial_min_overlap
        self.search_timeout_seconds = search_timeout_seconds

        self.strategies: list[tuple[ResolutionTier, Strategy]] = [
            (ResolutionTier.CATALOG_EXACT, self._catalog_exact),
            (ResolutionTier.ALIAS, self._alias),
            (ResolutionTier.CACHE_EXACT, self._cache_exact),
            (ResolutionTier.SEMANTIC, self._semantic),
            (ResolutionTier.EXTERNAL_SEARCH, self._external_search),
            (ResolutionTier.CACHE_PARTIAL, self._cache_partial),
            (ResolutionTier.SYNTHESIZED, self._synthesize),
        ]

    async def resolve(self, query: ResolutionQuery | str, *, premium: bool = False) -> ResolutionResult:
        if isinstance(query, str):
            query = ResolutionQuery(raw=query)
        start = time.perf_counter()
        key = normalize(query.raw)
        tokens = tokenize(query.raw)

        tier, match = ResolutionTier.SYNTHESIZED, None
        for tier, strategy in self.strategies:
            match = await strategy(query, key, tokens)
            if match is not None:
                break
        assert match is not None

        if tier in CACHEABLE_TIERS and key:
            self.cache.put(
                key,
                CacheEntry(
                    record=match.record,
                    display_name=match.display_name,
                    tier=tier.value,
                    confidence=match.confidence,
                    tokens=tokens,
                ),
            )

        media_url, provider = self.media.resolve(
            match.record or match.media_record,
            premium=premium,
            category=media_category(match.record, query.hint, query.raw),
        )
        elapsed_ms = (time.perf_counter() - start) * 1000
        result = ResolutionResult(
            query=query,
            record=match.record,
            display_name=match.display_name,
            tier=tier,
            confidence=match.confidence,
            media_url=media_url,
            media_provider=provider,
            elapsed_ms=elapsed_ms,
        )

        metrics.record_tier_hit(tier.value, elapsed_ms)
        logger.info(
            "Resolved %r via %s (confidence=%.2f, %.1fms)",
            query.raw,
            tier.value,
            match.confidence,
            elapsed_ms,
            extra={
                "exercise_raw": query.raw,
                "exercise_id": result.exercise_id,
                "exercise_tier": tier.value,
                "exercise_confidence": match.confidence,
                "exercise_elapsed_ms": round(elapsed_ms, 2),
            },
        )
        return result

    async def resolve_many(
        self, queries: Iterable[ResolutionQuery | str], *, premium: bool = False
    ) -> list[ResolutionResult]:
        """Resolve independent queries concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.resolve(q, premium=premium) for q in queries)))

    # Tier 1
    async def _catalog_exact(self, query: ResolutionQuery, key: str, tokens: tuple[str, ...]) -> _Match | None:
        record = self.catalog.get(query.raw.strip())
        if record is not None:
            return _Match(record, record.name, ID_CONFIDENCE)
        record = self.catalog.by_normalized_name(key) if key else None
        if record is not None:
            return _Match(record, record.name, NAME_CONFIDENCE)
        return None

    # Tier 2
    async def _alias(self, query: ResolutionQuery, key: str, tokens: tuple[str, ...]) -> _Match | None:
        record = self.aliases.lookup(key) if key else None
        if record is None:
            return None
        return _Match(record, record.name, ALIAS_CONFIDENCE)

    # Tier 3
    async def _cache_exact(self, query: ResolutionQuery, key: str, tokens: tuple[str, ...]) -> _Match | None:
        entry = self.cache.get_exact(key) if key else None
        if entry is None:
            return None
        return _Match(entry.record, entry.display_name, entry.confidence)

    # Tier 4
    def semantic_scores(self, tokens: tuple[str, ...], hint: ExerciseHint | None = None) -> list[tuple[float, ExerciseRecord]]:
        """Score every record sharing at least one name token, best first."""
        if not tokens:
            return []

        candidate_ids: set[str] = set()
        for token in tokens:
            candidate_ids.update(self.catalog.ids_for_token(token))
            if len(token) >= _MIN_STEM:
                for vocab_token in self.catalog.vocabulary:
                    if vocab_token != token and tokens_related(token, vocab_token):
                        candidate_ids.update(self.catalog.ids_for_token(vocab_token))

        hint_tags = set()
        if hint:
            hint_tags = {t for tag in (*hint.target_muscles, *hint.body_parts, *hint.equipment) for t in tokenize(tag)}

        scored: list[tuple[float, ExerciseRecord]] = []
        for exercise_id in candidate_ids:
            name_tokens = self.catalog.name_tokens(exercise_id)
            name_hits = sum(1 for t in tokens if any(tokens_related(t, n) for n in name_tokens))
            if not name_hits or not name_tokens:
                continue
            record_hits = sum(1 for n in name_tokens if any(tokens_related(t, n) for t in tokens))
            tag_tokens = self.catalog.tag_tokens(exercise_id)
            tag_hits = sum(1 for t in tokens if t in tag_tokens)

            score = (
                _QUERY_COVERAGE_WEIGHT * name_hits / len(tokens)
                + _RECORD_COVERAGE_WEIGHT * record_hits / len(name_tokens)
                + _TAG_WEIGHT * tag_hits / len(tokens)
            )
            if hint_tags and hint_tags & tag_tokens:
                score += _HINT_BONUS
            record = self.catalog.get(exercise_id)
            assert record is not None
            scored.append((min(score, 1.0), record))

        scored.sort(key=lambda item: (-item[0], self.catalog.position(item[1].exercise_id)))
        return scored

    async def _semantic(self, query: ResolutionQuery, key: str, tokens: tuple[str, ...]) -> _Match | None:
        scored = self.semantic_scores(tokens, query.hint)
        if not scored or scored[0][0] < self.semantic_min_score:
            return None
        score, record = scored[0]
        return _Match(record, record.name, _clamp(0.6 + 0.25 * score, 0.6, 0.85))

    # Tier 5
    async def _external_search(self, query: ResolutionQuery, key: str, tokens: tuple[str, ...]) -> _Match | None:
        if self.search is None or not tokens:
            return None
        try:
            hits = await asyncio.wait_for(self.search.search(query.raw), timeout=self.search_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("External search timed out for %r, treating as miss", query.raw)
            return None
        except Exception as e:
            logger.warning("External search failed for %r, treating as miss: %s", query.raw, e)
            return None

        best: tuple[SearchHit, ExerciseRecord] | None = None
        for hit in hits:
            record = self._catalog_record_for_hit(hit)
            if record is None:
                continue
            if best is None or hit.similarity > best[0].similarity:
                best = (hit, record)
        if best is None:
            return None
        hit, record = best
        return _Match(record, record.name, _clamp(0.5 + 0.2 * hit.similarity, 0.5, 0.7))

    def _catalog_record_for_hit(self, hit: SearchHit) -> ExerciseRecord | None:
        """Prefer the canonical record; otherwise keep a hit that carries its own media."""
        record = self.catalog.get(hit.record.exercise_id)
        if record is None:
            record = self.catalog.by_normalized_name(normalize(hit.record.name))
        if record is None and self.media.resolve(hit.record)[1] != FALLBACK_PROVIDER:
            record = hit.record
        return record

    # Tier 6
    async def _cache_partial(self, query: ResolutionQuery, key: str, tokens: tuple[str, ...]) -> _Match | None:
        if not key:
            return None
        found = self.cache.get_partial(key, self.partial_min_overlap, tokens)
        if found is None:
            return None
        entry, overlap = found
        return _Match(entry.record, entry.display_name, _clamp(0.5 + 0.1 * overlap, 0.5, 0.6))

    # Tier 7
    async def _synthesize(self, query: ResolutionQuery, key: str, tokens: tuple[str, ...]) -> _Match:
        stand_in = self.movement_stand_in(tokens)
        if stand_in is not None:
            logger.debug("Synthesized %r borrows media from %s", query.raw, stand_in.name)
        return _Match(None, display_name(query.raw), SYNTHESIZED_CONFIDENCE, media_record=stand_in)

    def movement_stand_in(self, tokens: tuple[str, ...]) -> ExerciseRecord | None:
        """Catalog record for the first movement pattern any token starts with."""
        for keywords, stand_in in MOVEMENT_PATTERNS:
            if any(token.startswith(keyword) for token in tokens for keyword in keywords):
                key = normalize(stand_in)
                return self.catalog.by_normalized_name(key) or self.aliases.lookup(key)
        return None
