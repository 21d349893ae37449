"""Plan validation pipeline: the library boundary of the engine.

    plan -> name pre-resolution -> ID validation -> replacement
         -> resolution + media -> coverage gate -> validated plan

Drift (fabricated or out-of-filter references) is repaired and reported as
warnings. An empty filtered set aborts with NoEligibleSubstituteError, and a
media gap aborts with MediaCoverageError; a partially valid plan is never
returned.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from . import metrics
from .aliases import AliasIndex
from .cache import ResolutionCache
from .catalog import ExerciseCatalog, ExerciseRecord, get_default_catalog, load_catalog
from .config import EngineConfig
from .coverage import enforce_media_coverage
from .errors import PlanConfigurationError
from .media import MediaProviderRegistry
from .normalization import normalize
from .plan import PlanExercise, ValidatedExercise, ValidatedPlan, WorkoutPlan
from .replacement import ReplacementDecision, ReplacementSelector
from .resolver import ResolutionQuery, ResolutionResult, TieredResolver
from .search import ExerciseSearchBackend, HttpExerciseSearch
from .validation import ValidationReport, validate_plan_ids

logger = logging.getLogger(__name__)


class ExerciseEngine:
    """Owns the shared read-only catalog and the shared resolution cache."""

    def __init__(
        self,
        catalog: ExerciseCatalog,
        *,
        config: EngineConfig | None = None,
        aliases: AliasIndex | None = None,
        cache: ResolutionCache | None = None,
        media: MediaProviderRegistry | None = None,
        search: ExerciseSearchBackend | None = None,
    ) -> None:
        self.config = config or EngineConfig()
        self.catalog = catalog
        self.aliases = aliases if aliases is not None else AliasIndex(catalog)
        self.cache = cache if cache is not None else ResolutionCache(
            max_entries=self.config.cache_max_entries,
            recent_size=self.config.cache_recent_size,
        )
        self.media = media if media is not None else MediaProviderRegistry(
            default_media_url=self.config.default_media_url
        )
        if search is None and self.config.search_url:
            search = HttpExerciseSearch(self.config.search_url, self.config.search_timeout_seconds)
        self.search = search
        self.resolver = TieredResolver(
            catalog,
            aliases=self.aliases,
            cache=self.cache,
            media=self.media,
            search=search,
            semantic_min_score=self.config.semantic_min_score,
            partial_min_overlap=self.config.partial_min_overlap,
            search_timeout_seconds=self.config.search_timeout_seconds,
        )

    @classmethod
    def from_config(cls, config: EngineConfig) -> ExerciseEngine:
        """Build from a catalog file (or the packaged seed)."""
        catalog = load_catalog(config.catalog_path) if config.catalog_path else get_default_catalog()
        return cls(catalog, config=config)

    @classmethod
    async def create(cls, config: EngineConfig) -> ExerciseEngine:
        """Like from_config, but loads from Postgres when a database URL is set."""
        if config.catalog_database_url:
            from .catalog_store import connect_and_load

            catalog = await connect_and_load(config.catalog_database_url)
            return cls(catalog, config=config)
        return cls.from_config(config)

    def lookup_name(self, name: str) -> ExerciseRecord | None:
        """Cheap synchronous name lookup (catalog name, then alias)."""
        key = normalize(name)
        if not key:
            return None
        return self.catalog.by_normalized_name(key) or self.aliases.lookup(key)

    async def resolve(self, raw: str, *, premium: bool = False) -> ResolutionResult:
        return await self.resolver.resolve(ResolutionQuery(raw=raw), premium=premium)

    def reload(self, catalog: ExerciseCatalog) -> None:
        """Swap in a new catalog and drop every cached resolution."""
        self.catalog = catalog
        self.aliases = AliasIndex(catalog)
        self.resolver.catalog = catalog
        self.resolver.aliases = self.aliases
        self.cache.clear()
        logger.info("Reloaded exercise catalog (%d exercises), cache cleared", len(catalog))

    async def aclose(self) -> None:
        if isinstance(self.search, HttpExerciseSearch):
            await self.search.aclose()


_ENGINE: ExerciseEngine | None = None
_ENGINE_LOCK = threading.Lock()


def get_engine() -> ExerciseEngine:
    global _ENGINE  # noqa: PLW0603
    if _ENGINE is None:
        with _ENGINE_LOCK:
            if _ENGINE is None:
                _ENGINE = ExerciseEngine.from_config(EngineConfig.from_env())
    return _ENGINE


@dataclass
class PlanValidation:
    plan: ValidatedPlan
    report: ValidationReport
    replacements: list[ReplacementDecision] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        return [*self.notes, *(d.to_warning() for d in self.replacements)]


async def _pre_resolve_names(
    plan: WorkoutPlan, engine: ExerciseEngine, premium: bool
) -> tuple[WorkoutPlan, list[str]]:
    """Give id-less entries the catalog id their name resolves to, if any."""
    pending = [(s, p, ex) for s, p, ex in plan.iter_exercises() if ex.exercise_id is None]
    if not pending:
        return plan, []

    results = await engine.resolver.resolve_many(
        [ResolutionQuery(raw=ex.name or "", hint=ex.hint) for _, _, ex in pending],
        premium=premium,
    )
    resolved_ids: dict[tuple[str, int], str] = {}
    notes: list[str] = []
    for (section, position, ex), result in zip(pending, results):
        exercise_id = result.exercise_id
        if exercise_id is not None and exercise_id in engine.catalog:
            resolved_ids[(section, position)] = exercise_id
            notes.append(
                f"{section}[{position}]: resolved name {ex.name!r} to {exercise_id} "
                f"({result.display_name}) via {result.tier.value}"
            )

    sections = []
    for section in plan.sections:
        exercises = [
            ex.model_copy(update={"exercise_id": resolved_ids[(section.name, i)]})
            if (section.name, i) in resolved_ids
            else ex
            for i, ex in enumerate(section.exercises)
        ]
        sections.append(section.model_copy(update={"exercises": exercises}))
    return plan.model_copy(update={"sections": sections}), notes


async def validate_plan(
    plan: WorkoutPlan | dict[str, Any],
    filtered_ids: Iterable[str],
    *,
    engine: ExerciseEngine | None = None,
    premium: bool = False,
) -> PlanValidation:
    engine = engine or get_engine()
    if not isinstance(plan, WorkoutPlan):
        plan = WorkoutPlan.model_validate(plan)
    filtered = frozenset(filtered_ids)
    unknown = sorted(filtered - engine.catalog.ids)
    if unknown:
        logger.warning("Ignoring %d filtered id(s) not in the catalog: %s", len(unknown), ", ".join(unknown))

    try:
        plan, notes = await _pre_resolve_names(plan, engine, premium)
        if unknown:
            notes.insert(0, f"ignored filtered id(s) not in the catalog: {', '.join(unknown)}")
        report = validate_plan_ids(plan, filtered, engine.catalog)
        selector = ReplacementSelector(engine.catalog, filtered, name_lookup=engine.lookup_name)
        decisions = selector.select_all(report, plan)

        substitutes = {(d.section, d.position): d for d in decisions}
        slots: list[tuple[str, int, PlanExercise, ReplacementDecision | None]] = [
            (section, position, ex, substitutes.get((section, position)))
            for section, position, ex in plan.iter_exercises()
        ]
        results = await engine.resolver.resolve_many(
            [
                ResolutionQuery(raw=d.substitute_id if d else ex.reference, hint=ex.hint)
                for _, _, ex, d in slots
            ],
            premium=premium,
        )

        exercises = [
            ValidatedExercise(
                section=section,
                position=position,
                exercise_id=result.exercise_id,
                name=result.display_name,
                media_url=result.media_url,
                media_provider=result.media_provider,
                original_exercise_id=ex.exercise_id if decision else None,
                original_name=ex.name,
                replaced=decision is not None,
                tier=result.tier.value,
                confidence=result.confidence,
                prescription=ex.prescription,
            )
            for (section, position, ex, decision), result in zip(slots, results)
        ]
        enforce_media_coverage(exercises)
    except Exception:
        metrics.record_plan_validated(False)
        raise

    metrics.record_plan_validated(True)
    logger.info(
        "%s, %d replacement(s)",
        report.summary(),
        len(decisions),
        extra={"exercise_plan_size": len(exercises), "exercise_replacements": len(decisions)},
    )
    return PlanValidation(
        plan=ValidatedPlan(title=plan.title, exercises=exercises),
        report=report,
        replacements=decisions,
        notes=notes,
    )


async def build_plan_response(
    plan: WorkoutPlan | dict[str, Any],
    filtered_ids: Iterable[str],
    *,
    engine: ExerciseEngine | None = None,
    premium: bool = False,
) -> dict[str, Any]:
    """Response envelope ``{"plan", "metadata": {"errors", "warnings"}}``.

    Caller configuration errors become ``metadata.errors`` with no plan;
    internal invariant violations (MediaCoverageError) propagate.
    """
    try:
        validation = await validate_plan(plan, filtered_ids, engine=engine, premium=premium)
    except PlanConfigurationError as e:
        logger.warning("Plan validation aborted: %s", e.message)
        return {"plan": None, "metadata": {"errors": [e.to_dict()], "warnings": []}}

    return {
        "plan": validation.plan.model_dump(),
        "metadata": {
            "errors": [],
            "warnings": validation.warnings,
            "replacements": [d.to_dict() for d in validation.replacements],
            "validation": validation.report.to_dict(),
        },
    }
