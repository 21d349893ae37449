"""Substitute selection for drifted and fabricated plan references.

The eligible pool is the filtered candidate set intersected with the catalog,
kept in catalog order. Strategies are tried in order until one yields a
candidate:

    exact_tag_match     shares a target muscle AND a body part, equipment-compatible
    partial_tag_match   shares a body part (muscle sharers, then equipment-compatible, first)
    arbitrary_fallback  any eligible exercise

Inside a strategy, candidates not yet used elsewhere in the plan come first,
then catalog order.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Literal

from . import metrics
from .catalog import BODY_WEIGHT, ExerciseCatalog, ExerciseHint, ExerciseRecord
from .errors import NoEligibleSubstituteError
from .plan import PlanExercise, WorkoutPlan
from .validation import ValidationEntry, ValidationReport

logger = logging.getLogger(__name__)

ReplacementStrategy = Literal["exact_tag_match", "partial_tag_match", "arbitrary_fallback"]

NameLookup = Callable[[str], ExerciseRecord | None]


@dataclass(frozen=True)
class ReplacementDecision:
    section: str
    position: int
    original_reference: str
    classification: str
    substitute_id: str
    substitute_name: str
    strategy: ReplacementStrategy
    reason: str

    def to_warning(self) -> str:
        return (
            f"{self.section}[{self.position}]: replaced {self.classification} reference "
            f"{self.original_reference!r} with {self.substitute_id} ({self.substitute_name}) "
            f"via {self.strategy}: {self.reason}"
        )

    def to_dict(self) -> dict[str, object]:
        return {
            "section": self.section,
            "position": self.position,
            "original": self.original_reference,
            "classification": self.classification,
            "substitute_id": self.substitute_id,
            "substitute_name": self.substitute_name,
            "strategy": self.strategy,
            "reason": self.reason,
        }


def equipment_compatible(intent: ExerciseHint, candidate: ExerciseRecord) -> bool:
    if not intent.equipment:
        return True
    if BODY_WEIGHT in candidate.equipment:
        return True
    return bool(set(intent.equipment) & set(candidate.equipment))


class ReplacementSelector:
    def __init__(
        self,
        catalog: ExerciseCatalog,
        filtered_ids: Iterable[str],
        name_lookup: NameLookup | None = None,
    ) -> None:
        self.catalog = catalog
        self.pool: list[ExerciseRecord] = catalog.in_catalog_order(filtered_ids)
        self._name_lookup = name_lookup

    def intent_for(self, entry: ValidationEntry, exercise: PlanExercise | None = None) -> tuple[ExerciseHint, str]:
        """Training intent of a reference and where it came from."""
        record = self.catalog.get(entry.reference)
        if record is not None:
            return ExerciseHint.from_record(record), "catalog record"
        if exercise is not None and exercise.hint:
            return exercise.hint, "plan hint"
        name = (exercise.name if exercise is not None else None) or entry.name
        if name and self._name_lookup is not None:
            named = self._name_lookup(name)
            if named is not None:
                return ExerciseHint.from_record(named), f"name match {named.name!r}"
        return ExerciseHint(), "no intent"

    def select(
        self,
        entry: ValidationEntry,
        exercise: PlanExercise | None = None,
        used_ids: set[str] | None = None,
    ) -> ReplacementDecision:
        if not self.pool:
            raise NoEligibleSubstituteError([entry.reference])
        used = used_ids or set()
        intent, source = self.intent_for(entry, exercise)
        muscles, parts = set(intent.target_muscles), set(intent.body_parts)

        def unused_first(record: ExerciseRecord) -> tuple[bool, int]:
            return record.exercise_id in used, self.catalog.position(record.exercise_id)

        exact = [
            r
            for r in self.pool
            if muscles & set(r.target_muscles)
            and parts & set(r.body_parts)
            and equipment_compatible(intent, r)
        ]
        if exact:
            chosen = min(exact, key=unused_first)
            return self._decision(entry, chosen, "exact_tag_match", f"shares target muscle and body part ({source})")

        partial = [r for r in self.pool if parts & set(r.body_parts)]
        if partial:
            chosen = min(
                partial,
                key=lambda r: (
                    not (muscles & set(r.target_muscles)),
                    not equipment_compatible(intent, r),
                    *unused_first(r),
                ),
            )
            return self._decision(entry, chosen, "partial_tag_match", f"shares body part ({source})")

        chosen = min(self.pool, key=unused_first)
        return self._decision(entry, chosen, "arbitrary_fallback", f"no tag overlap in filtered set ({source})")

    def select_all(self, report: ValidationReport, plan: WorkoutPlan) -> list[ReplacementDecision]:
        """One decision per non-ideal entry.

        An empty pool raises even when nothing needs replacing: a filtered set
        with no catalog exercises means the caller's constraints cannot be met.
        """
        pending = report.needing_replacement
        if not self.pool:
            raise NoEligibleSubstituteError([e.reference for e in pending])
        if not pending:
            return []

        exercises = {(section, position): ex for section, position, ex in plan.iter_exercises()}
        used = {e.reference for e in report.ideal}
        decisions: list[ReplacementDecision] = []
        for entry in pending:
            decision = self.select(entry, exercises.get((entry.section, entry.position)), used)
            used.add(decision.substitute_id)
            decisions.append(decision)
        return decisions

    def _decision(
        self,
        entry: ValidationEntry,
        chosen: ExerciseRecord,
        strategy: ReplacementStrategy,
        reason: str,
    ) -> ReplacementDecision:
        metrics.record_replacement(strategy)
        logger.info(
            "Replacing %s reference %r with %s via %s",
            entry.classification,
            entry.reference,
            chosen.exercise_id,
            strategy,
            extra={
                "exercise_original": entry.reference,
                "exercise_substitute": chosen.exercise_id,
                "exercise_strategy": strategy,
            },
        )
        return ReplacementDecision(
            section=entry.section,
            position=entry.position,
            original_reference=entry.reference,
            classification=entry.classification,
            substitute_id=chosen.exercise_id,
            substitute_name=chosen.name,
            strategy=strategy,
            reason=reason,
        )
