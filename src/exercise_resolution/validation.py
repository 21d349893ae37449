"""ID validation: classify every plan reference against the filtered set.

Classification is exact set membership against frozensets built once per
call, so cost grows with plan size only:

    in filtered set          -> ideal (filtered ids outside the catalog are ignored)
    in catalog, not filtered -> recoverable (generation drifted)
    anywhere else            -> fabricated
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from .catalog import ExerciseCatalog
from .plan import WorkoutPlan

Classification = Literal["ideal", "recoverable", "fabricated"]
CLASSIFICATIONS: tuple[Classification, ...] = ("ideal", "recoverable", "fabricated")


@dataclass(frozen=True)
class ValidationEntry:
    section: str
    position: int
    reference: str
    classification: Classification
    reason: str
    name: str | None = None

    @property
    def needs_replacement(self) -> bool:
        return self.classification != "ideal"


@dataclass
class ValidationReport:
    entries: list[ValidationEntry] = field(default_factory=list)

    def by_classification(self, classification: Classification) -> list[ValidationEntry]:
        return [e for e in self.entries if e.classification == classification]

    @property
    def ideal(self) -> list[ValidationEntry]:
        return self.by_classification("ideal")

    @property
    def needing_replacement(self) -> list[ValidationEntry]:
        return [e for e in self.entries if e.needs_replacement]

    @property
    def is_valid(self) -> bool:
        return not self.needing_replacement

    def counts(self) -> dict[str, int]:
        counts = {c: 0 for c in CLASSIFICATIONS}
        for entry in self.entries:
            counts[entry.classification] += 1
        return counts

    def summary(self) -> str:
        total = len(self.entries)
        valid = len(self.ideal)
        percent = round(100 * valid / total) if total else 100
        return f"Validation: {valid}/{total} exercises valid ({percent}%)"

    def to_dict(self) -> dict[str, object]:
        return {
            "summary": self.summary(),
            "counts": self.counts(),
            "entries": [
                {
                    "section": e.section,
                    "position": e.position,
                    "reference": e.reference,
                    "classification": e.classification,
                    "reason": e.reason,
                }
                for e in self.entries
            ],
        }


def classify_reference(
    exercise_id: str | None,
    filtered_ids: frozenset[str],
    catalog_ids: frozenset[str],
) -> tuple[Classification, str]:
    if exercise_id is None:
        return "fabricated", "reference has no exercise id and no catalog name match"
    if exercise_id in filtered_ids:
        return "ideal", f"{exercise_id} is in the filtered candidate set"
    if exercise_id in catalog_ids:
        return "recoverable", f"{exercise_id} exists in the catalog but was not in the filtered candidate set"
    return "fabricated", f"{exercise_id} does not exist in the exercise catalog"


def validate_plan_ids(
    plan: WorkoutPlan,
    filtered_ids: Iterable[str],
    catalog: ExerciseCatalog,
) -> ValidationReport:
    catalog_ids = catalog.ids
    # Only catalog members can be ideal; anything else would resolve elsewhere.
    filtered = frozenset(filtered_ids) & catalog_ids

    report = ValidationReport()
    for section, position, exercise in plan.iter_exercises():
        classification, reason = classify_reference(exercise.exercise_id, filtered, catalog_ids)
        report.entries.append(
            ValidationEntry(
                section=section,
                position=position,
                reference=exercise.reference,
                classification=classification,
                reason=reason,
                name=exercise.name,
            )
        )
    return report
