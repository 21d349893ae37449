"""Candidate filtering: reduce the catalog to the set a plan may draw from.

Layers run in order (equipment, body parts, experience level, ranking,
exclusions) and each records how many exercises survived it. The resulting
ids are the "filtered set" the validator and replacement selector work with.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .catalog import BODY_WEIGHT, ExerciseCatalog, ExerciseRecord

logger = logging.getLogger(__name__)

ExperienceLevel = Literal["beginner", "intermediate", "advanced"]
FitnessGoal = Literal["muscle_gain", "weight_loss", "endurance", "strength", "general_fitness"]

WORKOUT_TYPE_BODY_PARTS: dict[str, tuple[str, ...]] = {
    "full_body": ("back", "chest", "upper legs", "lower legs", "shoulders", "upper arms", "waist"),
    "upper_body": ("back", "chest", "shoulders", "upper arms", "lower arms"),
    "lower_body": ("upper legs", "lower legs"),
    "push": ("chest", "shoulders", "upper arms"),
    "pull": ("back", "upper arms"),
    "legs": ("upper legs", "lower legs"),
    "chest": ("chest",),
    "back": ("back",),
    "shoulders": ("shoulders",),
    "arms": ("upper arms", "lower arms"),
    "core": ("waist",),
    "cardio": ("cardio",),
}

ADVANCED_EXERCISES = frozenset(
    {
        "muscle up",
        "planche",
        "front lever",
        "pistol squat",
        "dragon flag",
        "one arm pull up",
        "handstand push up",
        "snatch",
        "clean and jerk",
        "turkish get up",
    }
)
INTERMEDIATE_EXERCISES = frozenset(
    {
        "pull up",
        "chin up",
        "dip",
        "chest dip",
        "bulgarian split squat",
        "overhead press",
        "deadlift",
        "barbell deadlift",
        "barbell squat",
        "bench press",
        "barbell bench press",
    }
)
_BEGINNER_EQUIPMENT = frozenset({"machine", "leverage machine", "smith machine", "cable", "assisted"})
_COMPOUND_MARKERS = ("squat", "deadlift", "press", "pull", "row", "lunge")
_LEVEL_ORDER: dict[str, int] = {"beginner": 0, "intermediate": 1, "advanced": 2}


class FilterRequest(BaseModel):
    available_equipment: list[str] = Field(default_factory=lambda: [BODY_WEIGHT])
    target_body_parts: list[str] = Field(default_factory=list)
    workout_type: str | None = None
    experience_level: ExperienceLevel = "intermediate"
    fitness_goal: FitnessGoal = "general_fitness"
    focus_muscles: list[str] = Field(default_factory=list)
    injuries: list[str] = Field(default_factory=list)
    exclude_ids: list[str] = Field(default_factory=list)
    target_count: int = Field(default=40, ge=1)

    @field_validator("available_equipment", "target_body_parts", "focus_muscles", "injuries")
    @classmethod
    def normalize_tags(cls, values: list[str]) -> list[str]:
        normalized: list[str] = []
        for value in values:
            cleaned = " ".join(value.lower().split())
            if cleaned and cleaned not in normalized:
                normalized.append(cleaned)
        return normalized


@dataclass
class FilterStats:
    total: int = 0
    after_equipment: int = 0
    after_body_parts: int = 0
    after_experience: int = 0
    final: int = 0


@dataclass
class FilterResult:
    exercises: list[ExerciseRecord]
    stats: FilterStats
    reasons: dict[str, list[str]] = field(default_factory=dict)

    @property
    def ids(self) -> frozenset[str]:
        return frozenset(r.exercise_id for r in self.exercises)


def exercise_difficulty(record: ExerciseRecord) -> ExperienceLevel:
    """Heuristic difficulty from name and equipment."""
    name = record.name.lower().replace("-", " ")
    if name in ADVANCED_EXERCISES or "olympic" in name:
        return "advanced"
    if name in INTERMEDIATE_EXERCISES:
        return "intermediate"
    if any(eq in _BEGINNER_EQUIPMENT for eq in record.equipment):
        return "beginner"
    if BODY_WEIGHT in record.equipment and any(w in name for w in ("pull", "push", "squat")):
        return "intermediate"
    return "beginner"


def _by_equipment(records: list[ExerciseRecord], available: list[str]) -> list[ExerciseRecord]:
    allowed = set(available)
    return [r for r in records if any(eq in allowed for eq in r.equipment)]


def _by_body_parts(records: list[ExerciseRecord], request: FilterRequest) -> list[ExerciseRecord]:
    wanted: tuple[str, ...] = tuple(request.target_body_parts)
    if not wanted and request.workout_type:
        wanted = WORKOUT_TYPE_BODY_PARTS.get(request.workout_type, ())
    if not wanted:
        return records
    wanted_set = set(wanted)
    return [r for r in records if any(bp in wanted_set for bp in r.body_parts)]


def _by_experience(records: list[ExerciseRecord], level: ExperienceLevel) -> list[ExerciseRecord]:
    ceiling = _LEVEL_ORDER[level]
    return [r for r in records if _LEVEL_ORDER[exercise_difficulty(r)] <= ceiling]


def score_exercise(record: ExerciseRecord, request: FilterRequest) -> tuple[int, list[str]]:
    score = 0
    reasons: list[str] = []
    name = record.name.lower()

    if BODY_WEIGHT in record.equipment:
        score += 10
        reasons.append("body weight, no equipment needed")
    elif "dumbbell" in record.equipment:
        score += 8
        reasons.append("common equipment")
    elif "barbell" in record.equipment:
        score += 6

    if any(marker in name for marker in _COMPOUND_MARKERS):
        score += 15
        reasons.append("compound movement")

    focus = set(request.focus_muscles)
    matching = [m for m in record.target_muscles if m in focus]
    if matching:
        score += 10 * len(matching)
        reasons.append(f"targets focus muscles: {', '.join(matching)}")

    goal = request.fitness_goal
    if goal == "muscle_gain" and set(record.equipment) & {"dumbbell", "barbell", "cable"}:
        score += 5
        reasons.append("good for muscle building")
    elif goal in ("weight_loss", "endurance") and (BODY_WEIGHT in record.equipment or "cardio" in record.body_parts):
        score += 5
        reasons.append("good for weight loss and endurance")
    elif goal == "strength" and ("barbell" in record.equipment or any(t in name for t in ("squat", "deadlift", "press", "bench"))):
        score += 5
        reasons.append("good for strength building")

    if exercise_difficulty(record) == request.experience_level:
        score += 5

    for injury in request.injuries:
        if "back" in injury and "deadlift" in name:
            score -= 20
            reasons.append("may aggravate back injury")
        if "knee" in injury and "squat" in name:
            score -= 15
            reasons.append("may aggravate knee injury")
        if "shoulder" in injury and "press" in name:
            score -= 15
            reasons.append("may aggravate shoulder injury")

    return score, reasons


def filter_exercises(catalog: ExerciseCatalog, request: FilterRequest) -> FilterResult:
    records = list(catalog)
    stats = FilterStats(total=len(records))

    records = _by_equipment(records, request.available_equipment)
    stats.after_equipment = len(records)
    records = _by_body_parts(records, request)
    stats.after_body_parts = len(records)
    records = _by_experience(records, request.experience_level)
    stats.after_experience = len(records)

    scored = [(record, *score_exercise(record, request)) for record in records]
    # Stable sort: equal scores keep catalog order.
    scored.sort(key=lambda item: -item[1])
    selected = scored[: request.target_count]

    excluded = set(request.exclude_ids)
    final = [(r, s, why) for r, s, why in selected if r.exercise_id not in excluded]
    stats.final = len(final)

    logger.info(
        "Filtered catalog %d -> %d -> %d -> %d -> %d exercises",
        stats.total,
        stats.after_equipment,
        stats.after_body_parts,
        stats.after_experience,
        stats.final,
    )
    return FilterResult(
        exercises=[r for r, _, _ in final],
        stats=stats,
        reasons={r.exercise_id: why for r, _, why in final},
    )
