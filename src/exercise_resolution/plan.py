"""Workout plan models exchanged with the plan producer and consumer."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .catalog import ExerciseHint

# Section keys accepted when a plan arrives in the flat generator shape.
FLAT_SECTION_KEYS = ("warmup", "exercises", "cooldown")


class PlanExercise(BaseModel):
    """One exercise reference; unknown keys (sets, reps, rest) ride along."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    exercise_id: str | None = Field(default=None, alias="exerciseId")
    name: str | None = None
    target_muscles: list[str] = Field(default_factory=list, alias="targetMuscles")
    body_parts: list[str] = Field(default_factory=list, alias="bodyParts")
    equipment: list[str] = Field(default_factory=list, alias="equipments")

    @field_validator("exercise_id", "name")
    @classmethod
    def trim_optional_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = value.strip()
        return cleaned or None

    @model_validator(mode="after")
    def require_reference(self) -> PlanExercise:
        if self.exercise_id is None and self.name is None:
            raise ValueError("exercise needs an exercise_id or a name")
        return self

    @property
    def reference(self) -> str:
        return self.exercise_id or self.name or ""

    @property
    def hint(self) -> ExerciseHint:
        return ExerciseHint.from_values(self.target_muscles, self.body_parts, self.equipment)

    @property
    def prescription(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class PlanSection(BaseModel):
    name: str
    exercises: list[PlanExercise] = Field(default_factory=list)


class WorkoutPlan(BaseModel):
    title: str = ""
    sections: list[PlanSection] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def accept_flat_sections(cls, data: Any) -> Any:
        """Accept ``{"warmup": [...], "exercises": [...], "cooldown": [...]}``."""
        if not isinstance(data, dict) or "sections" in data:
            return data
        if not any(key in data for key in FLAT_SECTION_KEYS):
            return data
        sections = [
            {"name": key, "exercises": data[key]}
            for key in FLAT_SECTION_KEYS
            if isinstance(data.get(key), list)
        ]
        return {"title": data.get("title", ""), "sections": sections}

    def iter_exercises(self):
        """Yield ``(section_name, position, exercise)`` in plan order."""
        for section in self.sections:
            for position, exercise in enumerate(section.exercises):
                yield section.name, position, exercise


class ValidatedExercise(BaseModel):
    section: str
    position: int
    exercise_id: str | None
    name: str
    media_url: str
    media_provider: str
    original_exercise_id: str | None = None
    original_name: str | None = None
    replaced: bool = False
    tier: str
    confidence: float
    prescription: dict[str, Any] = Field(default_factory=dict)


class ValidatedPlan(BaseModel):
    title: str = ""
    exercises: list[ValidatedExercise] = Field(default_factory=list)

    def by_section(self) -> dict[str, list[ValidatedExercise]]:
        grouped: dict[str, list[ValidatedExercise]] = {}
        for exercise in self.exercises:
            grouped.setdefault(exercise.section, []).append(exercise)
        return grouped
