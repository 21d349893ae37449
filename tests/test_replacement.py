import pytest
from hypothesis import given
from hypothesis import strategies as st

from exercise_resolution import metrics
from exercise_resolution.catalog import ExerciseHint, ExerciseRecord, load_catalog
from exercise_resolution.errors import NoEligibleSubstituteError
from exercise_resolution.plan import PlanExercise, WorkoutPlan
from exercise_resolution.replacement import ReplacementSelector, equipment_compatible
from exercise_resolution.validation import ValidationEntry, validate_plan_ids

_CATALOG = load_catalog()
_IDS = sorted(_CATALOG.ids)


def _entry(reference: str, classification: str = "fabricated", name: str | None = None) -> ValidationEntry:
    return ValidationEntry(
        section="main",
        position=0,
        reference=reference,
        classification=classification,
        reason="test",
        name=name,
    )


def _exercise(**fields) -> PlanExercise:
    return PlanExercise.model_validate(fields)


CHEST_HINT = {
    "exerciseId": "z9Z9z9Z",
    "targetMuscles": ["pectorals"],
    "bodyParts": ["chest"],
    "equipments": ["body weight"],
}


class TestStrategies:
    def test_fabricated_id_gets_exact_tag_match(self):
        selector = ReplacementSelector(_CATALOG, {"k7Lm2Qx", "Fd6wL0s", "c6Mx2Tp", "y5Kd3Pm"})
        decision = selector.select(_entry("z9Z9z9Z"), _exercise(**CHEST_HINT))
        assert decision.substitute_id == "Fd6wL0s"
        assert decision.strategy == "exact_tag_match"
        assert "plan hint" in decision.reason

    def test_used_candidates_are_skipped_when_possible(self):
        selector = ReplacementSelector(_CATALOG, {"k7Lm2Qx", "Fd6wL0s", "c6Mx2Tp", "y5Kd3Pm"})
        decision = selector.select(_entry("z9Z9z9Z"), _exercise(**CHEST_HINT), used_ids={"Fd6wL0s"})
        assert decision.substitute_id == "c6Mx2Tp"

    def test_used_candidate_is_reused_when_it_is_the_only_match(self):
        selector = ReplacementSelector(_CATALOG, {"k7Lm2Qx", "Fd6wL0s"})
        decision = selector.select(_entry("z9Z9z9Z"), _exercise(**CHEST_HINT), used_ids={"Fd6wL0s"})
        assert decision.substitute_id == "Fd6wL0s"

    def test_recoverable_uses_catalog_intent_and_equipment(self):
        selector = ReplacementSelector(_CATALOG, {"k7Lm2Qx", "b2Ne7Vg", "a1B2c3D"})
        decision = selector.select(_entry("Wp4kH9a", "recoverable"))
        # dumbbell bench press shares tags but not barbell equipment
        assert decision.substitute_id == "a1B2c3D"
        assert decision.strategy == "exact_tag_match"
        assert "catalog record" in decision.reason

    def test_partial_prefers_equipment_compatible(self):
        selector = ReplacementSelector(_CATALOG, {"k7Lm2Qx", "Jx4kS9f"})
        exercise = _exercise(exerciseId="z1", targetMuscles=["hamstrings"], bodyParts=["upper legs"], equipments=["barbell"])
        decision = selector.select(_entry("z1"), exercise)
        assert decision.substitute_id == "k7Lm2Qx"
        assert decision.strategy == "partial_tag_match"

    def test_partial_prefers_shared_muscle_over_equipment(self):
        selector = ReplacementSelector(_CATALOG, {"k7Lm2Qx", "Jx4kS9f"})
        exercise = _exercise(exerciseId="z1", targetMuscles=["quads"], bodyParts=["upper legs"], equipments=["barbell"])
        decision = selector.select(_entry("z1"), exercise)
        assert decision.substitute_id == "Jx4kS9f"
        assert decision.strategy == "partial_tag_match"

    def test_arbitrary_fallback_uses_catalog_order(self):
        selector = ReplacementSelector(_CATALOG, {"o1Wv5Gt", "y5Kd3Pm"})
        decision = selector.select(_entry("z9Z9z9Z"), _exercise(**CHEST_HINT))
        assert decision.substitute_id == "y5Kd3Pm"
        assert decision.strategy == "arbitrary_fallback"

    def test_name_lookup_supplies_intent(self, engine):
        selector = ReplacementSelector(_CATALOG, {"k7Lm2Qx", "b2Ne7Vg", "a1B2c3D"}, name_lookup=engine.lookup_name)
        decision = selector.select(_entry("bench press", name="bench press"), _exercise(name="bench press"))
        assert decision.substitute_id == "a1B2c3D"
        assert "barbell bench press" in decision.reason

    def test_no_intent_falls_back(self):
        selector = ReplacementSelector(_CATALOG, {"Xq5nV1c"})
        decision = selector.select(_entry("zzz"))
        assert decision.substitute_id == "Xq5nV1c"
        assert decision.strategy == "arbitrary_fallback"
        assert "no intent" in decision.reason

    def test_ids_outside_catalog_never_enter_the_pool(self):
        selector = ReplacementSelector(_CATALOG, {"not-real", "y5Kd3Pm"})
        assert [r.exercise_id for r in selector.pool] == ["y5Kd3Pm"]


def test_empty_pool_raises():
    selector = ReplacementSelector(_CATALOG, set())
    with pytest.raises(NoEligibleSubstituteError) as exc_info:
        selector.select(_entry("a1B2c3D", "recoverable"))
    assert exc_info.value.unresolved == ["a1B2c3D"]
    assert exc_info.value.code == "no_eligible_substitute"


def test_select_all_spreads_substitutes_and_records_metrics():
    plan = WorkoutPlan.model_validate(
        {
            "sections": [
                {
                    "name": "main",
                    "exercises": [
                        {"exerciseId": "Fd6wL0s"},
                        dict(CHEST_HINT),
                        {**CHEST_HINT, "exerciseId": "z8Z8z8Z"},
                    ],
                }
            ]
        }
    )
    filtered = {"Fd6wL0s", "c6Mx2Tp", "a1B2c3D"}
    report = validate_plan_ids(plan, filtered, _CATALOG)
    decisions = ReplacementSelector(_CATALOG, filtered).select_all(report, plan)

    assert [(d.position, d.substitute_id) for d in decisions] == [(1, "a1B2c3D"), (2, "c6Mx2Tp")]
    assert metrics.get_metrics()["replacements"] == {"exact_tag_match": 2}
    assert "z9Z9z9Z" in decisions[0].to_warning()
    assert decisions[0].to_dict()["strategy"] == "exact_tag_match"


def test_select_all_without_pending_entries():
    plan = WorkoutPlan.model_validate({"sections": [{"name": "main", "exercises": [{"exerciseId": "a1B2c3D"}]}]})
    report = validate_plan_ids(plan, {"a1B2c3D"}, _CATALOG)
    assert ReplacementSelector(_CATALOG, {"a1B2c3D"}).select_all(report, plan) == []


def test_empty_pool_raises_even_for_an_empty_plan():
    plan = WorkoutPlan.model_validate({"sections": []})
    report = validate_plan_ids(plan, set(), _CATALOG)
    with pytest.raises(NoEligibleSubstituteError) as exc_info:
        ReplacementSelector(_CATALOG, {"not-in-catalog"}).select_all(report, plan)
    assert exc_info.value.unresolved == []
    assert "cannot replace" not in exc_info.value.message


def test_select_all_reports_every_unresolved_reference():
    plan = WorkoutPlan.model_validate(
        {"sections": [{"name": "main", "exercises": [{"exerciseId": "a1B2c3D"}, {"exerciseId": "zzz"}]}]}
    )
    report = validate_plan_ids(plan, set(), _CATALOG)
    with pytest.raises(NoEligibleSubstituteError) as exc_info:
        ReplacementSelector(_CATALOG, set()).select_all(report, plan)
    assert exc_info.value.unresolved == ["a1B2c3D", "zzz"]


def test_equipment_compatible():
    barbell = ExerciseHint(equipment=("barbell",))
    assert equipment_compatible(barbell, _CATALOG.get("Wp4kH9a"))
    assert equipment_compatible(barbell, _CATALOG.get("a1B2c3D"))
    assert not equipment_compatible(barbell, _CATALOG.get("b2Ne7Vg"))
    assert equipment_compatible(ExerciseHint(), ExerciseRecord("x", "x", equipment=("cable",)))


@given(st.sampled_from(_IDS), st.sets(st.sampled_from(_IDS), min_size=1))
def test_substitute_shares_intent_whenever_the_pool_allows(original_id, filtered):
    original = _CATALOG.get(original_id)
    filtered = filtered - {original_id}
    if not filtered:
        return
    decision = ReplacementSelector(_CATALOG, filtered).select(_entry(original_id, "recoverable"))
    chosen = _CATALOG.get(decision.substitute_id)

    assert decision.substitute_id in filtered
    exact_exists = any(
        set(original.target_muscles) & set(r.target_muscles)
        and set(original.body_parts) & set(r.body_parts)
        and equipment_compatible(ExerciseHint.from_record(original), r)
        for r in map(_CATALOG.get, filtered)
    )
    if exact_exists:
        assert decision.strategy == "exact_tag_match"
        assert set(original.target_muscles) & set(chosen.target_muscles)
        assert set(original.body_parts) & set(chosen.body_parts)
    elif any(set(original.body_parts) & set(_CATALOG.get(i).body_parts) for i in filtered):
        assert decision.strategy == "partial_tag_match"
        assert set(original.body_parts) & set(chosen.body_parts)
    else:
        assert decision.strategy == "arbitrary_fallback"
