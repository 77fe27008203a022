"""Tests for micronutrient impact scoring."""

import pytest

from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.nutrients import (
    Fasting,
    GuidanceLevel,
    HealthImpact,
    Illness,
    Morning,
    PostWorkout,
    PreSleep,
    Severity,
    Sex,
    Stressed,
    WorkoutIntensity,
)
from meal_windows.services.catalog import InMemoryUnmatchedNutrientLog
from meal_windows.services.micronutrients import (
    MicronutrientImpactModel,
    aggregate_micronutrients,
    anti_nutrient_penalty,
    context_aware_penalty,
    context_recommendations,
    ordered_contexts,
)
from tests.conftest import at


def test_anti_nutrient_penalty_curve() -> None:
    assert anti_nutrient_penalty(80, 100, Severity.MEDIUM) == 0
    assert anti_nutrient_penalty(100, 100, Severity.MEDIUM) == pytest.approx(5.0)
    assert anti_nutrient_penalty(150, 100, Severity.MEDIUM) == pytest.approx(17.5)
    assert anti_nutrient_penalty(150, 100, Severity.HIGH) == pytest.approx(26.25)
    assert anti_nutrient_penalty(150, 100, Severity.LOW) == pytest.approx(12.25)
    assert anti_nutrient_penalty(300, 100, Severity.HIGH) == 30


def test_zero_limit_penalizes_any_intake() -> None:
    assert anti_nutrient_penalty(0.5, 0, Severity.HIGH) == 30
    assert anti_nutrient_penalty(0, 0, Severity.HIGH) == 0


def test_caffeine_before_sleep_is_penalized_more() -> None:
    base = context_aware_penalty("Caffeine", 480, 400, Severity.LOW)
    pre_sleep = context_aware_penalty(
        "Caffeine", 480, 400, Severity.LOW, [PreSleep(hours_until_sleep=3)]
    )

    assert base == pytest.approx(7.0)
    assert pre_sleep == pytest.approx(base * 1.5)


def test_caffeine_in_the_morning_is_penalized_less() -> None:
    penalty = context_aware_penalty("Caffeine", 480, 400, Severity.LOW, [Morning()])

    assert penalty == pytest.approx(3.5)


def test_post_workout_sodium_relief_decays() -> None:
    fresh = context_aware_penalty(
        "Sodium",
        3450,
        2300,
        Severity.MEDIUM,
        [PostWorkout(intensity=WorkoutIntensity.INTENSE, elapsed_seconds=0)],
    )
    later = context_aware_penalty(
        "Sodium",
        3450,
        2300,
        Severity.MEDIUM,
        [PostWorkout(intensity=WorkoutIntensity.INTENSE, elapsed_seconds=4 * 3600)],
    )

    assert fresh == pytest.approx(7.0)
    assert later == pytest.approx(17.5)


def test_whole_day_contexts_stack() -> None:
    penalty = context_aware_penalty(
        "Added Sugar",
        54,
        36,
        Severity.HIGH,
        [Illness(), PreSleep(hours_until_sleep=2), Fasting()],
    )

    assert penalty == pytest.approx(26.25 * 1.3 * 1.2 * 0.8)


def test_contexts_apply_in_fixed_order() -> None:
    contexts = [Illness(), Morning(), PreSleep(hours_until_sleep=1), Stressed()]

    assert [context.kind for context in ordered_contexts(contexts)] == [
        "pre_sleep",
        "morning",
        "stressed",
        "illness",
    ]


def test_context_recommendations() -> None:
    recommendations = context_recommendations(
        [
            Morning(),
            PostWorkout(intensity=WorkoutIntensity.INTENSE, elapsed_seconds=600),
        ]
    )

    assert recommendations == [
        "Consider electrolyte replenishment - sodium needs are elevated",
        "Protein intake within 30 minutes optimizes recovery",
        "Great time for caffeine and B-vitamins for energy",
    ]


def test_evaluate_scores_categories() -> None:
    model = MicronutrientImpactModel()

    impact = model.evaluate(
        {"Vitamin C": 90, "Zinc": 11, "Sodium": 3450}, sex=Sex.MALE
    )

    assert impact.category_scores[HealthImpact.IMMUNE] == pytest.approx(1.0)
    assert impact.raw_scores[HealthImpact.STRENGTH] == pytest.approx(1.0)
    assert impact.category_penalties[HealthImpact.STRENGTH] == pytest.approx(17.5)
    assert impact.category_scores[HealthImpact.STRENGTH] == pytest.approx(0.825)
    assert impact.category_scores[HealthImpact.HEART] == 0
    assert impact.overall_score == pytest.approx(2.825 / 6)
    assert impact.total_penalty == pytest.approx(17.5)
    sodium = next(i for i in impact.intakes if i.nutrient.name == "Sodium")
    assert sodium.guidance is GuidanceLevel.CRITICAL


def test_evaluate_merges_aliases_and_reports_unmatched() -> None:
    log = InMemoryUnmatchedNutrientLog()
    model = MicronutrientImpactModel(unmatched_log=log)

    impact = model.evaluate({"Vit C": 45, "ascorbic acid": 45, "Unobtainium": 3})

    assert len(impact.intakes) == 1
    assert impact.intakes[0].consumed == 90
    assert impact.unmatched == ("Unobtainium",)
    assert log.summary()[0]["name"] == "unobtainium"


def test_evaluate_uses_default_contexts() -> None:
    model = MicronutrientImpactModel(contexts=(Morning(),))

    impact = model.evaluate({"Caffeine": 480})

    assert impact.total_penalty == pytest.approx(3.5)
    assert impact.recommendations == (
        "Great time for caffeine and B-vitamins for energy",
    )


def test_evaluate_meals_sums_across_meals() -> None:
    meals = [
        LoggedMeal(
            timestamp=at(9), calories=300, protein=20, carbs=30, fat=10,
            micronutrients={"Vitamin C": 45, "Iron": 4},
        ),
        LoggedMeal(
            timestamp=at(13), calories=500, protein=30, carbs=50, fat=20,
            micronutrients={"Vitamin C": 45},
        ),
    ]

    assert aggregate_micronutrients(meals) == {"Vitamin C": 90, "Iron": 4}
    impact = MicronutrientImpactModel().evaluate_meals(meals, sex=Sex.MALE)
    assert impact.category_scores[HealthImpact.ANTIOXIDANT] == pytest.approx(1.0)
