"""Scoring of meals, windows and days."""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum

from meal_windows.domain.health import CategoryPayload, HealthAssessment
from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.scores import (
    AdherenceFactor,
    CategoryScore,
    DailyScore,
    DailyScoreBreakdown,
    FactorContribution,
    FactorImpact,
    HealthFactor,
    HealthScore,
    MacroScoreBreakdown,
    MealScoreBreakdown,
    WindowScore,
)
from meal_windows.domain.windows import MACRO_FIELDS, MealWindow, WindowPurpose

ON_TARGET_SCORE = 90
CLOSE_TO_TARGET_SCORE = 70

DAILY_WEIGHTS: dict[str, float] = {
    "adherence": 0.40,
    "food_quality": 0.25,
    "timing": 0.20,
    "consistency": 0.15,
}

MEAL_CATEGORY_WEIGHTS: dict[str, float] = {
    "macro_balance": 0.30,
    "food_quality": 0.25,
    "protein_efficiency": 0.20,
    "micronutrients": 0.15,
    "portion_size": 0.10,
}


class WeightTable(StrEnum):
    """Per-macro weight table used for window scores."""

    EQUAL = "equal"
    PURPOSE = "purpose"


EQUAL_WEIGHTS: dict[str, float] = {
    "calories": 0.25,
    "protein": 0.25,
    "carbs": 0.25,
    "fat": 0.25,
}

_PROTEIN_FOCUSED = {"calories": 0.25, "protein": 0.35, "carbs": 0.20, "fat": 0.20}
_CARB_FOCUSED = {"calories": 0.25, "protein": 0.20, "carbs": 0.35, "fat": 0.20}

PURPOSE_WEIGHTS: dict[WindowPurpose, dict[str, float]] = {
    WindowPurpose.RECOVERY: _PROTEIN_FOCUSED,
    WindowPurpose.POST_WORKOUT: _PROTEIN_FOCUSED,
    WindowPurpose.PRE_WORKOUT: _CARB_FOCUSED,
}

_MACRO_LABELS = {
    "calories": "Calories",
    "protein": "Protein",
    "carbs": "Carbs",
    "fat": "Fat",
}

_COMPONENT_LABELS = {
    "adherence": "Window adherence",
    "food_quality": "Food quality",
    "timing": "Meal timing",
    "consistency": "Calorie distribution",
}


def macro_weights(table: WeightTable, purpose: WindowPurpose) -> dict[str, float]:
    """Return the per-macro weights of a window under the given table."""
    if table is WeightTable.PURPOSE:
        return PURPOSE_WEIGHTS.get(purpose, EQUAL_WEIGHTS)
    return EQUAL_WEIGHTS


def tolerance_score(actual: float, target: float, band: float) -> int:
    """Score consumption against a target on a 0-100 tolerance curve.

    100 at an exact match, 70 at the edge of the band, falling linearly to 0
    at twice the band.
    """
    if target <= 0:
        return 100 if actual <= 0 else 0
    deviation = abs(actual - target) / target
    if deviation <= band:
        return round(100 - 30 * deviation / band)
    if deviation <= 2 * band:
        return round(70 - 70 * (deviation - band) / band)
    return 0


def health_score_from_assessment(assessment: HealthAssessment) -> HealthScore:
    """Convert the meal analysis contract into a domain health score."""
    breakdown = None
    if assessment.breakdown is not None:
        payload = assessment.breakdown
        breakdown = MealScoreBreakdown(
            macro_balance=_category(payload.macro_balance, "macro_balance"),
            food_quality=_category(payload.food_quality, "food_quality"),
            protein_efficiency=_category(
                payload.protein_efficiency, "protein_efficiency"
            ),
            micronutrients=_category(payload.micronutrients, "micronutrients"),
            portion_size=_category(payload.portion_size, "portion_size"),
            base_score=payload.base_score,
        )
    return HealthScore(
        score=assessment.score,
        factors=tuple(
            HealthFactor(
                name=factor.name,
                impact=FactorImpact(factor.impact),
                weight=factor.weight,
            )
            for factor in assessment.factors
        ),
        breakdown=breakdown,
        insight=assessment.insight,
    )


@dataclass
class ScoringEngine:
    """Computes window and daily scores from windows and meals."""

    weight_table: WeightTable = WeightTable.EQUAL

    def score_window(self, window: MealWindow) -> WindowScore:
        """Score a window's consumed totals against its effective targets."""
        target = window.effective().as_dict()
        actual = window.consumed.as_dict()
        band = window.flexibility.tolerance
        sub_scores = {
            macro: tolerance_score(actual[macro], target[macro], band)
            for macro in MACRO_FIELDS
        }
        weights = macro_weights(self.weight_table, window.purpose)
        factors = tuple(
            AdherenceFactor(
                macro=macro,
                actual=actual[macro],
                target=target[macro],
                contribution=weights[macro] * sub_scores[macro],
            )
            for macro in MACRO_FIELDS
        )
        score = round(sum(factor.contribution for factor in factors))
        return WindowScore(
            window_id=window.id,
            score=score,
            breakdown=MacroScoreBreakdown(
                calorie_score=sub_scores["calories"],
                protein_score=sub_scores["protein"],
                carb_score=sub_scores["carbs"],
                fat_score=sub_scores["fat"],
            ),
            factors=factors,
            insight=window_insight(score, factors, sub_scores),
        )

    def score_day(
        self,
        day: date,
        windows: Sequence[MealWindow],
        meals: Sequence[LoggedMeal],
        now: datetime | None = None,
    ) -> DailyScore:
        """Aggregate window adherence, meal quality, timing and consistency.

        When ``now`` is given only windows that have ended or received meals
        count towards adherence.
        """
        ordered = sorted(windows, key=lambda window: window.start)
        window_ids = {window.id for window in ordered}
        with_meals = {meal.window_id for meal in meals if meal.window_id in window_ids}
        scored = [
            window
            for window in ordered
            if now is None or now > window.end or window.id in with_meals
        ]
        window_scores = {window.id: self.score_window(window) for window in scored}
        adherence = _mean([score.score for score in window_scores.values()])

        health_scores = [
            meal.health_score.score for meal in meals if meal.health_score is not None
        ]
        food_quality = _mean(health_scores)

        by_id = {window.id: window for window in ordered}
        assigned = [meal for meal in meals if meal.window_id in by_id]
        inside = [
            meal for meal in assigned if by_id[meal.window_id].contains(meal.timestamp)
        ]
        timing = round(len(inside) / len(assigned) * 100) if assigned else 0

        excess = _back_loading_excess(ordered, meals)
        consistency = (
            round(100 * max(0.0, 1 - 2 * max(0.0, excess)))
            if excess is not None
            else 0
        )

        components = {
            "adherence": adherence,
            "food_quality": food_quality,
            "timing": timing,
            "consistency": consistency,
        }
        total = sum(DAILY_WEIGHTS[name] * value for name, value in components.items())
        score = max(0, min(100, round(total)))
        on_target = sum(
            1
            for entry in window_scores.values()
            if entry.score >= CLOSE_TO_TARGET_SCORE
        )
        breakdown = DailyScoreBreakdown(
            adherence_score=adherence,
            food_quality_score=food_quality,
            timing_score=timing,
            consistency_score=consistency,
            weights=dict(DAILY_WEIGHTS),
            adherence_detail=f"{on_target} of {len(window_scores)} windows on target",
            quality_detail=(
                f"Average meal score: {food_quality / 10:.1f}"
                if health_scores
                else "No meal scores yet"
            ),
            timing_detail=_timing_detail(len(inside), len(assigned)),
            consistency_detail=_consistency_detail(excess),
        )
        return DailyScore(
            day=day,
            score=score,
            breakdown=breakdown,
            window_scores={
                window_id: entry.score for window_id, entry in window_scores.items()
            },
            average_health_score=food_quality if health_scores else None,
            completed_windows=len(with_meals),
            total_windows=len(ordered),
            insight=daily_insight(score, components),
        )


def window_insight(
    score: int,
    factors: Sequence[AdherenceFactor],
    sub_scores: dict[str, int],
) -> str:
    if score >= ON_TARGET_SCORE:
        return "On target"
    if score >= CLOSE_TO_TARGET_SCORE:
        return "Close to target"
    lowest = min(MACRO_FIELDS, key=lambda macro: sub_scores[macro])
    factor = next(factor for factor in factors if factor.macro == lowest)
    direction = "over" if factor.actual > factor.target else "under"
    return f"{_MACRO_LABELS[lowest]} {direction} target"


def daily_insight(score: int, components: dict[str, int]) -> str:
    if score >= ON_TARGET_SCORE:
        return "On target"
    if score >= CLOSE_TO_TARGET_SCORE:
        return "Close to target"
    lowest = min(components, key=lambda name: components[name])
    return f"{_COMPONENT_LABELS[lowest]} needs attention"


def _category(payload: CategoryPayload, key: str) -> CategoryScore:
    return CategoryScore(
        label=payload.label,
        weight=MEAL_CATEGORY_WEIGHTS[key],
        factors=tuple(
            FactorContribution(
                name=factor.name,
                description=factor.description,
                value=factor.value,
            )
            for factor in payload.factors
        ),
    )


def _mean(values: Sequence[int]) -> int:
    if not values:
        return 0
    return round(sum(values) / len(values))


def _back_loading_excess(
    windows: Sequence[MealWindow], meals: Sequence[LoggedMeal]
) -> float | None:
    """Return actual minus planned calorie share after the day's midpoint."""
    consumed = sum(meal.calories for meal in meals)
    if not windows or not meals or consumed <= 0:
        return None
    first = windows[0].start
    last = max(window.end for window in windows)
    midpoint = first + (last - first) / 2
    planned_total = sum(window.target.calories for window in windows)
    planned_late = sum(
        window.target.calories for window in windows if window.start >= midpoint
    )
    planned_share = planned_late / planned_total if planned_total > 0 else 0.5
    actual_late = sum(meal.calories for meal in meals if meal.timestamp >= midpoint)
    return actual_late / consumed - planned_share


def _timing_detail(inside: int, assigned: int) -> str:
    if assigned == 0:
        return "No meals logged"
    if inside == assigned:
        return "All meals within windows"
    return f"{inside} of {assigned} meals within windows"


def _consistency_detail(excess: float | None) -> str:
    if excess is None:
        return "No meals logged"
    if excess > 0.1:
        return "Calories back-loaded"
    if excess < -0.1:
        return "Calories front-loaded"
    return "Calories evenly spread"
