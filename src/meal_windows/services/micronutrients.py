"""Context-aware micronutrient and anti-nutrient impact scoring."""

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.nutrients import (
    Fasting,
    GuidanceLevel,
    HealthImpact,
    Illness,
    Morning,
    NutrientInfo,
    NutritionContext,
    PostWorkout,
    PreSleep,
    Severity,
    Sex,
    Stressed,
    WorkoutIntensity,
)
from meal_windows.services.catalog import (
    DEFAULT_CATALOG,
    NutrientCatalog,
    UnmatchedNutrientLog,
)

_logger = logging.getLogger(__name__)

MAX_PENALTY = 30.0
POST_WORKOUT_DECAY_SECONDS = 4 * 3600
CONTEXT_ORDER = (
    "post_workout",
    "pre_sleep",
    "morning",
    "fasting",
    "stressed",
    "illness",
)

_SODIUM_RETENTION = {
    WorkoutIntensity.LIGHT: 0.8,
    WorkoutIntensity.MODERATE: 0.6,
    WorkoutIntensity.INTENSE: 0.4,
}


def anti_nutrient_penalty(consumed: float, limit: float, severity: Severity) -> float:
    """Return the 0-30 base penalty for consuming ``consumed`` against ``limit``."""
    if limit <= 0:
        return MAX_PENALTY if consumed > 0 else 0.0
    percentage = consumed / limit
    if percentage <= 0.8:
        return 0.0
    if percentage <= 1.2:
        penalty = (percentage - 0.8) * 25
    elif percentage <= 2.0:
        penalty = 10 + (percentage - 1.2) * 25
    else:
        penalty = MAX_PENALTY
    return min(penalty * severity.factor, MAX_PENALTY)


def adjust_penalty_for_context(  # noqa: PLR0911
    nutrient_name: str, penalty: float, context: NutritionContext
) -> float:
    """Apply a single context's adjustment to an anti-nutrient penalty."""
    name = nutrient_name.lower()
    match context:
        case PostWorkout(intensity=intensity, elapsed_seconds=elapsed):
            if "sodium" in name or "salt" in name:
                reduction = 1 - _SODIUM_RETENTION[intensity]
                time_factor = max(0.0, 1 - elapsed / POST_WORKOUT_DECAY_SECONDS)
                return penalty * (1 - reduction * time_factor)
            if "sugar" in name and elapsed < 3600:
                return penalty * 0.7
        case PreSleep(hours_until_sleep=hours):
            if "caffeine" in name:
                if hours < 6:
                    return penalty * (2.0 - hours / 6.0)
            elif "sugar" in name and hours < 3:
                return penalty * 1.3
        case Morning():
            if "caffeine" in name:
                return penalty * 0.5
        case Fasting():
            return penalty * 1.2
        case Stressed():
            if "caffeine" in name:
                return penalty * 1.4
        case Illness():
            return penalty * 0.8
    return penalty


def ordered_contexts(contexts: Iterable[NutritionContext]) -> list[NutritionContext]:
    """Return contexts in the fixed application order."""
    return sorted(contexts, key=lambda context: CONTEXT_ORDER.index(context.kind))


def context_aware_penalty(
    nutrient_name: str,
    consumed: float,
    limit: float,
    severity: Severity,
    contexts: Iterable[NutritionContext] = (),
) -> float:
    """Return the base penalty with every context applied in order, floored at 0.

    Contexts are applied post-workout, pre-sleep, morning, fasting, stressed,
    illness. The adjustments do not commute, so this order is part of the
    scoring model.
    """
    penalty = anti_nutrient_penalty(consumed, limit, severity)
    for context in ordered_contexts(contexts):
        penalty = adjust_penalty_for_context(nutrient_name, penalty, context)
    return max(0.0, penalty)


def context_recommendations(contexts: Iterable[NutritionContext]) -> list[str]:
    """Return guidance strings for the active contexts."""
    recommendations: list[str] = []
    for context in ordered_contexts(contexts):
        match context:
            case PostWorkout(intensity=WorkoutIntensity.INTENSE):
                recommendations.append(
                    "Consider electrolyte replenishment - sodium needs are elevated"
                )
                recommendations.append(
                    "Protein intake within 30 minutes optimizes recovery"
                )
            case PreSleep(hours_until_sleep=hours) if hours < 3:
                recommendations.append(
                    "Avoid caffeine and limit sugar for better sleep quality"
                )
            case Morning():
                recommendations.append(
                    "Great time for caffeine and B-vitamins for energy"
                )
            case Fasting():
                recommendations.append(
                    "Focus on nutrient-dense foods when breaking fast"
                )
            case Stressed():
                recommendations.append(
                    "Prioritize magnesium and B-vitamins for stress management"
                )
            case Illness():
                recommendations.append(
                    "Increase vitamin C and zinc intake for immune support"
                )
    return recommendations


@dataclass(frozen=True)
class NutrientIntake:
    """Resolved catalog entry with the consumed amount."""

    nutrient: NutrientInfo
    consumed: float
    guidance: GuidanceLevel
    penalty: float = 0.0


@dataclass(frozen=True)
class MicronutrientImpact:
    """Per-category impact scores for a set of consumed nutrients."""

    category_scores: dict[HealthImpact, float]
    raw_scores: dict[HealthImpact, float]
    category_penalties: dict[HealthImpact, float]
    overall_score: float
    intakes: tuple[NutrientIntake, ...] = ()
    unmatched: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()

    @property
    def total_penalty(self) -> float:
        return sum(intake.penalty for intake in self.intakes)


@dataclass
class MicronutrientImpactModel:
    """Aggregates consumed micronutrients into six health-impact categories."""

    catalog: NutrientCatalog = DEFAULT_CATALOG
    unmatched_log: UnmatchedNutrientLog | None = None
    contexts: Sequence[NutritionContext] = field(default_factory=tuple)

    def resolve(
        self, amounts: Mapping[str, float]
    ) -> tuple[dict[str, tuple[NutrientInfo, float]], list[str]]:
        """Resolve raw names against the catalog, summing amounts per entry."""
        resolved: dict[str, tuple[NutrientInfo, float]] = {}
        unmatched: list[str] = []
        for raw_name, amount in amounts.items():
            info = self.catalog.lookup(raw_name)
            if info is None:
                unmatched.append(raw_name)
                if self.unmatched_log is not None:
                    self.unmatched_log.record(raw_name)
                else:
                    _logger.warning(
                        "Unmatched nutrient name", extra={"nutrient": raw_name}
                    )
                continue
            _, previous = resolved.get(info.name, (info, 0.0))
            resolved[info.name] = (info, previous + amount)
        return resolved, unmatched

    def evaluate(
        self,
        amounts: Mapping[str, float],
        contexts: Iterable[NutritionContext] | None = None,
        sex: Sex | None = None,
    ) -> MicronutrientImpact:
        """Score consumed amounts by health-impact category."""
        active = ordered_contexts(self.contexts if contexts is None else contexts)
        resolved, unmatched = self.resolve(amounts)
        intakes: list[NutrientIntake] = []
        for info, consumed in resolved.values():
            penalty = 0.0
            if info.is_anti_nutrient and info.severity is not None:
                penalty = context_aware_penalty(
                    info.name,
                    consumed,
                    info.daily_limit if info.daily_limit is not None else 0.0,
                    info.severity,
                    active,
                )
            intakes.append(
                NutrientIntake(
                    nutrient=info,
                    consumed=consumed,
                    guidance=info.guidance(consumed, sex),
                    penalty=penalty,
                )
            )

        raw_scores: dict[HealthImpact, float] = {}
        penalties: dict[HealthImpact, float] = {}
        category_scores: dict[HealthImpact, float] = {}
        for impact in HealthImpact:
            ratios = [
                intake.consumed / intake.nutrient.rda(sex)
                for intake in intakes
                if not intake.nutrient.is_anti_nutrient
                and impact in intake.nutrient.health_impacts
                and intake.nutrient.rda(sex) > 0
            ]
            raw = sum(ratios) / len(ratios) if ratios else 0.0
            penalty = sum(
                intake.penalty
                for intake in intakes
                if intake.nutrient.is_anti_nutrient
                and impact in intake.nutrient.health_impacts
            )
            raw_scores[impact] = raw
            penalties[impact] = penalty
            category_scores[impact] = max(0.0, raw - penalty / 100)
        overall = sum(category_scores.values()) / len(category_scores)
        return MicronutrientImpact(
            category_scores=category_scores,
            raw_scores=raw_scores,
            category_penalties=penalties,
            overall_score=overall,
            intakes=tuple(intakes),
            unmatched=tuple(unmatched),
            recommendations=tuple(context_recommendations(active)),
        )

    def evaluate_meals(
        self,
        meals: Iterable[LoggedMeal],
        contexts: Iterable[NutritionContext] | None = None,
        sex: Sex | None = None,
    ) -> MicronutrientImpact:
        """Score the summed micronutrients of a set of meals."""
        return self.evaluate(aggregate_micronutrients(meals), contexts, sex)


def aggregate_micronutrients(meals: Iterable[LoggedMeal]) -> dict[str, float]:
    """Sum micronutrient amounts by raw name across meals."""
    totals: dict[str, float] = {}
    for meal in meals:
        for name, amount in meal.micronutrients.items():
            totals[name] = totals.get(name, 0.0) + amount
    return totals
