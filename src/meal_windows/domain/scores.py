"""Score models for meals, windows and days."""

from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from uuid import UUID


class FactorImpact(StrEnum):
    """Direction of a health factor's effect."""

    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


class ScoreBucket(StrEnum):
    """Presentation bucket derived from a 0-10 display score."""

    EXCELLENT = "excellent"
    GOOD = "good"
    OKAY = "okay"
    POOR = "poor"
    BAD = "bad"


@dataclass(frozen=True)
class HealthFactor:
    """Single AI-derived factor contributing to a meal's health score."""

    name: str
    impact: FactorImpact
    weight: float


@dataclass(frozen=True)
class FactorContribution:
    """Individual adjustment inside a breakdown category."""

    name: str
    description: str
    value: float


@dataclass(frozen=True)
class CategoryScore:
    """Weighted category of a meal score breakdown."""

    label: str
    weight: float
    factors: tuple[FactorContribution, ...] = ()

    @property
    def subtotal(self) -> float:
        return sum(factor.value for factor in self.factors)


@dataclass(frozen=True)
class MealScoreBreakdown:
    """Base score plus weighted category subtotals."""

    macro_balance: CategoryScore
    food_quality: CategoryScore
    protein_efficiency: CategoryScore
    micronutrients: CategoryScore
    portion_size: CategoryScore
    base_score: float = 5.0

    @property
    def categories(self) -> tuple[CategoryScore, ...]:
        return (
            self.macro_balance,
            self.food_quality,
            self.protein_efficiency,
            self.micronutrients,
            self.portion_size,
        )

    @property
    def total_adjustment(self) -> float:
        return sum(category.subtotal for category in self.categories)

    @property
    def final_score(self) -> float:
        return self.base_score + self.total_adjustment


@dataclass(frozen=True)
class HealthScore:
    """Per-meal health score supplied by the meal analysis pipeline."""

    score: int
    factors: tuple[HealthFactor, ...] = ()
    breakdown: MealScoreBreakdown | None = None
    insight: str | None = None

    def __post_init__(self) -> None:
        if not 0 <= self.score <= 100:
            raise ValueError("Health score must be between 0 and 100")

    @property
    def display_score(self) -> float:
        """Return the score on a 0-10 scale."""
        return self.score / 10

    @property
    def bucket(self) -> ScoreBucket:
        """Return the presentation bucket for the display score."""
        return bucket_for(self.display_score)


def bucket_for(display_score: float) -> ScoreBucket:
    """Map a 0-10 display score onto its bucket."""
    if 8.5 <= display_score <= 10.0:
        return ScoreBucket.EXCELLENT
    if 7.0 <= display_score < 8.5:
        return ScoreBucket.GOOD
    if 5.0 <= display_score < 7.0:
        return ScoreBucket.OKAY
    if 3.0 <= display_score < 5.0:
        return ScoreBucket.POOR
    return ScoreBucket.BAD


@dataclass(frozen=True)
class MacroScoreBreakdown:
    """Per-macro 0-100 adherence sub-scores."""

    calorie_score: int
    protein_score: int
    carb_score: int
    fat_score: int

    @property
    def weighted_average(self) -> int:
        """Equal-weight average of the four sub-scores."""
        return round(
            (self.calorie_score + self.protein_score + self.carb_score + self.fat_score)
            / 4
        )

    def as_dict(self) -> dict[str, int]:
        return {
            "calories": self.calorie_score,
            "protein": self.protein_score,
            "carbs": self.carb_score,
            "fat": self.fat_score,
        }


@dataclass(frozen=True)
class AdherenceFactor:
    """Actual versus target for one macro in a window."""

    macro: str
    actual: int
    target: int
    contribution: float

    @property
    def percentage_of_target(self) -> int:
        if self.target <= 0:
            return 0
        return int(self.actual / self.target * 100)


@dataclass(frozen=True)
class WindowScore:
    """Adherence score of a single window."""

    window_id: UUID
    score: int
    breakdown: MacroScoreBreakdown
    factors: tuple[AdherenceFactor, ...] = ()
    insight: str | None = None

    @property
    def display_score(self) -> float:
        return self.score / 10


@dataclass(frozen=True)
class DailyScoreBreakdown:
    """Weighted components of the daily score."""

    adherence_score: int
    food_quality_score: int
    timing_score: int
    consistency_score: int
    weights: dict[str, float] = field(default_factory=dict)
    adherence_detail: str = ""
    quality_detail: str = ""
    timing_detail: str = ""
    consistency_detail: str = ""


@dataclass(frozen=True)
class DailyScore:
    """Aggregate score for a day."""

    day: date
    score: int
    breakdown: DailyScoreBreakdown
    window_scores: dict[UUID, int]
    average_health_score: int | None
    completed_windows: int
    total_windows: int
    insight: str | None = None

    @property
    def display_score(self) -> float:
        return self.score / 10
