"""Domain models for micronutrients and nutrition context."""

from dataclasses import dataclass, field
from enum import StrEnum


class NutrientType(StrEnum):
    """Broad nutrient family."""

    VITAMIN = "vitamin"
    MINERAL = "mineral"
    OTHER = "other"
    ANTI_NUTRIENT = "anti-nutrient"


class HealthImpact(StrEnum):
    """Aggregate wellness dimension nutrients contribute to."""

    ENERGY = "energy"
    STRENGTH = "strength"
    FOCUS = "focus"
    IMMUNE = "immune"
    HEART = "heart"
    ANTIOXIDANT = "antioxidant"


class Severity(StrEnum):
    """How strongly an anti-nutrient excess is penalized."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def factor(self) -> float:
        return _SEVERITY_FACTORS[self]


_SEVERITY_FACTORS = {
    Severity.HIGH: 1.5,
    Severity.MEDIUM: 1.0,
    Severity.LOW: 0.7,
}


class Sex(StrEnum):
    """Sex used to select an RDA."""

    MALE = "male"
    FEMALE = "female"


class GuidanceLevel(StrEnum):
    """Guidance shown for a nutrient's intake."""

    NEEDS_MORE = "needs_more"
    ADEQUATE = "adequate"
    EXCESSIVE = "excessive"
    CRITICAL = "critical"


@dataclass(frozen=True)
class NutrientInfo:
    """Catalog entry for a tracked nutrient or anti-nutrient."""

    name: str
    nutrient_type: NutrientType
    unit: str
    rda_male: float
    rda_female: float
    health_impacts: frozenset[HealthImpact]
    alternate_names: tuple[str, ...] = ()
    is_anti_nutrient: bool = False
    daily_limit: float | None = None
    severity: Severity | None = None
    guidance_threshold: float | None = None

    @property
    def average_rda(self) -> float:
        return (self.rda_male + self.rda_female) / 2

    def rda(self, sex: Sex | None = None) -> float:
        """Return the RDA for the given sex, or the average when unknown."""
        if sex is Sex.MALE:
            return self.rda_male
        if sex is Sex.FEMALE:
            return self.rda_female
        return self.average_rda

    def guidance(self, consumed: float, sex: Sex | None = None) -> GuidanceLevel:
        """Return the guidance level for a consumed amount."""
        if self.is_anti_nutrient:
            if self.daily_limit is None:
                return GuidanceLevel.ADEQUATE
            if self.daily_limit <= 0:
                if consumed > 0:
                    return GuidanceLevel.CRITICAL
                return GuidanceLevel.ADEQUATE
            percentage = consumed / self.daily_limit
            if percentage < 0.8:
                return GuidanceLevel.ADEQUATE
            if percentage < 1.2:
                return GuidanceLevel.EXCESSIVE
            return GuidanceLevel.CRITICAL
        rda = self.rda(sex)
        if rda <= 0:
            return GuidanceLevel.ADEQUATE
        threshold = self.guidance_threshold or 0.5
        if consumed / rda < threshold:
            return GuidanceLevel.NEEDS_MORE
        return GuidanceLevel.ADEQUATE


class WorkoutIntensity(StrEnum):
    """Intensity of a completed workout."""

    LIGHT = "light"
    MODERATE = "moderate"
    INTENSE = "intense"


@dataclass(frozen=True)
class PostWorkout:
    """Recently finished a workout."""

    intensity: WorkoutIntensity
    elapsed_seconds: float
    kind: str = field(default="post_workout", init=False)


@dataclass(frozen=True)
class PreSleep:
    """Close to bedtime."""

    hours_until_sleep: float
    kind: str = field(default="pre_sleep", init=False)


@dataclass(frozen=True)
class Morning:
    kind: str = field(default="morning", init=False)


@dataclass(frozen=True)
class Fasting:
    kind: str = field(default="fasting", init=False)


@dataclass(frozen=True)
class Stressed:
    kind: str = field(default="stressed", init=False)


@dataclass(frozen=True)
class Illness:
    kind: str = field(default="illness", init=False)


NutritionContext = PostWorkout | PreSleep | Morning | Fasting | Stressed | Illness
