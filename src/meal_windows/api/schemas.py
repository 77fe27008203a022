"""Request models for the HTTP API."""

from typing import Literal
from uuid import UUID, uuid4

from pydantic import AwareDatetime, BaseModel, Field

from meal_windows.config import parse_clock_time
from meal_windows.domain.health import HealthAssessment
from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.nutrients import (
    Fasting,
    Illness,
    Morning,
    NutritionContext,
    PostWorkout,
    PreSleep,
    Sex,
    Stressed,
    WorkoutIntensity,
)
from meal_windows.domain.profile import (
    DailyCheckIn,
    EnergyLevel,
    QuickMeal,
    UserProfile,
)
from meal_windows.domain.windows import MacroTotals
from meal_windows.services.scoring import health_score_from_assessment


class MacroPayload(BaseModel):
    """Calories and macronutrient grams."""

    calories: int = Field(ge=0)
    protein: int = Field(default=0, ge=0)
    carbs: int = Field(default=0, ge=0)
    fat: int = Field(default=0, ge=0)

    def to_domain(self) -> MacroTotals:
        return MacroTotals(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
        )


class ProfilePayload(BaseModel):
    """Profile fields used for planning."""

    daily_targets: MacroPayload
    wake_time: str | None = None
    sleep_time: str | None = None
    goal: str | None = None
    sex: Sex | None = None
    preferred_window_count: int | None = Field(default=None, ge=1, le=12)

    def to_domain(self) -> UserProfile:
        """Build a profile; unparseable clock times fall back to planner defaults."""
        return UserProfile(
            daily_targets=self.daily_targets.to_domain(),
            wake_time=parse_clock_time(self.wake_time, None),
            sleep_time=parse_clock_time(self.sleep_time, None),
            goal=self.goal,
            sex=self.sex,
            preferred_window_count=self.preferred_window_count,
        )


class QuickMealPayload(MacroPayload):
    """Meal already eaten before the check-in."""

    name: str = ""
    eaten_at: AwareDatetime | None = None


class CheckInPayload(BaseModel):
    """Daily check-in data."""

    quick_meals: list[QuickMealPayload] = Field(default_factory=list)
    workout_time: AwareDatetime | None = None
    work_schedule: str | None = None
    energy_level: EnergyLevel = EnergyLevel.GOOD

    def to_domain(self) -> DailyCheckIn:
        return DailyCheckIn(
            quick_meals=tuple(
                QuickMeal(
                    name=meal.name, macros=meal.to_domain(), eaten_at=meal.eaten_at
                )
                for meal in self.quick_meals
            ),
            workout_time=self.workout_time,
            work_schedule=self.work_schedule,
            energy_level=self.energy_level,
        )


class PlanRequest(BaseModel):
    """Full-day plan generation request."""

    profile: ProfilePayload
    check_in: CheckInPayload | None = None
    now: AwareDatetime | None = None


class FirstDayRequest(BaseModel):
    """First-use request that plans the remainder of the current day."""

    profile: ProfilePayload
    now: AwareDatetime | None = None


class MealRequest(MacroPayload):
    """Meal reported by the logging pipeline."""

    id: UUID = Field(default_factory=uuid4)
    timestamp: AwareDatetime
    name: str = ""
    micronutrients: dict[str, float] = Field(default_factory=dict)
    window_id: UUID | None = None
    health: HealthAssessment | None = None
    now: AwareDatetime | None = None

    def to_domain(self) -> LoggedMeal:
        return LoggedMeal(
            id=self.id,
            timestamp=self.timestamp,
            name=self.name,
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
            micronutrients=dict(self.micronutrients),
            window_id=self.window_id,
            health_score=(
                health_score_from_assessment(self.health) if self.health else None
            ),
        )


class ContextPayload(BaseModel):
    """Situational context for micronutrient scoring."""

    type: Literal[
        "post_workout", "pre_sleep", "morning", "fasting", "stressed", "illness"
    ]
    intensity: WorkoutIntensity = WorkoutIntensity.MODERATE
    elapsed_minutes: float = Field(default=0.0, ge=0)
    hours_until_sleep: float = Field(default=8.0, ge=0)

    def to_domain(self) -> NutritionContext:
        if self.type == "post_workout":
            return PostWorkout(
                intensity=self.intensity, elapsed_seconds=self.elapsed_minutes * 60
            )
        if self.type == "pre_sleep":
            return PreSleep(hours_until_sleep=self.hours_until_sleep)
        if self.type == "morning":
            return Morning()
        if self.type == "fasting":
            return Fasting()
        if self.type == "stressed":
            return Stressed()
        return Illness()


class MicronutrientRequest(BaseModel):
    """Micronutrient impact request for a day's meals."""

    contexts: list[ContextPayload] = Field(default_factory=list)
    sex: Sex | None = None
