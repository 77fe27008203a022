"""Profile and daily check-in models."""

from dataclasses import dataclass, field
from datetime import datetime, time
from enum import StrEnum

from meal_windows.domain.nutrients import Sex
from meal_windows.domain.windows import MacroTotals


class EnergyLevel(StrEnum):
    """Coarse energy signal from the daily check-in."""

    LOW = "low"
    GOOD = "good"
    HIGH = "high"


@dataclass(frozen=True)
class UserProfile:
    """Profile fields consumed by the planner."""

    daily_targets: MacroTotals
    wake_time: time | None = None
    sleep_time: time | None = None
    goal: str | None = None
    sex: Sex | None = None
    preferred_window_count: int | None = None


@dataclass(frozen=True)
class QuickMeal:
    """Meal the user reports as already eaten during check-in."""

    name: str
    macros: MacroTotals
    eaten_at: datetime | None = None


@dataclass(frozen=True)
class DailyCheckIn:
    """Daily check-in data that shapes a full-day plan."""

    quick_meals: tuple[QuickMeal, ...] = ()
    workout_time: datetime | None = None
    work_schedule: str | None = None
    energy_level: EnergyLevel = EnergyLevel.GOOD
    completed_at: datetime | None = None
    notes: list[str] = field(default_factory=list)
