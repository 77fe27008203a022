"""Window planning for full and partial days."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time, timedelta, tzinfo
from typing import Protocol

from meal_windows.domain.profile import DailyCheckIn, EnergyLevel, UserProfile
from meal_windows.domain.windows import (
    MACRO_RATIOS,
    Flexibility,
    MacroTotals,
    MealWindow,
    WindowPurpose,
)

_logger = logging.getLogger(__name__)

BEDTIME_BUFFER = timedelta(hours=3)
PARTIAL_DAY_CUTOFF_HOUR = 20
MIN_PARTIAL_DAY_HOURS = 2.0
MIN_WINDOWS = 3
MAX_WINDOWS = 6
DEFAULT_WINDOW_COUNT = 4
MAX_WINDOW_LENGTH = timedelta(hours=2)

CALORIE_WEIGHTS: dict[WindowPurpose, float] = {
    WindowPurpose.SUSTAINED_ENERGY: 0.35,
    WindowPurpose.METABOLIC_BOOST: 0.30,
    WindowPurpose.RECOVERY: 0.25,
    WindowPurpose.SLEEP_OPTIMIZED: 0.20,
}
_OTHER_CALORIE_WEIGHT = 0.30

FLEXIBILITY_BY_PURPOSE: dict[WindowPurpose, Flexibility] = {
    WindowPurpose.PRE_WORKOUT: Flexibility.STRICT,
    WindowPurpose.POST_WORKOUT: Flexibility.STRICT,
    WindowPurpose.SUSTAINED_ENERGY: Flexibility.MODERATE,
    WindowPurpose.SLEEP_OPTIMIZED: Flexibility.MODERATE,
    WindowPurpose.METABOLIC_BOOST: Flexibility.FLEXIBLE,
    WindowPurpose.RECOVERY: Flexibility.FLEXIBLE,
}

_WAKE_OFFSETS = {
    EnergyLevel.LOW: timedelta(minutes=30),
    EnergyLevel.GOOD: timedelta(minutes=60),
    EnergyLevel.HIGH: timedelta(minutes=75),
}


class PurposePolicy(Protocol):
    """Selects window purposes for a full-day plan."""

    def purposes(
        self, starts: Sequence[datetime], check_in: DailyCheckIn | None
    ) -> list[WindowPurpose]:
        """Return one purpose per window start."""


@dataclass(frozen=True)
class DefaultPurposePolicy(PurposePolicy):
    """Metabolic boost first, sleep-optimized last, alternating in between."""

    def purposes(
        self, starts: Sequence[datetime], check_in: DailyCheckIn | None
    ) -> list[WindowPurpose]:
        """Return one purpose per window start."""
        count = len(starts)
        purposes = [
            WindowPurpose.SUSTAINED_ENERGY if index % 2 == 1 else WindowPurpose.RECOVERY
            for index in range(count)
        ]
        purposes[0] = WindowPurpose.METABOLIC_BOOST
        purposes[-1] = WindowPurpose.SLEEP_OPTIMIZED
        workout = check_in.workout_time if check_in else None
        if workout is None:
            return purposes
        before = [index for index, start in enumerate(starts) if start < workout]
        after = [index for index, start in enumerate(starts) if start >= workout]
        if before:
            purposes[before[-1]] = WindowPurpose.PRE_WORKOUT
        if after:
            purposes[after[0]] = WindowPurpose.POST_WORKOUT
        return purposes


@dataclass(frozen=True)
class PartialDayPlan:
    """Result of planning the remainder of a day, with every intermediate value."""

    now: datetime
    bedtime: datetime
    bedtime_buffer: datetime
    remaining_hours: float
    total_waking_hours: float
    show_tomorrow_plan: bool
    factor: float
    pro_rated: MacroTotals
    number_of_windows: int
    purposes: tuple[WindowPurpose, ...] = ()
    windows: list[MealWindow] = field(default_factory=list)


@dataclass
class WindowPlanner:
    """Builds the ordered window set for a day."""

    default_wake_time: time = time(7, 0)
    default_sleep_time: time = time(23, 0)
    timezone: tzinfo = UTC
    policy: PurposePolicy = field(default_factory=DefaultPurposePolicy)

    def plan_full_day(
        self,
        day: date,
        profile: UserProfile,
        check_in: DailyCheckIn | None = None,
    ) -> list[MealWindow]:
        """Plan 3-6 windows across the waking hours of ``day``."""
        wake = datetime.combine(day, self._wake_time(profile), tzinfo=self.timezone)
        sleep = datetime.combine(day, self._sleep_time(profile), tzinfo=self.timezone)
        if sleep <= wake:
            sleep += timedelta(days=1)
        energy = check_in.energy_level if check_in else EnergyLevel.GOOD
        span_start = wake + _WAKE_OFFSETS[energy]
        span_end = sleep - BEDTIME_BUFFER
        if span_end - span_start < timedelta(hours=MIN_WINDOWS):
            span_end = span_start + timedelta(hours=MIN_WINDOWS)

        count = min(
            MAX_WINDOWS,
            max(MIN_WINDOWS, profile.preferred_window_count or DEFAULT_WINDOW_COUNT),
        )
        slot = (span_end - span_start) / count
        while count > MIN_WINDOWS and slot < MAX_WINDOW_LENGTH:
            count -= 1
            slot = (span_end - span_start) / count
        length = min(MAX_WINDOW_LENGTH, slot)
        starts = [span_start + slot * index for index in range(count)]

        purposes = self.policy.purposes(starts, check_in)
        budget = plan_budget(profile.daily_targets, check_in)
        allocations = allocate_targets(budget, purposes)
        windows: list[MealWindow] = []
        for index, (start, purpose, target) in enumerate(
            zip(starts, purposes, allocations, strict=True)
        ):
            windows.append(
                MealWindow(
                    name=_full_day_window_name(index, count, start),
                    day=day,
                    start=start,
                    end=start + length,
                    purpose=purpose,
                    flexibility=FLEXIBILITY_BY_PURPOSE[purpose],
                    target=target,
                )
            )
        _logger.info(
            "Planned full day",
            extra={"day": day.isoformat(), "windows": count},
        )
        return split_all_at_midnight(windows)

    def plan_partial_day(self, now: datetime, profile: UserProfile) -> PartialDayPlan:
        """Plan the remainder of the day that contains ``now``."""
        zone = now.tzinfo or self.timezone
        wake_time = self._wake_time(profile)
        sleep_time = self._sleep_time(profile)
        bedtime = datetime.combine(now.date(), sleep_time, tzinfo=zone)
        if bedtime <= now:
            bedtime += timedelta(days=1)
        buffer = bedtime - BEDTIME_BUFFER
        remaining_hours = max(0.0, _hours_between(now, buffer))
        total_waking_hours = abs(
            _hours_between(
                datetime.combine(now.date(), wake_time, tzinfo=zone),
                datetime.combine(now.date(), sleep_time, tzinfo=zone),
            )
        )
        show_tomorrow = (
            now.hour >= PARTIAL_DAY_CUTOFF_HOUR
            or remaining_hours < MIN_PARTIAL_DAY_HOURS
        )
        factor = remaining_hours / total_waking_hours if total_waking_hours else 1.0
        daily = profile.daily_targets
        pro_rated = MacroTotals(
            calories=round(daily.calories * factor),
            protein=round(daily.protein * factor),
            carbs=round(daily.carbs * factor),
            fat=round(daily.fat * factor),
        )
        count = 0 if show_tomorrow else partial_window_count(remaining_hours)
        if count == 0:
            _logger.info(
                "Deferring plan to tomorrow",
                extra={"remaining_hours": round(remaining_hours, 2)},
            )
            return PartialDayPlan(
                now=now,
                bedtime=bedtime,
                bedtime_buffer=buffer,
                remaining_hours=remaining_hours,
                total_waking_hours=total_waking_hours,
                show_tomorrow_plan=True,
                factor=factor,
                pro_rated=pro_rated,
                number_of_windows=0,
            )

        purposes = partial_day_purposes(count, now.hour)
        allocations = allocate_targets(pro_rated, purposes)
        duration = max(
            timedelta(hours=1), timedelta(hours=remaining_hours / (count + 1))
        )
        spacing = max(timedelta(hours=2), duration * 0.5)
        start = now + timedelta(minutes=30)
        windows: list[MealWindow] = []
        for index, (purpose, target) in enumerate(
            zip(purposes, allocations, strict=True)
        ):
            windows.append(
                MealWindow(
                    name=_partial_day_window_name(index, count, start),
                    day=now.date(),
                    start=start,
                    end=start + duration,
                    purpose=purpose,
                    flexibility=FLEXIBILITY_BY_PURPOSE[purpose],
                    target=target,
                )
            )
            start = start + duration + spacing
        return PartialDayPlan(
            now=now,
            bedtime=bedtime,
            bedtime_buffer=buffer,
            remaining_hours=remaining_hours,
            total_waking_hours=total_waking_hours,
            show_tomorrow_plan=False,
            factor=factor,
            pro_rated=pro_rated,
            number_of_windows=count,
            purposes=tuple(purposes),
            windows=split_all_at_midnight(windows),
        )

    def _wake_time(self, profile: UserProfile) -> time:
        return profile.wake_time or self.default_wake_time

    def _sleep_time(self, profile: UserProfile) -> time:
        return profile.sleep_time or self.default_sleep_time


def plan_budget(daily: MacroTotals, check_in: DailyCheckIn | None) -> MacroTotals:
    """Return the daily targets minus already-eaten quick meals, floored at 0."""
    if check_in is None:
        return daily
    eaten = MacroTotals()
    for meal in check_in.quick_meals:
        eaten = eaten + meal.macros
    return (daily - eaten).floored()


def partial_window_count(remaining_hours: float) -> int:
    if remaining_hours >= 6:
        return 3
    if remaining_hours >= 4:
        return 2
    if remaining_hours >= 2:
        return 1
    return 0


def partial_day_purposes(count: int, hour: int) -> list[WindowPurpose]:
    """Return the purposes for a partial day by window count and hour of day."""
    se = WindowPurpose.SUSTAINED_ENERGY
    mb = WindowPurpose.METABOLIC_BOOST
    rec = WindowPurpose.RECOVERY
    so = WindowPurpose.SLEEP_OPTIMIZED
    if count == 3:
        return [se, mb, rec] if hour < 12 else [mb, se, so]
    if count == 2:
        return [se, rec] if hour < 16 else [se, so]
    if count == 1:
        return [se] if hour < 18 else [so]
    return []


def calorie_weight(purpose: WindowPurpose) -> float:
    return CALORIE_WEIGHTS.get(purpose, _OTHER_CALORIE_WEIGHT)


def apportion(total: int, weights: Sequence[float]) -> list[int]:
    """Split ``total`` into integers proportional to ``weights``.

    Shares are derived from rounded cumulative sums, so they always add up to
    ``total`` exactly and share the sign of ``total``.
    """
    if not weights:
        return []
    weight_sum = sum(weights)
    if weight_sum <= 0:
        weights = [1.0] * len(weights)
        weight_sum = float(len(weights))
    shares: list[int] = []
    running = 0.0
    previous = 0
    for weight in weights:
        running += weight
        current = round(total * running / weight_sum)
        shares.append(current - previous)
        previous = current
    shares[-1] += total - previous
    return shares


def allocate_targets(
    budget: MacroTotals, purposes: Sequence[WindowPurpose]
) -> list[MacroTotals]:
    """Allocate a calorie and macro budget across windows by purpose.

    Calories follow the purpose calorie weights. Each macro column follows the
    purpose macro ratios applied to the window's calories, rescaled so the
    column sums to the budget.
    """
    calories = apportion(budget.calories, [calorie_weight(p) for p in purposes])
    pairs = list(zip(calories, [MACRO_RATIOS[p] for p in purposes], strict=True))
    protein_raw = [kcal * ratio.protein / 4 for kcal, ratio in pairs]
    carbs_raw = [kcal * ratio.carbs / 4 for kcal, ratio in pairs]
    fat_raw = [kcal * ratio.fat / 9 for kcal, ratio in pairs]
    if budget.calories <= 0:
        protein_raw = carbs_raw = fat_raw = [calorie_weight(p) for p in purposes]
    protein = apportion(budget.protein, protein_raw)
    carbs = apportion(budget.carbs, carbs_raw)
    fat = apportion(budget.fat, fat_raw)
    return [
        MacroTotals(calories=c, protein=p, carbs=cb, fat=f)
        for c, p, cb, f in zip(calories, protein, carbs, fat, strict=True)
    ]


def split_at_midnight(window: MealWindow) -> list[MealWindow]:
    """Split a window that crosses midnight into two windows at midnight.

    The earlier half receives the rounded share of each target by duration;
    the later half receives the remainder.
    """
    midnight = datetime.combine(
        window.start.date() + timedelta(days=1), time(0), tzinfo=window.start.tzinfo
    )
    if window.end <= midnight:
        return [window]
    fraction = (midnight - window.start) / (window.end - window.start)
    target = window.target
    before_target = MacroTotals(
        calories=round(target.calories * fraction),
        protein=round(target.protein * fraction),
        carbs=round(target.carbs * fraction),
        fat=round(target.fat * fraction),
    )
    before = MealWindow(
        name=f"{window.name} (Evening)",
        day=window.day,
        start=window.start,
        end=midnight,
        purpose=window.purpose,
        flexibility=window.flexibility,
        target=before_target,
    )
    after = MealWindow(
        name=f"{window.name} (Continued)",
        day=window.day,
        start=midnight,
        end=window.end,
        purpose=window.purpose,
        flexibility=window.flexibility,
        target=target - before_target,
    )
    return [before, *split_at_midnight(after)]


def split_all_at_midnight(windows: Sequence[MealWindow]) -> list[MealWindow]:
    split: list[MealWindow] = []
    for window in windows:
        split.extend(split_at_midnight(window))
    return split


def _hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def _full_day_window_name(index: int, count: int, start: datetime) -> str:
    hour = start.hour
    if index == 0:
        return "Breakfast" if hour < 11 else "Brunch"
    if index == count - 1:
        return "Dinner" if hour < 20 else "Evening Meal"
    if hour < 11:
        return "Morning Snack"
    if hour < 14:
        return "Lunch"
    if hour < 17:
        return "Afternoon Snack"
    return "Early Dinner"


def _partial_day_window_name(  # noqa: PLR0911
    index: int, count: int, start: datetime
) -> str:
    hour = start.hour
    if count == 1:
        if hour < 15:
            return "Lunch & Afternoon"
        return "Dinner" if hour < 18 else "Evening Meal"
    if index == 0:
        if hour < 12:
            return "Late Breakfast"
        if hour < 15:
            return "Lunch"
        return "Late Lunch" if hour < 17 else "Early Dinner"
    if index == 1:
        if count == 2:
            return "Dinner" if hour < 18 else "Evening Meal"
        if hour < 16:
            return "Afternoon Snack"
        return "Dinner" if hour < 19 else "Evening Meal"
    if index == 2:
        return "Evening Snack" if hour < 20 else "Light Evening Meal"
    return f"Meal {index + 1}"
