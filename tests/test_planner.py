"""Tests for full and partial day window planning."""

from datetime import UTC, datetime, time, timedelta

import pytest

from meal_windows.domain.profile import (
    DailyCheckIn,
    EnergyLevel,
    QuickMeal,
    UserProfile,
)
from meal_windows.domain.windows import Flexibility, MacroTotals, WindowPurpose
from meal_windows.services.planner import (
    WindowPlanner,
    allocate_targets,
    apportion,
    partial_window_count,
    split_at_midnight,
)
from tests.conftest import DAY, at, make_window


def _sum(windows, field_name: str) -> int:
    return sum(getattr(window.target, field_name) for window in windows)


def test_full_day_plan_sums_to_daily_targets(profile: UserProfile) -> None:
    windows = WindowPlanner().plan_full_day(DAY, profile)

    assert len(windows) == 4
    assert _sum(windows, "calories") == 2000
    assert _sum(windows, "protein") == 150
    assert _sum(windows, "carbs") == 200
    assert _sum(windows, "fat") == 70


def test_full_day_plan_layout(profile: UserProfile) -> None:
    windows = WindowPlanner().plan_full_day(DAY, profile)

    assert [window.start for window in windows] == [at(8), at(11), at(14), at(17)]
    assert all(window.end - window.start == timedelta(hours=2) for window in windows)
    assert [window.purpose for window in windows] == [
        WindowPurpose.METABOLIC_BOOST,
        WindowPurpose.SUSTAINED_ENERGY,
        WindowPurpose.RECOVERY,
        WindowPurpose.SLEEP_OPTIMIZED,
    ]
    assert [window.name for window in windows] == [
        "Breakfast",
        "Lunch",
        "Afternoon Snack",
        "Dinner",
    ]
    assert [window.target.calories for window in windows] == [545, 637, 454, 364]
    assert windows[1].flexibility is Flexibility.MODERATE
    assert windows[2].flexibility is Flexibility.FLEXIBLE


def test_full_day_plan_marks_workout_windows(profile: UserProfile) -> None:
    check_in = DailyCheckIn(workout_time=at(15))

    windows = WindowPlanner().plan_full_day(DAY, profile, check_in)

    assert [window.purpose for window in windows] == [
        WindowPurpose.METABOLIC_BOOST,
        WindowPurpose.SUSTAINED_ENERGY,
        WindowPurpose.PRE_WORKOUT,
        WindowPurpose.POST_WORKOUT,
    ]
    assert windows[2].flexibility is Flexibility.STRICT


def test_full_day_plan_subtracts_quick_meals(profile: UserProfile) -> None:
    check_in = DailyCheckIn(
        quick_meals=(
            QuickMeal(
                name="Coffee and toast",
                macros=MacroTotals(calories=300, protein=10, carbs=40, fat=10),
            ),
        ),
        energy_level=EnergyLevel.LOW,
    )

    windows = WindowPlanner().plan_full_day(DAY, profile, check_in)

    assert windows[0].start == at(7, 30)
    assert _sum(windows, "calories") == 1700
    assert _sum(windows, "protein") == 140


def test_full_day_plan_reduces_count_for_short_days() -> None:
    profile = UserProfile(
        daily_targets=MacroTotals(calories=1800, protein=120, carbs=180, fat=60),
        wake_time=time(10, 0),
        sleep_time=time(20, 0),
        preferred_window_count=6,
    )

    windows = WindowPlanner().plan_full_day(DAY, profile)

    assert len(windows) == 3
    assert _sum(windows, "calories") == 1800


def test_full_day_plan_uses_planner_defaults_without_profile_times() -> None:
    profile = UserProfile(
        daily_targets=MacroTotals(calories=2000, protein=150, carbs=200, fat=70)
    )

    windows = WindowPlanner(default_wake_time=time(6, 0)).plan_full_day(DAY, profile)

    assert windows[0].start == at(7)


def test_partial_day_plan_pro_rates_targets(profile: UserProfile) -> None:
    plan = WindowPlanner().plan_partial_day(at(10), profile)

    assert plan.show_tomorrow_plan is False
    assert plan.remaining_hours == pytest.approx(10.0)
    assert plan.total_waking_hours == pytest.approx(16.0)
    assert plan.factor == pytest.approx(0.625)
    assert plan.pro_rated == MacroTotals(calories=1250, protein=94, carbs=125, fat=44)
    assert plan.number_of_windows == 3
    assert plan.purposes == (
        WindowPurpose.SUSTAINED_ENERGY,
        WindowPurpose.METABOLIC_BOOST,
        WindowPurpose.RECOVERY,
    )
    assert [window.start for window in plan.windows] == [
        at(10, 30),
        at(15),
        at(19, 30),
    ]
    assert [window.name for window in plan.windows] == [
        "Late Breakfast",
        "Afternoon Snack",
        "Evening Snack",
    ]
    assert _sum(plan.windows, "calories") == 1250


def test_partial_day_plan_after_cutoff_defers_to_tomorrow(
    profile: UserProfile,
) -> None:
    plan = WindowPlanner().plan_partial_day(at(21), profile)

    assert plan.show_tomorrow_plan is True
    assert plan.number_of_windows == 0
    assert plan.windows == []


def test_partial_day_plan_with_little_time_left_defers(profile: UserProfile) -> None:
    plan = WindowPlanner().plan_partial_day(at(18, 30), profile)

    assert plan.remaining_hours == pytest.approx(1.5)
    assert plan.show_tomorrow_plan is True
    assert plan.windows == []


def test_partial_day_single_evening_window(profile: UserProfile) -> None:
    plan = WindowPlanner().plan_partial_day(at(17), profile)

    assert plan.number_of_windows == 1
    assert plan.purposes == (WindowPurpose.SUSTAINED_ENERGY,)
    assert plan.windows[0].name == "Dinner"


def test_partial_window_count_thresholds() -> None:
    assert partial_window_count(7) == 3
    assert partial_window_count(6) == 3
    assert partial_window_count(5) == 2
    assert partial_window_count(2) == 1
    assert partial_window_count(1.9) == 0


def test_apportion_preserves_total_and_sign() -> None:
    assert apportion(-200, [600, 400]) == [-120, -80]
    assert sum(apportion(1000, [1, 1, 1])) == 1000
    assert apportion(10, [0, 0]) == [5, 5]
    assert apportion(5, []) == []
    assert all(share >= 0 for share in apportion(7, [0.35, 0.3, 0.25, 0.2]))


def test_allocate_targets_with_zero_budget() -> None:
    targets = allocate_targets(
        MacroTotals(calories=0, protein=20, carbs=0, fat=0),
        [WindowPurpose.METABOLIC_BOOST, WindowPurpose.SLEEP_OPTIMIZED],
    )

    assert sum(target.calories for target in targets) == 0
    assert sum(target.protein for target in targets) == 20


def test_split_at_midnight_conserves_targets() -> None:
    window = make_window(
        at(23),
        at(1, day=DAY + timedelta(days=1)),
        calories=601,
        protein=41,
        carbs=60,
        fat=21,
        name="Dinner",
    )

    before, after = split_at_midnight(window)

    midnight = datetime.combine(DAY + timedelta(days=1), time(0), tzinfo=UTC)
    assert before.end == midnight
    assert after.start == midnight
    assert before.name == "Dinner (Evening)"
    assert after.name == "Dinner (Continued)"
    assert before.target + after.target == window.target
    assert before.day == after.day == DAY


def test_split_at_midnight_leaves_same_day_window() -> None:
    window = make_window(at(20), at(22))

    assert split_at_midnight(window) == [window]


def test_full_day_plan_splits_late_windows() -> None:
    profile = UserProfile(
        daily_targets=MacroTotals(calories=2200, protein=160, carbs=220, fat=80),
        wake_time=time(14, 0),
        sleep_time=time(6, 0),
        preferred_window_count=3,
    )

    windows = WindowPlanner().plan_full_day(DAY, profile)

    assert len(windows) > 3
    assert any(window.name.endswith("(Continued)") for window in windows)
    assert _sum(windows, "calories") == 2200
