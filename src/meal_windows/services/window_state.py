"""Lifecycle classification of meal windows."""

from collections.abc import Sequence
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID

from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.windows import MealWindow

LATE_GRACE = timedelta(hours=2)


class WindowState(StrEnum):
    """Lifecycle state of a window at a point in time."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    LATE_BUT_DOABLE = "late_but_doable"
    COMPLETED = "completed"
    MISSED = "missed"

    @property
    def is_terminal(self) -> bool:
        return self in {WindowState.COMPLETED, WindowState.MISSED}


def has_meals(window: MealWindow, meals: Sequence[LoggedMeal]) -> bool:
    return any(meal.window_id == window.id for meal in meals)


def classify_window(
    now: datetime,
    window: MealWindow,
    meals: Sequence[LoggedMeal],
    next_window: MealWindow | None = None,
) -> WindowState:
    """Classify a window given the meals assigned to it and the following window."""
    if now < window.start:
        return WindowState.UPCOMING
    if now <= window.end:
        return WindowState.ACTIVE
    if has_meals(window, meals):
        return WindowState.COMPLETED
    if next_window is not None:
        if now < next_window.start:
            return WindowState.LATE_BUT_DOABLE
    elif now - window.end < LATE_GRACE:
        return WindowState.LATE_BUT_DOABLE
    return WindowState.MISSED


def classify_day(
    now: datetime,
    windows: Sequence[MealWindow],
    meals: Sequence[LoggedMeal],
) -> dict[UUID, WindowState]:
    """Classify every window of a day by id."""
    ordered = sorted(windows, key=lambda window: window.start)
    states: dict[UUID, WindowState] = {}
    for index, window in enumerate(ordered):
        next_window = ordered[index + 1] if index + 1 < len(ordered) else None
        states[window.id] = classify_window(now, window, meals, next_window)
    return states


def time_remaining(now: datetime, window: MealWindow) -> timedelta | None:
    """Return the time left in an active window, or None when not active."""
    if window.start <= now <= window.end:
        return window.end - now
    return None


def hours_late(now: datetime, window: MealWindow) -> float | None:
    """Return hours elapsed since the window ended, or None before it ends."""
    if now <= window.end:
        return None
    return (now - window.end).total_seconds() / 3600
