"""Reallocation of macro budget from closed windows to later windows."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from meal_windows.domain.meals import LoggedMeal, meals_for_window, sum_macros
from meal_windows.domain.windows import (
    EarlyConsumption,
    LateConsumption,
    MacroTotals,
    MealWindow,
    MissedWindow,
    Overconsumption,
    RedistributionReason,
    Underconsumption,
)
from meal_windows.services.planner import apportion
from meal_windows.services.window_state import (
    WindowState,
    classify_day,
    has_meals,
)

_logger = logging.getLogger(__name__)

OVERCONSUMPTION_PERCENT = 120
UNDERCONSUMPTION_PERCENT = 80
TIP_DEVIATION_PERCENT = 50


@dataclass(frozen=True)
class AdjustedWindow:
    """Original versus adjusted targets of a window after redistribution."""

    window_id: UUID
    original: MacroTotals
    adjusted: MacroTotals
    reason: RedistributionReason

    @property
    def adjustment_ratio(self) -> float:
        if self.original.calories <= 0:
            return 1.0
        return self.adjusted.calories / self.original.calories

    @property
    def description(self) -> str:
        change = round(abs(self.adjustment_ratio - 1.0) * 100)
        if isinstance(self.reason, Overconsumption):
            return f"Reduced by {change}% due to earlier overconsumption"
        if isinstance(self.reason, Underconsumption):
            return f"Increased by {change}% to compensate for earlier deficit"
        if isinstance(self.reason, MissedWindow):
            return f"Increased by {change}% to account for missed window"
        return f"Adjusted by {change}%"


@dataclass(frozen=True)
class RedistributionResult:
    """Outcome of a full redistribution pass over a day."""

    adjusted_windows: tuple[AdjustedWindow, ...]
    explanation: str
    educational_tip: str | None
    trigger: RedistributionReason | None
    total_redistributed: MacroTotals


@dataclass
class RedistributionEngine:
    """Recomputes every window adjustment of a day from its consumption history."""

    floor: int = 0

    def classify(
        self,
        window: MealWindow,
        meals: Sequence[LoggedMeal],
        state: WindowState,
    ) -> RedistributionReason | None:
        """Return why a window should trigger redistribution, if it should."""
        window_meals = meals_for_window(list(meals), window.id)
        percent = consumption_percent(window)
        if percent > OVERCONSUMPTION_PERCENT:
            return Overconsumption(percent=round(percent))
        if state is WindowState.COMPLETED and percent < UNDERCONSUMPTION_PERCENT:
            return Underconsumption(percent=round(percent))
        if state is WindowState.MISSED and not window_meals:
            return MissedWindow()
        if window_meals:
            first = window_meals[0].timestamp
            if first > window.end:
                return LateConsumption()
            if first < window.start:
                return EarlyConsumption()
        return None

    def redistribute(
        self,
        windows: Sequence[MealWindow],
        meals: Sequence[LoggedMeal],
        now: datetime,
    ) -> RedistributionResult:
        """Clear and recompute adjustments for every window of a day.

        Consumed totals are first rebuilt from the meals assigned to each window.

        Closed windows (completed, missed, or with a first meal outside their
        bounds) are walked in start order. Each one with a reason spreads the
        negated difference between its consumption and its current effective
        target over the windows that have not started by ``now`` and have no
        meals yet, proportionally to their original targets and floored at
        ``floor``.
        """
        for window in windows:
            window.adjusted = None
            window.redistribution_reason = None
        apply_consumption(windows, meals)
        ordered = sorted(windows, key=lambda window: window.start)
        states = classify_day(now, ordered, meals)
        trigger: RedistributionReason | None = None

        for source in ordered:
            if source.is_marked_as_fasted:
                continue
            state = states[source.id]
            if not state.is_terminal and not _first_meal_out_of_bounds(source, meals):
                continue
            reason = self.classify(source, meals, state)
            if reason is None:
                continue
            receivers = [
                window
                for window in ordered
                if window is not source
                and window.start > now
                and not window.is_marked_as_fasted
                and not has_meals(window, meals)
            ]
            if not receivers:
                _logger.info(
                    "No later windows to absorb redistribution",
                    extra={"window_id": str(source.id), "reason": reason.kind},
                )
                continue
            delta = source.consumed - source.effective()
            self._spread(receivers, delta, reason)
            trigger = reason

        adjusted = tuple(
            AdjustedWindow(
                window_id=window.id,
                original=window.target,
                adjusted=window.adjusted,
                reason=window.redistribution_reason,
            )
            for window in ordered
            if window.adjusted is not None and window.redistribution_reason is not None
        )
        total = MacroTotals()
        for entry in adjusted:
            total = total + (entry.adjusted - entry.original)
        return RedistributionResult(
            adjusted_windows=adjusted,
            explanation=explain(trigger, adjusted),
            educational_tip=educational_tip(trigger),
            trigger=trigger,
            total_redistributed=total,
        )

    def _spread(
        self,
        receivers: list[MealWindow],
        delta: MacroTotals,
        reason: RedistributionReason,
    ) -> None:
        calories = apportion(-delta.calories, [w.target.calories for w in receivers])
        protein = apportion(-delta.protein, [w.target.protein for w in receivers])
        carbs = apportion(-delta.carbs, [w.target.carbs for w in receivers])
        fat = apportion(-delta.fat, [w.target.fat for w in receivers])
        for index, window in enumerate(receivers):
            share = MacroTotals(
                calories=calories[index],
                protein=protein[index],
                carbs=carbs[index],
                fat=fat[index],
            )
            window.adjusted = (window.effective() + share).floored(self.floor)
            window.redistribution_reason = reason


def apply_consumption(
    windows: Sequence[MealWindow], meals: Sequence[LoggedMeal]
) -> None:
    """Set each window's consumed totals from the meals assigned to it."""
    for window in windows:
        window.consumed = sum_macros(meals_for_window(list(meals), window.id))


def consumption_percent(window: MealWindow) -> float:
    """Return consumed calories as a percentage of the effective target."""
    return window.consumed.calories / max(window.effective_calories, 1) * 100


def explain(
    trigger: RedistributionReason | None, adjusted: Sequence[AdjustedWindow]
) -> str:
    """Return the user-facing explanation for a redistribution pass."""
    if trigger is None or not adjusted:
        return "No adjustments were needed."
    change = sum(
        abs(entry.adjusted.calories - entry.original.calories) for entry in adjusted
    )
    if isinstance(trigger, Overconsumption):
        return (
            f"You ate {trigger.percent - 100}% more than planned. "
            f"I've reduced your upcoming meals by a total of {change} calories, "
            "with larger adjustments to your next window to help balance your day."
        )
    if isinstance(trigger, Underconsumption):
        return (
            f"You ate {100 - trigger.percent}% less than planned. "
            f"I've increased your upcoming meals by {change} calories "
            "to help you reach your daily goals."
        )
    if isinstance(trigger, MissedWindow):
        return (
            f"You missed a meal window. I've redistributed those {change} calories "
            "across your remaining meals for the day."
        )
    return (
        "I've adjusted your upcoming meal windows to better align with your "
        "consumption pattern."
    )


def educational_tip(trigger: RedistributionReason | None) -> str | None:
    if isinstance(trigger, Overconsumption):
        if trigger.percent - 100 > TIP_DEVIATION_PERCENT:
            return (
                "Try adding more protein and fiber to feel fuller "
                "with smaller portions."
            )
        return None
    if isinstance(trigger, Underconsumption):
        if 100 - trigger.percent > TIP_DEVIATION_PERCENT:
            return (
                "Consider setting meal reminders to help you stay on track "
                "with your nutrition timing."
            )
        return None
    if isinstance(trigger, MissedWindow):
        return "Preparing meals in advance can help you avoid missing eating windows."
    return None


def _first_meal_out_of_bounds(window: MealWindow, meals: Sequence[LoggedMeal]) -> bool:
    window_meals = meals_for_window(list(meals), window.id)
    return bool(window_meals) and not window.contains(window_meals[0].timestamp)
