"""Per-day plan ownership, meal logging and derived reads."""

import copy
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime, timedelta
from typing import Protocol
from uuid import UUID

from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.nutrients import NutritionContext, Sex
from meal_windows.domain.profile import DailyCheckIn, UserProfile
from meal_windows.domain.scores import DailyScore
from meal_windows.domain.windows import MealWindow
from meal_windows.services.micronutrients import (
    MicronutrientImpact,
    MicronutrientImpactModel,
)
from meal_windows.services.planner import PartialDayPlan, WindowPlanner
from meal_windows.services.redistribution import (
    RedistributionEngine,
    RedistributionResult,
)
from meal_windows.services.scoring import ScoringEngine
from meal_windows.services.window_state import (
    WindowState,
    classify_day,
    hours_late,
    time_remaining,
)

_logger = logging.getLogger(__name__)


class DayPersistenceError(RuntimeError):
    """Saving a day plan failed; in-memory state has already been updated."""


class DayNotFoundError(LookupError):
    """No plan exists for the requested user and day."""


class UnknownWindowError(ValueError):
    """A meal referenced a window that is not part of the day's plan."""


@dataclass
class DayPlan:
    """The window set and meals of one user's day."""

    user_id: UUID
    day: date
    windows: list[MealWindow] = field(default_factory=list)
    meals: list[LoggedMeal] = field(default_factory=list)
    generation: int = 1

    def window(self, window_id: UUID) -> MealWindow | None:
        return next((w for w in self.windows if w.id == window_id), None)


class DayPlanRepository(Protocol):
    """Persistence interface for day plans."""

    def get_day(self, user_id: UUID, day: date) -> DayPlan | None:
        """Return the stored plan for a user's day, if present."""

    def save_day(self, plan: DayPlan) -> None:
        """Replace the stored windows and meals of a user's day."""


@dataclass(frozen=True)
class WindowStatus:
    """A window with its lifecycle state at a point in time."""

    window: MealWindow
    state: WindowState
    time_remaining: timedelta | None = None
    hours_late: float | None = None


@dataclass
class DayPlanService:
    """Owns every day plan and serializes writes per user and day."""

    planner: WindowPlanner
    redistribution_engine: RedistributionEngine
    scoring_engine: ScoringEngine
    micronutrient_model: MicronutrientImpactModel
    repository: DayPlanRepository
    _plans: dict[tuple[UUID, date], DayPlan] = field(default_factory=dict, init=False)
    _locks: dict[tuple[UUID, date], threading.Lock] = field(
        default_factory=dict, init=False
    )
    _guard: threading.Lock = field(default_factory=threading.Lock, init=False)

    def generate_full_day(
        self,
        user_id: UUID,
        day: date,
        profile: UserProfile,
        check_in: DailyCheckIn | None = None,
        now: datetime | None = None,
    ) -> DayPlan:
        """Plan a full day, superseding any existing plan for it."""
        windows = self.planner.plan_full_day(day, profile, check_in)
        return self._replace_windows(user_id, day, windows, now)

    def start_first_day(
        self, user_id: UUID, profile: UserProfile, now: datetime | None = None
    ) -> tuple[PartialDayPlan, DayPlan]:
        """Plan the rest of today, or tomorrow when too little of today remains."""
        resolved_now = now or datetime.now(tz=UTC)
        partial = self.planner.plan_partial_day(resolved_now, profile)
        if partial.windows:
            plan = self._replace_windows(
                user_id, resolved_now.date(), partial.windows, resolved_now
            )
            return partial, plan
        tomorrow = resolved_now.date() + timedelta(days=1)
        _logger.info(
            "Falling back to tomorrow's plan",
            extra={"user_id": str(user_id), "day": tomorrow.isoformat()},
        )
        plan = self.generate_full_day(user_id, tomorrow, profile, now=resolved_now)
        return partial, plan

    def log_meal(
        self,
        user_id: UUID,
        day: date,
        meal: LoggedMeal,
        now: datetime | None = None,
    ) -> RedistributionResult:
        """Record a meal, then recompute consumption and redistribution.

        Logging the same meal id again replaces the earlier entry.
        """
        resolved_now = now or datetime.now(tz=UTC)
        with self._lock_for(user_id, day):
            plan = self._load(user_id, day)
            if meal.window_id is not None and plan.window(meal.window_id) is None:
                raise UnknownWindowError(f"Unknown window {meal.window_id}")
            plan.meals = [entry for entry in plan.meals if entry.id != meal.id]
            plan.meals.append(meal)
            result = self.redistribution_engine.redistribute(
                plan.windows, plan.meals, resolved_now
            )
            self._save(plan)
        return result

    def refresh(
        self, user_id: UUID, day: date, now: datetime | None = None
    ) -> RedistributionResult:
        """Recompute redistribution for the current time, e.g. after windows close."""
        resolved_now = now or datetime.now(tz=UTC)
        with self._lock_for(user_id, day):
            plan = self._load(user_id, day)
            result = self.redistribution_engine.redistribute(
                plan.windows, plan.meals, resolved_now
            )
            self._save(plan)
        return result

    def snapshot(self, user_id: UUID, day: date) -> DayPlan:
        """Return a detached copy of a day plan."""
        with self._lock_for(user_id, day):
            return copy.deepcopy(self._load(user_id, day))

    def window_states(
        self, user_id: UUID, day: date, now: datetime | None = None
    ) -> list[WindowStatus]:
        """Return the ordered windows of a day with their lifecycle states."""
        resolved_now = now or datetime.now(tz=UTC)
        plan = self.snapshot(user_id, day)
        ordered = sorted(plan.windows, key=lambda window: window.start)
        states = classify_day(resolved_now, ordered, plan.meals)
        return [
            WindowStatus(
                window=window,
                state=states[window.id],
                time_remaining=time_remaining(resolved_now, window),
                hours_late=hours_late(resolved_now, window),
            )
            for window in ordered
        ]

    def score_day(
        self, user_id: UUID, day: date, now: datetime | None = None
    ) -> DailyScore:
        plan = self.snapshot(user_id, day)
        return self.scoring_engine.score_day(day, plan.windows, plan.meals, now)

    def micronutrient_impact(
        self,
        user_id: UUID,
        day: date,
        contexts: Iterable[NutritionContext] | None = None,
        sex: Sex | None = None,
    ) -> MicronutrientImpact:
        plan = self.snapshot(user_id, day)
        return self.micronutrient_model.evaluate_meals(plan.meals, contexts, sex)

    def _replace_windows(
        self,
        user_id: UUID,
        day: date,
        windows: list[MealWindow],
        now: datetime | None,
    ) -> DayPlan:
        resolved_now = now or datetime.now(tz=UTC)
        with self._lock_for(user_id, day):
            existing = self._plans.get((user_id, day)) or self.repository.get_day(
                user_id, day
            )
            if existing is None:
                plan = DayPlan(user_id=user_id, day=day, windows=windows)
            else:
                plan = DayPlan(
                    user_id=user_id,
                    day=day,
                    windows=windows,
                    meals=[_detach(meal) for meal in existing.meals],
                    generation=existing.generation + 1,
                )
            self.redistribution_engine.redistribute(
                plan.windows, plan.meals, resolved_now
            )
            self._plans[(user_id, day)] = plan
            _logger.info(
                "Stored day plan",
                extra={
                    "user_id": str(user_id),
                    "day": day.isoformat(),
                    "generation": plan.generation,
                    "windows": len(plan.windows),
                },
            )
            self._save(plan)
            return copy.deepcopy(plan)

    def _lock_for(self, user_id: UUID, day: date) -> threading.Lock:
        with self._guard:
            return self._locks.setdefault((user_id, day), threading.Lock())

    def _load(self, user_id: UUID, day: date) -> DayPlan:
        key = (user_id, day)
        plan = self._plans.get(key)
        if plan is None:
            plan = self.repository.get_day(user_id, day)
            if plan is None:
                raise DayNotFoundError(f"No plan for {day.isoformat()}")
            self._plans[key] = plan
        return plan

    def _save(self, plan: DayPlan) -> None:
        try:
            self.repository.save_day(plan)
        except Exception as exc:
            _logger.exception(
                "Failed to persist day plan",
                extra={"user_id": str(plan.user_id), "day": plan.day.isoformat()},
            )
            raise DayPersistenceError("Failed to persist day plan") from exc


def _detach(meal: LoggedMeal) -> LoggedMeal:
    if meal.window_id is None:
        return meal
    return replace(meal, window_id=None)
