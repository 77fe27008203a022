"""Shared test fixtures."""

import copy
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, time
from uuid import UUID

import pytest

from meal_windows.config import Settings
from meal_windows.containers import AppContainer, build_day_service
from meal_windows.domain.profile import UserProfile
from meal_windows.domain.windows import (
    Flexibility,
    MacroTotals,
    MealWindow,
    WindowPurpose,
)
from meal_windows.services.catalog import (
    DEFAULT_CATALOG,
    InMemoryUnmatchedNutrientLog,
)
from meal_windows.services.days import DayPlan, DayPlanRepository, DayPlanService

DAY = date(2024, 3, 4)


@dataclass
class InMemoryDayPlanRepository(DayPlanRepository):
    """In-memory day plan repository for tests."""

    plans: dict[tuple[UUID, date], DayPlan] = field(default_factory=dict)
    saves: int = 0

    def get_day(self, user_id: UUID, day: date) -> DayPlan | None:
        plan = self.plans.get((user_id, day))
        return copy.deepcopy(plan) if plan else None

    def save_day(self, plan: DayPlan) -> None:
        self.saves += 1
        self.plans[(plan.user_id, plan.day)] = copy.deepcopy(plan)


@dataclass
class FailingDayPlanRepository(DayPlanRepository):
    """Repository whose writes always fail."""

    def get_day(self, user_id: UUID, day: date) -> DayPlan | None:
        return None

    def save_day(self, plan: DayPlan) -> None:
        raise RuntimeError("database unavailable")


def at(hour: int, minute: int = 0, day: date = DAY) -> datetime:
    return datetime.combine(day, time(hour, minute), tzinfo=UTC)


def make_window(  # noqa: PLR0913
    start: datetime,
    end: datetime,
    calories: int = 500,
    protein: int = 30,
    carbs: int = 50,
    fat: int = 20,
    purpose: WindowPurpose = WindowPurpose.SUSTAINED_ENERGY,
    name: str = "Window",
) -> MealWindow:
    return MealWindow(
        name=name,
        day=start.date(),
        start=start,
        end=end,
        purpose=purpose,
        flexibility=Flexibility.MODERATE,
        target=MacroTotals(calories=calories, protein=protein, carbs=carbs, fat=fat),
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="service-key",
        admin_token="admin-token",
    )


@pytest.fixture
def profile() -> UserProfile:
    return UserProfile(
        daily_targets=MacroTotals(calories=2000, protein=150, carbs=200, fat=70),
        wake_time=time(7, 0),
        sleep_time=time(23, 0),
    )


@pytest.fixture
def day_repository() -> InMemoryDayPlanRepository:
    return InMemoryDayPlanRepository()


@pytest.fixture
def day_service(
    settings: Settings, day_repository: InMemoryDayPlanRepository
) -> DayPlanService:
    return build_day_service(
        settings, day_repository, DEFAULT_CATALOG, InMemoryUnmatchedNutrientLog()
    )


@pytest.fixture
def container(settings: Settings, day_service: DayPlanService) -> AppContainer:
    unmatched_log = day_service.micronutrient_model.unmatched_log
    assert unmatched_log is not None
    return AppContainer(
        settings=settings,
        catalog=DEFAULT_CATALOG,
        unmatched_log=unmatched_log,
        day_service=day_service,
    )
