"""Tests for Supabase adapter implementations."""

from dataclasses import dataclass, field
from uuid import uuid4

import pytest

from meal_windows.adapters.supabase_day_repository import SupabaseDayRepository
from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.scores import HealthScore
from meal_windows.domain.windows import MacroTotals, Overconsumption, WindowPurpose
from meal_windows.services.days import DayPlan
from tests.conftest import DAY, at, make_window


@dataclass
class FakeResponse:
    data: list[dict[str, object]] | None


@dataclass
class FakeTable:
    name: str
    response_queue: dict[str, list[list[dict[str, object]]]] = field(
        default_factory=lambda: {"select": [], "upsert": [], "delete": []}
    )
    last_payload: object | None = None
    last_filters: list[tuple[str, object]] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)

    def queue(self, action: str, data: list[dict[str, object]]) -> None:
        self.response_queue[action].append(data)

    def select(self, *_args) -> "FakeTable":
        self._action = "select"
        return self

    def upsert(self, payload: object, on_conflict: str = "") -> "FakeTable":
        self._action = "upsert"
        self.last_payload = payload
        self.last_filters.append(("on_conflict", on_conflict))
        return self

    def delete(self) -> "FakeTable":
        self._action = "delete"
        return self

    def eq(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        self.last_filters.append((column, value))
        return self

    @property
    def not_(self) -> "FakeTable":
        self._negate = True
        return self

    def in_(self, column: str, value) -> "FakeTable":  # type: ignore[no-untyped-def]
        operator = "not.in" if getattr(self, "_negate", False) else "in"
        self._negate = False
        self.last_filters.append((f"{column} {operator}", list(value)))
        return self

    def order(self, _column: str, desc: bool = False) -> "FakeTable":
        return self

    def execute(self) -> FakeResponse:
        action = getattr(self, "_action", "select")
        self.actions.append(action)
        queue = self.response_queue.get(action, [])
        data = queue.pop(0) if queue else []
        return FakeResponse(data=data)


@dataclass
class FakeSupabaseClient:
    tables: dict[str, FakeTable] = field(default_factory=dict)

    def table(self, name: str) -> FakeTable:
        if name not in self.tables:
            self.tables[name] = FakeTable(name=name)
        return self.tables[name]


def _window_row(window_id: str, **overrides: object) -> dict[str, object]:
    row: dict[str, object] = {
        "id": window_id,
        "user_id": str(uuid4()),
        "day": DAY.isoformat(),
        "name": "Lunch",
        "start_at": at(12).isoformat(),
        "end_at": at(14).isoformat(),
        "purpose": "sustained-energy",
        "flexibility": "moderate",
        "target_calories": 600,
        "target_protein": 40,
        "target_carbs": 60,
        "target_fat": 20,
        "adjusted_calories": 480,
        "adjusted_protein": 40,
        "adjusted_carbs": 60,
        "adjusted_fat": 20,
        "redistribution_reason": {"type": "overconsumption", "percent": 150},
        "consumed_calories": 0,
        "consumed_protein": 0,
        "consumed_carbs": 0,
        "consumed_fat": 0,
        "is_marked_as_fasted": False,
        "generation": 3,
    }
    row.update(overrides)
    return row


def test_supabase_day_repository_get_day() -> None:
    client = FakeSupabaseClient()
    window_id = str(uuid4())
    client.table("meal_windows").queue(
        "select",
        [
            _window_row(window_id),
            _window_row(str(uuid4()), start_at=None),
            _window_row(str(uuid4()), purpose="brunch"),
        ],
    )
    client.table("logged_meals").queue(
        "select",
        [
            {
                "id": str(uuid4()),
                "window_id": window_id,
                "logged_at": at(12, 30).isoformat(),
                "name": "Salad",
                "calories": 450.4,
                "protein": "35",
                "carbs": 40,
                "fat": 15,
                "micronutrients": {"Vitamin C": 30},
                "health_score": {"score": 78, "factors": [], "insight": "Fresh"},
            },
            {"id": None, "logged_at": at(13).isoformat()},
        ],
    )

    plan = SupabaseDayRepository(client).get_day(uuid4(), DAY)

    assert plan is not None
    assert plan.generation == 3
    assert len(plan.windows) == 1
    window = plan.windows[0]
    assert window.purpose is WindowPurpose.SUSTAINED_ENERGY
    assert window.effective_calories == 480
    assert window.redistribution_reason == Overconsumption(percent=150)
    assert len(plan.meals) == 1
    meal = plan.meals[0]
    assert meal.calories == 450
    assert meal.protein == 35
    assert meal.health_score is not None
    assert meal.health_score.score == 78
    assert meal.micronutrients == {"Vitamin C": 30.0}


def test_supabase_day_repository_missing_day() -> None:
    client = FakeSupabaseClient()

    assert SupabaseDayRepository(client).get_day(uuid4(), DAY) is None
    assert "logged_meals" not in client.tables


def test_supabase_day_repository_save_day() -> None:
    client = FakeSupabaseClient()
    windows_table = client.table("meal_windows")
    meals_table = client.table("logged_meals")
    windows_table.queue("upsert", [{"id": "stored"}])
    meals_table.queue("upsert", [{"id": "stored"}])
    window = make_window(at(12), at(14))
    window.adjusted = MacroTotals(calories=480, protein=30, carbs=50, fat=20)
    window.redistribution_reason = Overconsumption(percent=150)
    meal = LoggedMeal(
        timestamp=at(12, 30),
        calories=450,
        protein=35,
        carbs=40,
        fat=15,
        window_id=window.id,
        health_score=HealthScore(score=70),
    )
    plan = DayPlan(
        user_id=uuid4(), day=DAY, windows=[window], meals=[meal], generation=2
    )

    SupabaseDayRepository(client).save_day(plan)

    assert windows_table.actions == ["upsert", "delete"]
    assert meals_table.actions == ["upsert", "delete"]
    assert ("on_conflict", "id") in windows_table.last_filters
    assert ("id not.in", [str(window.id)]) in windows_table.last_filters
    assert ("id not.in", [str(meal.id)]) in meals_table.last_filters
    window_rows = windows_table.last_payload
    assert isinstance(window_rows, list)
    assert window_rows[0]["adjusted_calories"] == 480
    assert window_rows[0]["redistribution_reason"] == {
        "type": "overconsumption",
        "percent": 150,
    }
    assert window_rows[0]["generation"] == 2
    meal_rows = meals_table.last_payload
    assert isinstance(meal_rows, list)
    assert meal_rows[0]["window_id"] == str(window.id)
    assert meal_rows[0]["health_score"] == {
        "score": 70,
        "factors": [],
        "insight": None,
    }


def test_supabase_day_repository_failed_upsert_keeps_stored_rows() -> None:
    client = FakeSupabaseClient()
    plan = DayPlan(user_id=uuid4(), day=DAY, windows=[make_window(at(12), at(14))])

    with pytest.raises(RuntimeError):
        SupabaseDayRepository(client).save_day(plan)

    assert client.tables["meal_windows"].actions == ["upsert"]
    assert "logged_meals" not in client.tables


def test_supabase_day_repository_save_empty_plan_clears_day() -> None:
    client = FakeSupabaseClient()
    plan = DayPlan(user_id=uuid4(), day=DAY)

    SupabaseDayRepository(client).save_day(plan)

    windows_table = client.tables["meal_windows"]
    assert windows_table.actions == ["delete"]
    assert ("day", DAY.isoformat()) in windows_table.last_filters
    assert not any(name.endswith("not.in") for name, _ in windows_table.last_filters)
    assert client.tables["logged_meals"].actions == ["delete"]
