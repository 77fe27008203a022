"""Supabase-backed day plan repository."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from pydantic import ValidationError
from supabase import Client

from meal_windows.domain.health import HealthAssessment
from meal_windows.domain.meals import LoggedMeal
from meal_windows.domain.scores import HealthScore
from meal_windows.domain.windows import (
    Flexibility,
    MacroTotals,
    MealWindow,
    WindowPurpose,
    reason_from_dict,
    reason_to_dict,
)
from meal_windows.services.days import DayPlan, DayPlanRepository
from meal_windows.services.scoring import health_score_from_assessment

_logger = logging.getLogger(__name__)

_WINDOW_COLUMNS = (
    "id, user_id, day, name, start_at, end_at, purpose, flexibility, "
    "target_calories, target_protein, target_carbs, target_fat, "
    "adjusted_calories, adjusted_protein, adjusted_carbs, adjusted_fat, "
    "redistribution_reason, consumed_calories, consumed_protein, "
    "consumed_carbs, consumed_fat, is_marked_as_fasted, generation"
)
_MEAL_COLUMNS = (
    "id, user_id, day, window_id, logged_at, name, calories, protein, carbs, fat, "
    "micronutrients, health_score"
)


@dataclass
class SupabaseDayRepository(DayPlanRepository):
    """Supabase implementation for day plans."""

    client: Client

    def get_day(self, user_id: UUID, day: date) -> DayPlan | None:
        """Return the stored plan for a user's day, if present."""
        window_response = (
            self.client.table("meal_windows")
            .select(_WINDOW_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("day", day.isoformat())
            .order("start_at")
            .execute()
        )
        window_rows = window_response.data or []
        windows = [
            window
            for window in (_parse_window_row(row, day) for row in window_rows)
            if window is not None
        ]
        if not windows:
            return None
        meal_response = (
            self.client.table("logged_meals")
            .select(_MEAL_COLUMNS)
            .eq("user_id", str(user_id))
            .eq("day", day.isoformat())
            .order("logged_at")
            .execute()
        )
        meals = [
            meal
            for meal in (_parse_meal_row(row) for row in meal_response.data or [])
            if meal is not None
        ]
        generation = max(
            (int(row.get("generation") or 1) for row in window_rows), default=1
        )
        return DayPlan(
            user_id=user_id,
            day=day,
            windows=windows,
            meals=meals,
            generation=generation,
        )

    def save_day(self, plan: DayPlan) -> None:
        """Replace the stored windows and meals of a user's day.

        Rows are upserted by id before rows no longer in the plan are deleted,
        so a failed write never leaves the day empty.
        """
        window_rows = [_window_row(plan, window) for window in plan.windows]
        meal_rows = [_meal_row(plan, meal) for meal in plan.meals]
        self._upsert("meal_windows", window_rows, "Failed to store meal windows")
        self._upsert("logged_meals", meal_rows, "Failed to store logged meals")
        self._delete_stale("logged_meals", plan, meal_rows)
        self._delete_stale("meal_windows", plan, window_rows)

    def _upsert(self, table: str, rows: list[dict[str, object]], error: str) -> None:
        if not rows:
            return
        response = self.client.table(table).upsert(rows, on_conflict="id").execute()
        if not response.data:
            raise RuntimeError(error)

    def _delete_stale(
        self, table: str, plan: DayPlan, rows: list[dict[str, object]]
    ) -> None:
        query = (
            self.client.table(table)
            .delete()
            .eq("user_id", str(plan.user_id))
            .eq("day", plan.day.isoformat())
        )
        if rows:
            query = query.not_.in_("id", [str(row["id"]) for row in rows])
        query.execute()


def _window_row(plan: DayPlan, window: MealWindow) -> dict[str, object]:
    adjusted = window.adjusted
    return {
        "id": str(window.id),
        "user_id": str(plan.user_id),
        "day": plan.day.isoformat(),
        "name": window.name,
        "start_at": window.start.isoformat(),
        "end_at": window.end.isoformat(),
        "purpose": window.purpose.value,
        "flexibility": window.flexibility.value,
        "target_calories": window.target.calories,
        "target_protein": window.target.protein,
        "target_carbs": window.target.carbs,
        "target_fat": window.target.fat,
        "adjusted_calories": adjusted.calories if adjusted else None,
        "adjusted_protein": adjusted.protein if adjusted else None,
        "adjusted_carbs": adjusted.carbs if adjusted else None,
        "adjusted_fat": adjusted.fat if adjusted else None,
        "redistribution_reason": reason_to_dict(window.redistribution_reason),
        "consumed_calories": window.consumed.calories,
        "consumed_protein": window.consumed.protein,
        "consumed_carbs": window.consumed.carbs,
        "consumed_fat": window.consumed.fat,
        "is_marked_as_fasted": window.is_marked_as_fasted,
        "generation": plan.generation,
    }


def _meal_row(plan: DayPlan, meal: LoggedMeal) -> dict[str, object]:
    return {
        "id": str(meal.id),
        "user_id": str(plan.user_id),
        "day": plan.day.isoformat(),
        "window_id": str(meal.window_id) if meal.window_id else None,
        "logged_at": meal.timestamp.isoformat(),
        "name": meal.name,
        "calories": meal.calories,
        "protein": meal.protein,
        "carbs": meal.carbs,
        "fat": meal.fat,
        "micronutrients": meal.micronutrients,
        "health_score": _health_score_payload(meal.health_score),
    }


def _health_score_payload(score: HealthScore | None) -> dict[str, object] | None:
    if score is None:
        return None
    payload: dict[str, object] = {
        "score": score.score,
        "factors": [
            {"name": f.name, "impact": f.impact.value, "weight": f.weight}
            for f in score.factors
        ],
        "insight": score.insight,
    }
    if score.breakdown is not None:
        breakdown = score.breakdown
        payload["breakdown"] = {
            "base_score": breakdown.base_score,
            **{
                key: {
                    "label": category.label,
                    "factors": [
                        {
                            "name": factor.name,
                            "description": factor.description,
                            "value": factor.value,
                        }
                        for factor in category.factors
                    ],
                }
                for key, category in (
                    ("macro_balance", breakdown.macro_balance),
                    ("food_quality", breakdown.food_quality),
                    ("protein_efficiency", breakdown.protein_efficiency),
                    ("micronutrients", breakdown.micronutrients),
                    ("portion_size", breakdown.portion_size),
                )
            },
        }
    return payload


def _parse_window_row(row: dict[str, object], day: date) -> MealWindow | None:
    window_id = _parse_uuid(row.get("id"))
    start = _parse_datetime(row.get("start_at"))
    end = _parse_datetime(row.get("end_at"))
    if window_id is None or start is None or end is None:
        _logger.warning("Skipping window row without identity", extra={"row": row})
        return None
    try:
        return MealWindow(
            id=window_id,
            name=str(row.get("name") or ""),
            day=day,
            start=start,
            end=end,
            purpose=WindowPurpose(str(row.get("purpose"))),
            flexibility=Flexibility(str(row.get("flexibility"))),
            target=_macros(row, "target"),
            adjusted=(
                _macros(row, "adjusted")
                if row.get("adjusted_calories") is not None
                else None
            ),
            redistribution_reason=reason_from_dict(row.get("redistribution_reason")),
            consumed=_macros(row, "consumed"),
            is_marked_as_fasted=bool(row.get("is_marked_as_fasted")),
        )
    except ValueError:
        _logger.warning("Skipping malformed window row", extra={"row": row})
        return None


def _parse_meal_row(row: dict[str, object]) -> LoggedMeal | None:
    meal_id = _parse_uuid(row.get("id"))
    logged_at = _parse_datetime(row.get("logged_at"))
    if meal_id is None or logged_at is None:
        _logger.warning("Skipping meal row without identity", extra={"row": row})
        return None
    micronutrients = row.get("micronutrients")
    return LoggedMeal(
        id=meal_id,
        timestamp=logged_at,
        name=str(row.get("name") or ""),
        calories=_to_int(row.get("calories")),
        protein=_to_int(row.get("protein")),
        carbs=_to_int(row.get("carbs")),
        fat=_to_int(row.get("fat")),
        micronutrients=(
            {str(k): float(v) for k, v in micronutrients.items()}
            if isinstance(micronutrients, dict)
            else {}
        ),
        window_id=_parse_uuid(row.get("window_id")),
        health_score=_parse_health_score(row.get("health_score")),
    )


def _parse_health_score(value: object) -> HealthScore | None:
    if not isinstance(value, dict):
        return None
    try:
        return health_score_from_assessment(HealthAssessment.model_validate(value))
    except ValidationError:
        _logger.warning("Ignoring malformed health score")
        return None


def _macros(row: dict[str, object], prefix: str) -> MacroTotals:
    return MacroTotals(
        calories=_to_int(row.get(f"{prefix}_calories")),
        protein=_to_int(row.get(f"{prefix}_protein")),
        carbs=_to_int(row.get(f"{prefix}_carbs")),
        fat=_to_int(row.get(f"{prefix}_fat")),
    )


def _parse_uuid(value: object) -> UUID | None:
    if value is None:
        return None
    if isinstance(value, UUID):
        return value
    if isinstance(value, str):
        try:
            return UUID(value)
        except ValueError:
            return None
    return None


def _parse_datetime(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _to_int(value: object) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return round(value)
    if isinstance(value, str):
        try:
            return round(float(value))
        except ValueError:
            return 0
    return 0
