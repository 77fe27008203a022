"""Domain models for logged meals."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from meal_windows.domain.scores import HealthScore
from meal_windows.domain.windows import MacroTotals


@dataclass(frozen=True)
class LoggedMeal:
    """A meal reported by the logging pipeline."""

    timestamp: datetime
    calories: int
    protein: int
    carbs: int
    fat: int
    name: str = ""
    micronutrients: dict[str, float] = field(default_factory=dict)
    window_id: UUID | None = None
    health_score: HealthScore | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def macros(self) -> MacroTotals:
        return MacroTotals(
            calories=self.calories,
            protein=self.protein,
            carbs=self.carbs,
            fat=self.fat,
        )


def sum_macros(meals: list[LoggedMeal]) -> MacroTotals:
    """Return the combined macros of the given meals."""
    total = MacroTotals()
    for meal in meals:
        total = total + meal.macros
    return total


def meals_for_window(meals: list[LoggedMeal], window_id: UUID) -> list[LoggedMeal]:
    """Return the meals assigned to a window, oldest first."""
    return sorted(
        (meal for meal in meals if meal.window_id == window_id),
        key=lambda meal: meal.timestamp,
    )
