"""Domain models for meal windows."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import StrEnum
from uuid import UUID, uuid4


class WindowPurpose(StrEnum):
    """Semantic role of a window, driving its macro ratio."""

    PRE_WORKOUT = "pre-workout"
    POST_WORKOUT = "post-workout"
    SUSTAINED_ENERGY = "sustained-energy"
    RECOVERY = "recovery"
    METABOLIC_BOOST = "metabolic-boost"
    SLEEP_OPTIMIZED = "sleep-optimized"


class Flexibility(StrEnum):
    """Tolerance band used when scoring adherence."""

    STRICT = "strict"
    MODERATE = "moderate"
    FLEXIBLE = "flexible"

    @property
    def tolerance(self) -> float:
        """Return the relative band around the target."""
        return _TOLERANCE[self]


_TOLERANCE = {
    Flexibility.STRICT: 0.10,
    Flexibility.MODERATE: 0.20,
    Flexibility.FLEXIBLE: 0.35,
}


@dataclass(frozen=True)
class MacroRatio:
    """Share of calories from protein, carbs and fat."""

    protein: float
    carbs: float
    fat: float


MACRO_RATIOS: dict[WindowPurpose, MacroRatio] = {
    WindowPurpose.PRE_WORKOUT: MacroRatio(0.20, 0.60, 0.20),
    WindowPurpose.POST_WORKOUT: MacroRatio(0.40, 0.45, 0.15),
    WindowPurpose.SUSTAINED_ENERGY: MacroRatio(0.25, 0.45, 0.30),
    WindowPurpose.RECOVERY: MacroRatio(0.35, 0.40, 0.25),
    WindowPurpose.METABOLIC_BOOST: MacroRatio(0.30, 0.40, 0.30),
    WindowPurpose.SLEEP_OPTIMIZED: MacroRatio(0.30, 0.25, 0.45),
}


@dataclass(frozen=True)
class MacroTotals:
    """Calories and macronutrient grams."""

    calories: int = 0
    protein: int = 0
    carbs: int = 0
    fat: int = 0

    def __add__(self, other: "MacroTotals") -> "MacroTotals":
        return MacroTotals(
            calories=self.calories + other.calories,
            protein=self.protein + other.protein,
            carbs=self.carbs + other.carbs,
            fat=self.fat + other.fat,
        )

    def __sub__(self, other: "MacroTotals") -> "MacroTotals":
        return MacroTotals(
            calories=self.calories - other.calories,
            protein=self.protein - other.protein,
            carbs=self.carbs - other.carbs,
            fat=self.fat - other.fat,
        )

    def floored(self, floor: int = 0) -> "MacroTotals":
        """Return a copy with every field clamped to at least ``floor``."""
        return MacroTotals(
            calories=max(floor, self.calories),
            protein=max(floor, self.protein),
            carbs=max(floor, self.carbs),
            fat=max(floor, self.fat),
        )

    def as_dict(self) -> dict[str, int]:
        """Return the totals keyed by field name."""
        return {
            "calories": self.calories,
            "protein": self.protein,
            "carbs": self.carbs,
            "fat": self.fat,
        }


MACRO_FIELDS = ("calories", "protein", "carbs", "fat")


@dataclass(frozen=True)
class Overconsumption:
    """Window consumption exceeded 120% of its target."""

    percent: int
    kind: str = field(default="overconsumption", init=False)


@dataclass(frozen=True)
class Underconsumption:
    """Completed window consumption stayed below 80% of its target."""

    percent: int
    kind: str = field(default="underconsumption", init=False)


@dataclass(frozen=True)
class MissedWindow:
    """Window closed without any meal."""

    kind: str = field(default="missed_window", init=False)


@dataclass(frozen=True)
class LateConsumption:
    """First meal of the window was logged after it ended."""

    kind: str = field(default="late_consumption", init=False)


@dataclass(frozen=True)
class EarlyConsumption:
    """First meal of the window was logged before it started."""

    kind: str = field(default="early_consumption", init=False)


RedistributionReason = (
    Overconsumption
    | Underconsumption
    | MissedWindow
    | LateConsumption
    | EarlyConsumption
)


def reason_to_dict(reason: RedistributionReason | None) -> dict[str, object] | None:
    """Serialize a redistribution reason to a tagged mapping."""
    if reason is None:
        return None
    if isinstance(reason, Overconsumption | Underconsumption):
        return {"type": reason.kind, "percent": reason.percent}
    return {"type": reason.kind}


def reason_from_dict(data: object) -> RedistributionReason | None:
    """Parse a tagged mapping into a redistribution reason."""
    if not isinstance(data, dict):
        return None
    kind = data.get("type")
    percent = data.get("percent")
    if kind == "overconsumption" and isinstance(percent, int | float):
        return Overconsumption(percent=int(percent))
    if kind == "underconsumption" and isinstance(percent, int | float):
        return Underconsumption(percent=int(percent))
    if kind == "missed_window":
        return MissedWindow()
    if kind == "late_consumption":
        return LateConsumption()
    if kind == "early_consumption":
        return EarlyConsumption()
    return None


@dataclass
class MealWindow:
    """A time-bounded slot with calorie and macro targets."""

    name: str
    day: date
    start: datetime
    end: datetime
    purpose: WindowPurpose
    flexibility: Flexibility
    target: MacroTotals
    id: UUID = field(default_factory=uuid4)
    adjusted: MacroTotals | None = None
    redistribution_reason: RedistributionReason | None = None
    consumed: MacroTotals = field(default_factory=MacroTotals)
    is_marked_as_fasted: bool = False

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise ValueError("Meal window must start before it ends")

    def effective(self) -> MacroTotals:
        """Return the redistribution override if set, else the original target."""
        return self.adjusted if self.adjusted is not None else self.target

    @property
    def effective_calories(self) -> int:
        return self.effective().calories

    @property
    def effective_protein(self) -> int:
        return self.effective().protein

    @property
    def effective_carbs(self) -> int:
        return self.effective().carbs

    @property
    def effective_fat(self) -> int:
        return self.effective().fat

    @property
    def duration_seconds(self) -> float:
        return (self.end - self.start).total_seconds()

    def contains(self, timestamp: datetime) -> bool:
        """Return True when the timestamp falls within the window bounds."""
        return self.start <= timestamp <= self.end

    def copy(self) -> "MealWindow":
        """Return a detached copy of the window."""
        return replace(self)
