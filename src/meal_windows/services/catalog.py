"""Static registry of tracked nutrients and anti-nutrients."""

import logging
import threading
from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Protocol

from meal_windows.domain.nutrients import (
    HealthImpact,
    NutrientInfo,
    NutrientType,
    Severity,
)

_logger = logging.getLogger(__name__)

_E = HealthImpact.ENERGY
_S = HealthImpact.STRENGTH
_F = HealthImpact.FOCUS
_I = HealthImpact.IMMUNE
_H = HealthImpact.HEART
_A = HealthImpact.ANTIOXIDANT


def _nutrient(  # noqa: PLR0913
    name: str,
    nutrient_type: NutrientType,
    unit: str,
    rda_male: float,
    rda_female: float,
    impacts: tuple[HealthImpact, ...],
    aliases: tuple[str, ...],
    guidance_threshold: float | None = None,
) -> NutrientInfo:
    return NutrientInfo(
        name=name,
        nutrient_type=nutrient_type,
        unit=unit,
        rda_male=rda_male,
        rda_female=rda_female,
        health_impacts=frozenset(impacts),
        alternate_names=aliases,
        guidance_threshold=guidance_threshold,
    )


def _anti_nutrient(  # noqa: PLR0913
    name: str,
    unit: str,
    adequate_intake: float,
    impacts: tuple[HealthImpact, ...],
    daily_limit: float,
    severity: Severity,
    aliases: tuple[str, ...] = (),
) -> NutrientInfo:
    return NutrientInfo(
        name=name,
        nutrient_type=NutrientType.ANTI_NUTRIENT,
        unit=unit,
        rda_male=adequate_intake,
        rda_female=adequate_intake,
        health_impacts=frozenset(impacts),
        alternate_names=aliases,
        is_anti_nutrient=True,
        daily_limit=daily_limit,
        severity=severity,
    )


_VITAMIN = NutrientType.VITAMIN
_MINERAL = NutrientType.MINERAL
_OTHER = NutrientType.OTHER

DEFAULT_NUTRIENTS: tuple[NutrientInfo, ...] = (
    _nutrient("Vitamin B1", _VITAMIN, "mg", 1.2, 1.1, (_E,), ("Thiamine", "B1", "Thiamin"), 0.4),
    _nutrient("Vitamin B2", _VITAMIN, "mg", 1.3, 1.1, (_E,), ("Riboflavin", "B2"), 0.4),
    _nutrient("Vitamin B3", _VITAMIN, "mg", 16, 14, (_E, _H), ("Niacin", "B3", "Nicotinic acid"), 0.4),
    _nutrient("Vitamin B6", _VITAMIN, "mg", 1.3, 1.3, (_E, _F), ("Pyridoxine", "B6"), 0.4),
    _nutrient("Vitamin B12", _VITAMIN, "mcg", 2.4, 2.4, (_E, _F), ("Cobalamin", "B12", "B-12"), 0.4),
    _nutrient("Folate", _VITAMIN, "mcg", 400, 400, (_F, _H), ("Folic Acid", "B9", "Vitamin B9"), 0.4),
    _nutrient("Vitamin A", _VITAMIN, "mcg", 900, 700, (_I, _A), ("Retinol", "Beta-carotene", "Vit A"), 0.5),
    _nutrient("Vitamin C", _VITAMIN, "mg", 90, 75, (_I, _A), ("Ascorbic acid", "Vit C"), 0.5),
    _nutrient("Vitamin D", _VITAMIN, "mcg", 15, 15, (_S, _F, _I), ("Vit D", "Cholecalciferol", "D3"), 0.6),
    _nutrient("Vitamin E", _VITAMIN, "mg", 15, 15, (_A, _I), ("Tocopherol", "Vit E"), 0.5),
    _nutrient("Vitamin K", _VITAMIN, "mcg", 120, 90, (_S, _H), ("Vit K", "Phylloquinone"), 0.4),
    _nutrient("Calcium", _MINERAL, "mg", 1000, 1000, (_S,), ("Ca",), 0.5),
    _nutrient("Iron", _MINERAL, "mg", 8, 18, (_E, _F), ("Fe",), 0.6),
    _nutrient("Magnesium", _MINERAL, "mg", 420, 320, (_E, _S, _F, _H), ("Mg",), 0.5),
    _nutrient("Phosphorus", _MINERAL, "mg", 700, 700, (_S,), ("P",), 0.4),
    _nutrient("Potassium", _MINERAL, "mg", 3400, 2600, (_E, _H), ("K",), 0.5),
    _nutrient("Zinc", _MINERAL, "mg", 11, 8, (_S, _I), ("Zn",), 0.5),
    _nutrient("Selenium", _MINERAL, "mcg", 55, 55, (_I, _A), ("Se",), 0.4),
    _nutrient("Omega-3", _OTHER, "g", 1.6, 1.1, (_F, _H), ("DHA", "EPA", "ALA", "Omega-3 fatty acids"), 0.5),
    _nutrient("Fiber", _OTHER, "g", 38, 25, (_H,), ("Dietary fiber",), 0.5),
    _anti_nutrient("Sodium", "mg", 1500, (_H, _S), 2300, Severity.MEDIUM, ("Na", "Salt")),
    _anti_nutrient("Added Sugar", "g", 0, (_E, _F, _I), 36, Severity.HIGH, ("Sugar", "Added sugars")),
    _anti_nutrient("Saturated Fat", "g", 0, (_H,), 20, Severity.MEDIUM, ("Sat fat", "Saturated fatty acids")),
    _anti_nutrient("Trans Fat", "g", 0, (_H,), 0, Severity.HIGH, ("Trans fatty acids", "Trans fats")),
    _anti_nutrient("Caffeine", "mg", 0, (_E, _F), 400, Severity.LOW),
    _anti_nutrient("Cholesterol", "mg", 0, (_H,), 300, Severity.LOW),
)  # fmt: skip


def _normalize(name: str) -> str:
    return name.strip().lower()


def _overlaps(key: str, candidate: str) -> bool:
    return key in candidate or candidate in key


@dataclass(frozen=True)
class NutrientCatalog:
    """Immutable nutrient registry with case-insensitive lookup."""

    entries: tuple[NutrientInfo, ...] = DEFAULT_NUTRIENTS

    def lookup(self, name: str) -> NutrientInfo | None:
        """Resolve a nutrient by canonical name, alias or partial match.

        Match order: exact canonical name, exact alias, substring of the
        canonical name in either direction, substring of an alias in either
        direction. Single-character names and aliases only ever match exactly.

        When several entries match partially, the one with the longest matching
        name wins, and ties go to catalog order. A bare "fat" therefore resolves
        to "Saturated Fat" rather than "Trans Fat", and "vitamin b12 (cobalamin)"
        resolves to "Vitamin B12" rather than "Vitamin B1".
        """
        key = _normalize(name)
        if not key:
            return None
        for entry in self.entries:
            if _normalize(entry.name) == key:
                return entry
        for entry in self.entries:
            if any(_normalize(alias) == key for alias in entry.alternate_names):
                return entry
        if len(key) < 2:
            return None
        by_name = [
            (len(entry.name), entry)
            for entry in self.entries
            if _overlaps(key, _normalize(entry.name))
        ]
        if by_name:
            return max(by_name, key=lambda match: match[0])[1]
        by_alias = [
            (len(alias), entry)
            for entry in self.entries
            for alias in entry.alternate_names
            if len(_normalize(alias)) >= 2 and _overlaps(key, _normalize(alias))
        ]
        if by_alias:
            return max(by_alias, key=lambda match: match[0])[1]
        return None

    def for_impact(self, impact: HealthImpact) -> list[NutrientInfo]:
        """Return every entry mapping to a health-impact category."""
        return [entry for entry in self.entries if impact in entry.health_impacts]

    def nutrients(self) -> list[NutrientInfo]:
        return [entry for entry in self.entries if not entry.is_anti_nutrient]

    def anti_nutrients(self) -> list[NutrientInfo]:
        return [entry for entry in self.entries if entry.is_anti_nutrient]


DEFAULT_CATALOG = NutrientCatalog()


class UnmatchedNutrientLog(Protocol):
    """Sink for nutrient names that the catalog could not resolve."""

    def record(self, name: str) -> None:
        """Record an unmatched nutrient name."""

    def summary(self) -> list[dict[str, object]]:
        """Return unmatched names with counts, most frequent first."""


@dataclass
class InMemoryUnmatchedNutrientLog(UnmatchedNutrientLog):
    """Process-local record of unmatched nutrient names."""

    _counts: Counter[str] = field(default_factory=Counter)
    _last_seen: dict[str, datetime] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def record(self, name: str) -> None:
        """Record an unmatched nutrient name."""
        key = _normalize(name)
        if not key:
            return
        with self._lock:
            self._counts[key] += 1
            self._last_seen[key] = datetime.now(tz=UTC)
        _logger.warning("Unmatched nutrient name", extra={"nutrient": key})

    def summary(self) -> list[dict[str, object]]:
        """Return unmatched names with counts, most frequent first."""
        with self._lock:
            return [
                {
                    "name": name,
                    "count": count,
                    "last_seen_at": self._last_seen[name].isoformat(),
                }
                for name, count in self._counts.most_common()
            ]
