"""Dependency container wiring for the application."""

from dataclasses import dataclass
from datetime import time
from zoneinfo import ZoneInfo

from supabase import create_client

from meal_windows.adapters.supabase_day_repository import SupabaseDayRepository
from meal_windows.config import Settings, parse_clock_time
from meal_windows.services.catalog import (
    DEFAULT_CATALOG,
    InMemoryUnmatchedNutrientLog,
    NutrientCatalog,
    UnmatchedNutrientLog,
)
from meal_windows.services.days import DayPlanRepository, DayPlanService
from meal_windows.services.micronutrients import MicronutrientImpactModel
from meal_windows.services.planner import WindowPlanner
from meal_windows.services.redistribution import RedistributionEngine
from meal_windows.services.scoring import ScoringEngine, WeightTable


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    catalog: NutrientCatalog
    unmatched_log: UnmatchedNutrientLog
    day_service: DayPlanService


def build_day_service(
    settings: Settings,
    repository: DayPlanRepository,
    catalog: NutrientCatalog,
    unmatched_log: UnmatchedNutrientLog,
) -> DayPlanService:
    """Create the day service and its engines from settings."""
    planner = WindowPlanner(
        default_wake_time=parse_clock_time(settings.default_wake_time, time(7, 0)),
        default_sleep_time=parse_clock_time(settings.default_sleep_time, time(23, 0)),
        timezone=ZoneInfo(settings.timezone),
    )
    return DayPlanService(
        planner=planner,
        redistribution_engine=RedistributionEngine(),
        scoring_engine=ScoringEngine(
            weight_table=WeightTable(settings.scoring_weight_table)
        ),
        micronutrient_model=MicronutrientImpactModel(
            catalog=catalog, unmatched_log=unmatched_log
        ),
        repository=repository,
    )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    unmatched_log = InMemoryUnmatchedNutrientLog()
    day_service = build_day_service(
        resolved_settings,
        SupabaseDayRepository(supabase_client),
        DEFAULT_CATALOG,
        unmatched_log,
    )
    return AppContainer(
        settings=resolved_settings,
        catalog=DEFAULT_CATALOG,
        unmatched_log=unmatched_log,
        day_service=day_service,
    )
