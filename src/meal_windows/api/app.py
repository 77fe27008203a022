"""FastAPI application factory."""

import logging
from datetime import date, datetime
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status

from meal_windows.api.admin import router as admin_router
from meal_windows.api.schemas import (
    FirstDayRequest,
    MealRequest,
    MicronutrientRequest,
    PlanRequest,
)
from meal_windows.app_logging import configure_logging
from meal_windows.containers import AppContainer
from meal_windows.domain.scores import DailyScore
from meal_windows.domain.windows import MealWindow, reason_to_dict
from meal_windows.services.days import (
    DayNotFoundError,
    DayPersistenceError,
    DayPlan,
    UnknownWindowError,
    WindowStatus,
)
from meal_windows.services.micronutrients import MicronutrientImpact
from meal_windows.services.planner import PartialDayPlan
from meal_windows.services.redistribution import RedistributionResult


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    app = FastAPI()
    app.state.container = container

    app.include_router(admin_router)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/users/{user_id}/days/{day}/plan")
    def generate_plan(
        user_id: UUID, day: date, body: PlanRequest, request: Request
    ) -> dict[str, object]:
        """Generate the full-day window plan, replacing any earlier plan."""
        state_container: AppContainer = request.app.state.container
        check_in = body.check_in.to_domain() if body.check_in else None
        try:
            plan = state_container.day_service.generate_full_day(
                user_id, day, body.profile.to_domain(), check_in, body.now
            )
        except DayPersistenceError as exc:
            raise _http_error(exc) from exc
        logger.info(
            "Generated day plan",
            extra={"user_id": str(user_id), "day": day.isoformat()},
        )
        return _format_day_plan(plan)

    @app.post("/users/{user_id}/first-day")
    def start_first_day(
        user_id: UUID, body: FirstDayRequest, request: Request
    ) -> dict[str, object]:
        """Plan the remainder of today, or tomorrow when today is nearly over."""
        state_container: AppContainer = request.app.state.container
        try:
            partial, plan = state_container.day_service.start_first_day(
                user_id, body.profile.to_domain(), body.now
            )
        except DayPersistenceError as exc:
            raise _http_error(exc) from exc
        return {"partial_day": _format_partial_day(partial), **_format_day_plan(plan)}

    @app.post("/users/{user_id}/days/{day}/meals")
    def log_meal(
        user_id: UUID, day: date, body: MealRequest, request: Request
    ) -> dict[str, object]:
        """Log a meal and return the resulting redistribution."""
        state_container: AppContainer = request.app.state.container
        meal = body.to_domain()
        try:
            result = state_container.day_service.log_meal(
                user_id, day, meal, body.now
            )
        except (DayNotFoundError, DayPersistenceError, UnknownWindowError) as exc:
            raise _http_error(exc) from exc
        return {
            "meal_id": str(meal.id),
            "redistribution": _format_redistribution(result),
        }

    @app.get("/users/{user_id}/days/{day}/windows")
    def list_windows(
        user_id: UUID, day: date, request: Request, now: datetime | None = None
    ) -> dict[str, object]:
        """Return the day's windows with their current lifecycle states."""
        state_container: AppContainer = request.app.state.container
        try:
            statuses = state_container.day_service.window_states(user_id, day, now)
        except DayNotFoundError as exc:
            raise _http_error(exc) from exc
        return {
            "day": day.isoformat(),
            "windows": [_format_window_status(entry) for entry in statuses],
        }

    @app.get("/users/{user_id}/days/{day}/score")
    def score_day(
        user_id: UUID, day: date, request: Request, now: datetime | None = None
    ) -> dict[str, object]:
        """Return the daily score, counting only windows that are due at ``now``."""
        state_container: AppContainer = request.app.state.container
        try:
            score = state_container.day_service.score_day(user_id, day, now)
        except DayNotFoundError as exc:
            raise _http_error(exc) from exc
        return _format_daily_score(score)

    @app.post("/users/{user_id}/days/{day}/micronutrients")
    def micronutrient_impact(
        user_id: UUID, day: date, body: MicronutrientRequest, request: Request
    ) -> dict[str, object]:
        """Return the micronutrient impact of the day's meals."""
        state_container: AppContainer = request.app.state.container
        try:
            impact = state_container.day_service.micronutrient_impact(
                user_id,
                day,
                [context.to_domain() for context in body.contexts],
                body.sex,
            )
        except DayNotFoundError as exc:
            raise _http_error(exc) from exc
        return _format_impact(impact)

    return app


def _http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, DayNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, UnknownWindowError):
        return HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        )
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)
    )


def _format_window(window: MealWindow) -> dict[str, object]:
    return {
        "id": str(window.id),
        "name": window.name,
        "start": window.start.isoformat(),
        "end": window.end.isoformat(),
        "purpose": window.purpose.value,
        "flexibility": window.flexibility.value,
        "target": window.target.as_dict(),
        "effective": window.effective().as_dict(),
        "consumed": window.consumed.as_dict(),
        "redistribution_reason": reason_to_dict(window.redistribution_reason),
        "is_marked_as_fasted": window.is_marked_as_fasted,
    }


def _format_day_plan(plan: DayPlan) -> dict[str, object]:
    return {
        "day": plan.day.isoformat(),
        "generation": plan.generation,
        "windows": [
            _format_window(window)
            for window in sorted(plan.windows, key=lambda window: window.start)
        ],
    }


def _format_partial_day(partial: PartialDayPlan) -> dict[str, object]:
    return {
        "show_tomorrow_plan": partial.show_tomorrow_plan,
        "remaining_hours": round(partial.remaining_hours, 2),
        "total_waking_hours": round(partial.total_waking_hours, 2),
        "factor": round(partial.factor, 4),
        "pro_rated": partial.pro_rated.as_dict(),
        "number_of_windows": partial.number_of_windows,
        "bedtime": partial.bedtime.isoformat(),
    }


def _format_window_status(entry: WindowStatus) -> dict[str, object]:
    payload = _format_window(entry.window)
    payload["state"] = entry.state.value
    payload["time_remaining_seconds"] = (
        int(entry.time_remaining.total_seconds())
        if entry.time_remaining is not None
        else None
    )
    payload["hours_late"] = (
        round(entry.hours_late, 2) if entry.hours_late is not None else None
    )
    return payload


def _format_redistribution(result: RedistributionResult) -> dict[str, object]:
    return {
        "trigger": reason_to_dict(result.trigger),
        "explanation": result.explanation,
        "educational_tip": result.educational_tip,
        "total_redistributed": result.total_redistributed.as_dict(),
        "adjusted_windows": [
            {
                "window_id": str(adjusted.window_id),
                "original": adjusted.original.as_dict(),
                "adjusted": adjusted.adjusted.as_dict(),
                "reason": reason_to_dict(adjusted.reason),
                "description": adjusted.description,
            }
            for adjusted in result.adjusted_windows
        ],
    }


def _format_daily_score(score: DailyScore) -> dict[str, object]:
    breakdown = score.breakdown
    return {
        "day": score.day.isoformat(),
        "score": score.score,
        "display_score": score.display_score,
        "completed_windows": score.completed_windows,
        "total_windows": score.total_windows,
        "average_health_score": score.average_health_score,
        "insight": score.insight,
        "window_scores": {
            str(window_id): value for window_id, value in score.window_scores.items()
        },
        "breakdown": {
            "adherence": breakdown.adherence_score,
            "food_quality": breakdown.food_quality_score,
            "timing": breakdown.timing_score,
            "consistency": breakdown.consistency_score,
            "weights": breakdown.weights,
            "details": {
                "adherence": breakdown.adherence_detail,
                "food_quality": breakdown.quality_detail,
                "timing": breakdown.timing_detail,
                "consistency": breakdown.consistency_detail,
            },
        },
    }


def _format_impact(impact: MicronutrientImpact) -> dict[str, object]:
    return {
        "overall_score": round(impact.overall_score, 1),
        "total_penalty": round(impact.total_penalty, 1),
        "categories": {
            category.value: {
                "score": round(score, 1),
                "raw_score": round(impact.raw_scores.get(category, 0.0), 1),
                "penalty": round(impact.category_penalties.get(category, 0.0), 1),
            }
            for category, score in impact.category_scores.items()
        },
        "intakes": [
            {
                "name": intake.nutrient.name,
                "consumed": intake.consumed,
                "unit": intake.nutrient.unit,
                "guidance": intake.guidance.value,
                "penalty": round(intake.penalty, 1),
            }
            for intake in impact.intakes
        ],
        "unmatched": list(impact.unmatched),
        "recommendations": list(impact.recommendations),
    }
