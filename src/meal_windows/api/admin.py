"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from meal_windows.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/catalog", dependencies=[Depends(require_admin)])
async def list_catalog(request: Request) -> dict[str, object]:
    """Return the nutrient catalog."""
    container: AppContainer = request.app.state.container
    return {
        "nutrients": [
            {
                "name": entry.name,
                "type": entry.nutrient_type.value,
                "unit": entry.unit,
                "rda_male": entry.rda_male,
                "rda_female": entry.rda_female,
                "health_impacts": sorted(i.value for i in entry.health_impacts),
                "alternate_names": list(entry.alternate_names),
                "is_anti_nutrient": entry.is_anti_nutrient,
                "daily_limit": entry.daily_limit,
            }
            for entry in container.catalog.entries
        ]
    }


@router.get("/catalog/unmatched", dependencies=[Depends(require_admin)])
async def list_unmatched(request: Request, limit: int = 50) -> dict[str, object]:
    """Return nutrient names that did not resolve against the catalog."""
    container: AppContainer = request.app.state.container
    return {"unmatched": container.unmatched_log.summary()[:limit]}
