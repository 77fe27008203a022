"""Models for the health assessment produced by meal analysis."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthFactorPayload(BaseModel):
    """Single factor from the meal analysis response."""

    name: str
    impact: Literal["positive", "neutral", "negative"]
    weight: float = Field(ge=0.0, le=1.0)


class FactorContributionPayload(BaseModel):
    """Factor contribution inside a breakdown category."""

    name: str
    description: str = ""
    value: float


class CategoryPayload(BaseModel):
    """Breakdown category from the meal analysis response."""

    label: str
    factors: list[FactorContributionPayload] = Field(default_factory=list)


class BreakdownPayload(BaseModel):
    """Optional detailed score breakdown."""

    base_score: float = 5.0
    macro_balance: CategoryPayload
    food_quality: CategoryPayload
    protein_efficiency: CategoryPayload
    micronutrients: CategoryPayload
    portion_size: CategoryPayload


class HealthAssessment(BaseModel):
    """Structured health output consumed from the meal analysis pipeline."""

    score: int = Field(ge=0, le=100)
    factors: list[HealthFactorPayload] = Field(default_factory=list)
    breakdown: BreakdownPayload | None = None
    insight: str | None = None
