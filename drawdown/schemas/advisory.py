"""Data contracts for the portfolio optimization round trip."""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from drawdown.models import duplicate_names
from drawdown.schemas.projection import PortfolioPayload, PositionPayload


class OptimizationRequest(PortfolioPayload):
    language: Literal["en", "zh"] = "en"

    @model_validator(mode="after")
    def ensure_positions(self) -> "OptimizationRequest":
        if not self.positions:
            raise ValueError("at least one position is required for optimization")
        return self


class SuggestedPosition(PositionPayload):
    # service replies may carry ids or other extras
    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)


class AdvisoryReply(BaseModel):
    """JSON document the advisory model is asked to produce."""

    model_config = ConfigDict(extra="ignore")

    analysis: str
    suggestedPortfolio: List[SuggestedPosition] = Field(..., min_length=1)

    @model_validator(mode="after")
    def ensure_unique_names(self) -> "AdvisoryReply":
        errors = duplicate_names(self.suggestedPortfolio)
        if errors:
            raise ValueError("; ".join(errors))
        return self


class OptimizationResponse(BaseModel):
    analysis: str
    suggestedPortfolio: List[PositionPayload]
