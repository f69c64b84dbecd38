"""Data contracts for portfolio projections."""

from __future__ import annotations

import math
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from drawdown.core.summary import ProjectionResult
from drawdown.domain.ledger import PeriodSnapshot
from drawdown.models import Position, RiskTier, duplicate_names


class PositionPayload(BaseModel):
    """One asset as the frontend sends it."""

    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    name: str = Field(..., min_length=1)
    riskLevel: RiskTier = RiskTier.R3
    amount: float = Field(..., ge=0, description="Recorded allocation amount.")
    expectedReturnRate: float = Field(
        ...,
        ge=0,
        description="Expected annual return as a percentage (e.g. 5.5 for 5.5%).",
    )

    def to_position(self) -> Position:
        return Position(
            name=self.name,
            risk_tier=self.riskLevel,
            target_amount=self.amount,
            expected_annual_return_rate=self.expectedReturnRate,
        )

    @classmethod
    def from_position(cls, position: Position) -> "PositionPayload":
        return cls(
            name=position.name,
            riskLevel=position.risk_tier,
            amount=position.target_amount,
            expectedReturnRate=position.expected_annual_return_rate,
        )


class WithdrawalPayload(BaseModel):
    model_config = ConfigDict(extra="forbid", allow_inf_nan=False)

    amount: float = Field(0.0, ge=0, description="Withdrawal per cadence period.")
    frequency: Literal["yearly", "monthly"] = "yearly"
    escalationRate: float = Field(
        0.0,
        ge=0,
        description="Yearly increase of the withdrawal as a percentage.",
    )


class PortfolioPayload(BaseModel):
    model_config = ConfigDict(extra="forbid")

    positions: List[PositionPayload] = Field(default_factory=list)
    horizon: int = Field(20, ge=1, le=100, description="Number of annual periods to project.")
    withdrawal: WithdrawalPayload = Field(default_factory=WithdrawalPayload)

    @model_validator(mode="after")
    def ensure_unique_names(self) -> "PortfolioPayload":
        errors = duplicate_names(self.positions)
        if errors:
            raise ValueError("; ".join(errors))
        return self

    @model_validator(mode="after")
    def ensure_finite_total(self) -> "PortfolioPayload":
        if not math.isfinite(sum(payload.amount for payload in self.positions)):
            raise ValueError("total of position amounts is too large")
        return self

    def to_positions(self) -> List[Position]:
        return [payload.to_position() for payload in self.positions]


class ProjectionRequest(PortfolioPayload):
    """Inputs required to project a portfolio. A missing principal means the recorded total."""

    principal: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class NoticePayload(BaseModel):
    level: Literal["info", "success", "error"]
    message: str


class SnapshotPayload(BaseModel):
    """Single row of a projection ledger."""

    model_config = ConfigDict(allow_inf_nan=False)

    period: int = Field(..., ge=0)
    totalValue: float = Field(..., ge=0)
    cumulativeWithdrawn: float = Field(..., ge=0)
    periodWithdrawal: float = Field(..., ge=0)
    breakdown: Dict[str, float]

    @classmethod
    def from_snapshot(cls, snapshot: PeriodSnapshot) -> "SnapshotPayload":
        return cls(
            period=snapshot.period,
            totalValue=snapshot.total_value,
            cumulativeWithdrawn=snapshot.cumulative_withdrawn,
            periodWithdrawal=snapshot.period_withdrawal,
            breakdown=dict(snapshot.breakdown),
        )


class ProjectionResponse(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    snapshots: List[SnapshotPayload]
    recordedTotal: float = Field(..., ge=0)
    effectivePrincipal: float = Field(..., ge=0)
    cashGap: float = Field(..., ge=0)
    finalValue: float = Field(..., ge=0)
    netGrowthRate: float
    notices: List[NoticePayload] = Field(default_factory=list)

    @classmethod
    def from_result(
        cls, result: ProjectionResult, notices: Optional[List[NoticePayload]] = None
    ) -> "ProjectionResponse":
        return cls(
            snapshots=[SnapshotPayload.from_snapshot(snapshot) for snapshot in result.snapshots],
            recordedTotal=result.principal.recorded_total,
            effectivePrincipal=result.principal.effective_principal,
            cashGap=result.cash_gap,
            finalValue=result.final_value,
            netGrowthRate=result.net_growth_rate,
            notices=notices or [],
        )


class RiskTierPayload(BaseModel):
    riskLevel: RiskTier
    defaultReturnRate: float
