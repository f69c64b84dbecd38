from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from drawdown.models import Position, RiskTier


@dataclass
class WorkingPosition:
    name: str
    risk_tier: RiskTier
    target_amount: float
    expected_annual_return_rate: float
    current_value: float

    @classmethod
    def from_position(cls, position: Position) -> "WorkingPosition":
        return cls(
            name=position.name,
            risk_tier=position.risk_tier,
            target_amount=position.target_amount,
            expected_annual_return_rate=position.expected_annual_return_rate,
            current_value=position.target_amount,
        )

    def grow(self) -> None:
        self.current_value *= 1 + self.expected_annual_return_rate / 100


@dataclass(frozen=True)
class PrincipalConfiguration:
    recorded_total: float
    effective_principal: float
    cash_gap: float

    @classmethod
    def from_totals(cls, recorded_total: float, effective_principal: float) -> "PrincipalConfiguration":
        return cls(
            recorded_total=recorded_total,
            effective_principal=effective_principal,
            cash_gap=max(0.0, effective_principal - recorded_total),
        )


@dataclass(frozen=True)
class PeriodSnapshot:
    """Ledger row for one period. ``breakdown`` is a read-only view keyed by position name."""

    period: int
    total_value: float
    cumulative_withdrawn: float
    period_withdrawal: float
    breakdown: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "breakdown", MappingProxyType(dict(self.breakdown)))
