from __future__ import annotations

from enum import Enum
from typing import Iterable, List

from pydantic import BaseModel, ConfigDict, Field

CASH_LABEL = "Cash (unallocated)"


class RiskTier(str, Enum):
    R1 = "R1"  # conservative
    R2 = "R2"  # cautious
    R3 = "R3"  # balanced
    R4 = "R4"  # aggressive
    R5 = "R5"  # speculative


class Position(BaseModel):
    """One allocation line. Rates are percentages, e.g. 5.5 for 5.5%."""

    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    name: str = Field(min_length=1)
    risk_tier: RiskTier = RiskTier.R3
    target_amount: float = Field(ge=0)
    expected_annual_return_rate: float = Field(ge=0)


class WithdrawalSchedule(BaseModel):
    """Annualized withdrawal, escalated geometrically every period after the first."""

    model_config = ConfigDict(extra="forbid", frozen=True, allow_inf_nan=False)

    base_annual_amount: float = Field(default=0.0, ge=0)
    escalation_rate_percent: float = Field(default=0.0, ge=0)


def duplicate_names(positions: Iterable[object]) -> List[str]:
    """Return one message per reserved or repeated name; empty when all names are usable."""
    seen = set()
    errors: List[str] = []
    for position in positions:
        name = getattr(position, "name")
        if name == CASH_LABEL:
            errors.append(f"'{CASH_LABEL}' is reserved for unallocated principal")
        elif name in seen:
            errors.append(f"duplicate position name '{name}'")
        seen.add(name)
    return errors
