"""Whole-run projection and the metrics derived from it."""

from __future__ import annotations

import math
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Tuple

from drawdown.core.normalizer import normalize, principal_configuration
from drawdown.core.projection import project
from drawdown.domain.ledger import PeriodSnapshot, PrincipalConfiguration
from drawdown.models import Position, WithdrawalSchedule


@dataclass(frozen=True)
class ProjectionResult:
    principal: PrincipalConfiguration
    horizon_periods: int
    snapshots: Tuple[PeriodSnapshot, ...]
    net_growth_rate: float

    @property
    def final_value(self) -> float:
        return self.snapshots[-1].total_value

    @property
    def cash_gap(self) -> float:
        return self.principal.cash_gap


def net_growth_rate(final_value: float, effective_principal: float, horizon_periods: int) -> float:
    """
    Annualized compound rate (percent) from principal to final value, net of withdrawals.

    Returns 0.0 instead of an invalid number when the principal is not positive
    or the result is not finite.
    """
    if effective_principal <= 0 or horizon_periods <= 0:
        return 0.0
    try:
        rate = ((final_value / effective_principal) ** (1 / horizon_periods) - 1) * 100
    except (OverflowError, ZeroDivisionError):
        return 0.0
    if isinstance(rate, complex) or not math.isfinite(rate):
        return 0.0
    return rate


@lru_cache(maxsize=128)
def _run(
    positions: Tuple[Position, ...],
    effective_principal: float,
    horizon_periods: int,
    schedule: WithdrawalSchedule,
) -> ProjectionResult:
    config = principal_configuration(positions, effective_principal)
    working_set, _ = normalize(positions, effective_principal)
    snapshots = tuple(project(working_set, horizon_periods, schedule))
    return ProjectionResult(
        principal=config,
        horizon_periods=horizon_periods,
        snapshots=snapshots,
        net_growth_rate=net_growth_rate(
            snapshots[-1].total_value, effective_principal, horizon_periods
        ),
    )


def run_projection(
    positions: Iterable[Position],
    effective_principal: float,
    horizon_periods: int,
    schedule: WithdrawalSchedule,
) -> ProjectionResult:
    """Normalize, project and summarize. Identical inputs return the same cached result."""
    return _run(tuple(positions), float(effective_principal), int(horizon_periods), schedule)
