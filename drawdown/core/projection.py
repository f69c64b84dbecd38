from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Sequence

from drawdown.domain.ledger import PeriodSnapshot, WorkingPosition
from drawdown.models import WithdrawalSchedule

logger = logging.getLogger(__name__)


def scheduled_withdrawal(schedule: WithdrawalSchedule, period: int) -> float:
    """Withdrawal demanded in ``period`` (1-based). Period 1 uses the unescalated base."""
    escalation = 1 + schedule.escalation_rate_percent / 100
    return schedule.base_annual_amount * escalation ** (period - 1)


def _total(working_set: Sequence[WorkingPosition]) -> float:
    return sum((position.current_value for position in working_set), 0.0)


def _apply_withdrawal(working_set: List[WorkingPosition], required: float) -> float:
    """Pro-rate ``required`` across positions by current weight. Returns the amount actually taken."""
    total_before = _total(working_set)

    if total_before <= 0:
        for position in working_set:
            position.current_value = max(0.0, position.current_value)
        return 0.0

    if total_before < required:
        for position in working_set:
            position.current_value = 0.0
        return total_before

    if required <= 0:
        return 0.0

    for position in working_set:
        share = (position.current_value / total_before) * required
        position.current_value = max(0.0, position.current_value - share)
    return required


def _snapshot(
    period: int,
    working_set: Sequence[WorkingPosition],
    cumulative_withdrawn: float,
    period_withdrawal: float,
) -> PeriodSnapshot:
    return PeriodSnapshot(
        period=period,
        total_value=max(0.0, _total(working_set)),
        cumulative_withdrawn=cumulative_withdrawn,
        period_withdrawal=period_withdrawal,
        breakdown={position.name: position.current_value for position in working_set},
    )


def project(
    working_set: Sequence[WorkingPosition],
    horizon_periods: int,
    schedule: WithdrawalSchedule,
) -> List[PeriodSnapshot]:
    """
    Advance the working set through periods 1..horizon_periods.

    Order of operations (per period):
      1) Grow every position by its expected annual return.
      2) Compute the scheduled withdrawal from the base amount and period index.
      3) Withdraw pro-rata by weight; if demand exceeds the total, everything goes to zero.
      4) Record a snapshot.

    The caller's working set is copied, never mutated. Returns horizon_periods + 1 snapshots.
    """
    positions = [replace(position) for position in working_set]
    cumulative = 0.0
    snapshots = [_snapshot(0, positions, cumulative, 0.0)]

    for period in range(1, horizon_periods + 1):
        for position in positions:
            position.grow()

        required = scheduled_withdrawal(schedule, period)
        withdrawn = _apply_withdrawal(positions, required)
        if withdrawn < required:
            logger.debug(
                "period %d: withdrew %.2f of %.2f scheduled; portfolio depleted",
                period,
                withdrawn,
                required,
            )

        cumulative += withdrawn
        snapshots.append(_snapshot(period, positions, cumulative, withdrawn))

    return snapshots
