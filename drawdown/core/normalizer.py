"""Starting working set for a projection run."""

from __future__ import annotations

import logging
from typing import List, Sequence, Tuple

from drawdown.domain.ledger import PrincipalConfiguration, WorkingPosition
from drawdown.models import CASH_LABEL, Position, RiskTier

logger = logging.getLogger(__name__)


def recorded_total(positions: Sequence[Position]) -> float:
    return sum((position.target_amount for position in positions), 0.0)


def principal_configuration(
    positions: Sequence[Position], effective_principal: float
) -> PrincipalConfiguration:
    return PrincipalConfiguration.from_totals(recorded_total(positions), effective_principal)


def cash_position(amount: float) -> Position:
    """Zero-yield position holding principal not covered by recorded assets."""
    return Position(
        name=CASH_LABEL,
        risk_tier=RiskTier.R1,
        target_amount=amount,
        expected_annual_return_rate=0.0,
    )


def normalize(
    positions: Sequence[Position], effective_principal: float
) -> Tuple[List[WorkingPosition], float]:
    """
    Build the working set for ``effective_principal``.

    Every position starts at its target amount. When the principal exceeds the
    recorded total, the gap is appended as a synthetic cash position so the
    projector can treat it like any other line.
    """
    config = principal_configuration(positions, effective_principal)
    working_set = [WorkingPosition.from_position(position) for position in positions]

    if config.cash_gap > 0:
        working_set.append(WorkingPosition.from_position(cash_position(config.cash_gap)))
        logger.debug(
            "principal %.2f exceeds recorded total %.2f; added cash position of %.2f",
            config.effective_principal,
            config.recorded_total,
            config.cash_gap,
        )

    return working_set, config.cash_gap
