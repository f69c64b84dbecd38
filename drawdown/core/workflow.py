"""
Input validation and the editable portfolio session.

The core projection functions assume clean, non-negative inputs. Everything a
user can get wrong is rejected or corrected here before it reaches them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from drawdown.core.advisory import LANGUAGES, AdvisoryClient, AdvisoryError, OptimizationResult
from drawdown.core.normalizer import recorded_total
from drawdown.core.summary import ProjectionResult, run_projection
from drawdown.models import Position, RiskTier, WithdrawalSchedule, duplicate_names

logger = logging.getLogger(__name__)

RISK_TIER_DEFAULT_RETURNS = {
    RiskTier.R1: 3.0,
    RiskTier.R2: 4.5,
    RiskTier.R3: 6.5,
    RiskTier.R4: 10.0,
    RiskTier.R5: 16.0,
}

DEFAULT_POSITIONS: Tuple[Position, ...] = (
    Position(name="Treasury Bonds", risk_tier=RiskTier.R1, target_amount=20000, expected_annual_return_rate=3.5),
    Position(name="Global Tech ETF", risk_tier=RiskTier.R4, target_amount=15000, expected_annual_return_rate=11.0),
    Position(name="Dividend Stocks", risk_tier=RiskTier.R3, target_amount=15000, expected_annual_return_rate=7.0),
)

DEFAULT_POSITIONS_ZH: Tuple[Position, ...] = (
    Position(name="储蓄国债", risk_tier=RiskTier.R1, target_amount=100000, expected_annual_return_rate=3.0),
    Position(name="沪深300 ETF", risk_tier=RiskTier.R3, target_amount=80000, expected_annual_return_rate=8.5),
    Position(name="科技龙头股", risk_tier=RiskTier.R5, target_amount=50000, expected_annual_return_rate=15.0),
)

DEFAULT_POSITIONS_BY_LANGUAGE = {"en": DEFAULT_POSITIONS, "zh": DEFAULT_POSITIONS_ZH}

# starter withdrawal as a share of the starter principal
DEFAULT_WITHDRAWAL_RATE = 0.04

WITHDRAWAL_FREQUENCIES = {"yearly": 1, "monthly": 12}

PRINCIPAL_TOO_LOW = "Principal cannot be lower than the total recorded assets"
OPTIMIZATION_FAILED = "Failed to generate optimization. Please check your API key or try again."


class InputRejected(ValueError):
    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class Notice:
    level: str  # info | success | error
    message: str


def default_return_for(tier: RiskTier) -> float:
    return RISK_TIER_DEFAULT_RETURNS[RiskTier(tier)]


def annualize_withdrawal(amount: float, frequency: str = "yearly") -> float:
    if amount < 0:
        raise InputRejected([f"withdrawal amount must be non-negative, got {amount}"])
    if frequency not in WITHDRAWAL_FREQUENCIES:
        raise InputRejected([f"unknown withdrawal frequency '{frequency}'"])
    return amount * WITHDRAWAL_FREQUENCIES[frequency]


def ensure_unique_names(positions: Iterable[Position]) -> None:
    errors = duplicate_names(positions)
    if errors:
        raise InputRejected(errors)


def resolve_principal(
    recorded: float, requested: Optional[float]
) -> Tuple[float, List[Notice]]:
    """Effective principal for ``requested``; a value below the recorded total is raised to it."""
    if requested is None:
        return recorded, []
    if requested < 0:
        raise InputRejected([f"principal must be non-negative, got {requested}"])
    if requested < recorded:
        logger.info("principal %.2f below recorded total %.2f; clamping", requested, recorded)
        return recorded, [Notice("error", PRINCIPAL_TOO_LOW)]
    return requested, []


def ensure_language(language: str) -> str:
    if language not in LANGUAGES:
        raise InputRejected([f"unsupported language '{language}'"])
    return language


def _non_negative(label: str, value: float) -> float:
    if value < 0:
        raise InputRejected([f"{label} must be non-negative, got {value}"])
    return value


class PortfolioSession:
    """
    Transient editing state for one user: positions, principal and withdrawal settings.

    Every read of :meth:`projection` recomputes from the current inputs (or returns the
    cached run for identical inputs). User-facing messages queue up in ``notices``.
    """

    def __init__(
        self,
        positions: Sequence[Position] = DEFAULT_POSITIONS,
        principal: Optional[float] = None,
        horizon: int = 20,
        withdrawal_amount: float = 2000.0,
        withdrawal_frequency: str = "yearly",
        escalation_rate: float = 0.0,
        language: str = "en",
    ) -> None:
        self.language = ensure_language(language)
        positions = list(positions)
        ensure_unique_names(positions)
        self._positions: List[Position] = positions
        self.notices: List[Notice] = []
        self.suggestion: Optional[OptimizationResult] = None

        self.principal = recorded_total(positions)
        self.set_principal(principal if principal is not None else self.principal)
        self.set_horizon(horizon)
        self.set_withdrawal(withdrawal_amount, withdrawal_frequency)
        self.set_escalation_rate(escalation_rate)

    # --- positions ---

    @property
    def positions(self) -> Tuple[Position, ...]:
        return tuple(self._positions)

    @property
    def recorded_total(self) -> float:
        return recorded_total(self._positions)

    def _replace_positions(self, positions: List[Position]) -> None:
        ensure_unique_names(positions)
        self._positions = positions
        total = self.recorded_total
        if total > self.principal:
            logger.info("recorded total %.2f exceeds principal; raising principal", total)
            self.principal = total

    def _index_of(self, name: str) -> int:
        for index, position in enumerate(self._positions):
            if position.name == name:
                return index
        raise InputRejected([f"unknown position '{name}'"])

    def add_position(self, position: Position) -> None:
        self._replace_positions(self._positions + [position])

    def update_position(self, name: str, position: Position) -> None:
        positions = list(self._positions)
        positions[self._index_of(name)] = position
        self._replace_positions(positions)

    def remove_position(self, name: str) -> None:
        positions = list(self._positions)
        del positions[self._index_of(name)]
        self._replace_positions(positions)

    # --- simulation parameters ---

    def set_principal(self, value: float) -> None:
        self.principal, notices = resolve_principal(self.recorded_total, value)
        self.notices.extend(notices)

    def set_horizon(self, horizon: int) -> None:
        if isinstance(horizon, bool) or int(horizon) != horizon:
            raise InputRejected([f"horizon must be a whole number of periods, got {horizon}"])
        if horizon < 1:
            raise InputRejected([f"horizon must be at least 1 period, got {horizon}"])
        self.horizon = int(horizon)

    def set_withdrawal(self, amount: float, frequency: Optional[str] = None) -> None:
        frequency = frequency or self.withdrawal_frequency
        annualize_withdrawal(amount, frequency)
        self.withdrawal_amount = amount
        self.withdrawal_frequency = frequency

    def set_escalation_rate(self, rate: float) -> None:
        self.escalation_rate = _non_negative("escalation rate", rate)

    @property
    def annual_withdrawal(self) -> float:
        return annualize_withdrawal(self.withdrawal_amount, self.withdrawal_frequency)

    @property
    def schedule(self) -> WithdrawalSchedule:
        return WithdrawalSchedule(
            base_annual_amount=self.annual_withdrawal,
            escalation_rate_percent=self.escalation_rate,
        )

    def projection(self) -> ProjectionResult:
        return run_projection(self._positions, self.principal, self.horizon, self.schedule)

    def switch_language(self, language: str) -> None:
        """Reset to the starter portfolio of ``language`` with a yearly withdrawal of 4% of its total."""
        self.language = ensure_language(language)
        self._positions = list(DEFAULT_POSITIONS_BY_LANGUAGE[language])
        self.principal = self.recorded_total
        self.withdrawal_amount = float(round(self.principal * DEFAULT_WITHDRAWAL_RATE))
        self.withdrawal_frequency = "yearly"
        self.suggestion = None
        logger.info("switched session to %s starter portfolio", language)

    # --- optimization round trip ---

    def request_optimization(
        self, client: AdvisoryClient, language: Optional[str] = None
    ) -> Optional[OptimizationResult]:
        """Fetch a suggestion. On failure, queue an error notice and leave the session as it was."""
        language = ensure_language(language or self.language)
        try:
            result = client.optimize(
                self.positions,
                self.horizon,
                self.annual_withdrawal,
                self.escalation_rate,
                language=language,
            )
        except AdvisoryError as exc:
            logger.warning("optimization request failed: %s", exc)
            self.notices.append(Notice("error", OPTIMIZATION_FAILED))
            return None

        self.suggestion = result
        self.notices.append(Notice("success", "Optimization analysis complete"))
        return result

    def apply_suggestion(self) -> None:
        if self.suggestion is None:
            raise InputRejected(["no optimization suggestion to apply"])
        positions = list(self.suggestion.suggested_positions)
        ensure_unique_names(positions)
        self._positions = positions
        self.principal = self.recorded_total
        self.suggestion = None
        logger.info("applied suggested portfolio with %d positions", len(positions))
        self.notices.append(Notice("success", "New portfolio applied successfully"))

    def discard_suggestion(self) -> None:
        self.suggestion = None

    def drain_notices(self) -> List[Notice]:
        notices, self.notices = self.notices, []
        return notices
