from __future__ import annotations

from math import isclose

import pytest

from drawdown.core.normalizer import normalize
from drawdown.core.projection import project, scheduled_withdrawal
from drawdown.models import CASH_LABEL, Position, RiskTier, WithdrawalSchedule


def single_position(amount: float, rate: float) -> list:
    return [Position(name="Index Fund", risk_tier=RiskTier.R3, target_amount=amount, expected_annual_return_rate=rate)]


def mixed_positions() -> list:
    return [
        Position(name="Treasury Bonds", risk_tier=RiskTier.R1, target_amount=20000, expected_annual_return_rate=3.5),
        Position(name="Global Tech ETF", risk_tier=RiskTier.R4, target_amount=15000, expected_annual_return_rate=11.0),
        Position(name="Dividend Stocks", risk_tier=RiskTier.R3, target_amount=15000, expected_annual_return_rate=7.0),
    ]


def test_escalation_formula():
    schedule = WithdrawalSchedule(base_annual_amount=1000, escalation_rate_percent=5)

    assert isclose(scheduled_withdrawal(schedule, 1), 1000.0)
    assert isclose(scheduled_withdrawal(schedule, 2), 1050.0)
    assert isclose(scheduled_withdrawal(schedule, 3), 1102.5)


def test_escalated_withdrawals_are_taken_in_full_when_affordable():
    working_set, _ = normalize(single_position(100000, 0), 100000)
    snapshots = project(working_set, 3, WithdrawalSchedule(base_annual_amount=1000, escalation_rate_percent=5))

    withdrawals = [snapshot.period_withdrawal for snapshot in snapshots]
    assert withdrawals[0] == 0.0
    assert isclose(withdrawals[1], 1000.0)
    assert isclose(withdrawals[2], 1050.0)
    assert isclose(withdrawals[3], 1102.5)


def test_growth_without_withdrawal():
    working_set, _ = normalize(single_position(100000, 5), 100000)
    snapshots = project(working_set, 1, WithdrawalSchedule())

    assert len(snapshots) == 2
    assert isclose(snapshots[1].total_value, 105000.0)
    assert snapshots[1].cumulative_withdrawn == 0.0
    assert isclose(snapshots[1].breakdown["Index Fund"], 105000.0)


def test_period_zero_snapshot():
    working_set, _ = normalize(mixed_positions()[:1] + mixed_positions()[2:], 50000)
    snapshots = project(working_set, 5, WithdrawalSchedule(base_annual_amount=2000))

    first = snapshots[0]
    assert first.period == 0
    assert first.total_value == 50000.0
    assert first.cumulative_withdrawn == 0.0
    assert first.period_withdrawal == 0.0
    assert dict(first.breakdown) == {"Treasury Bonds": 20000, "Dividend Stocks": 15000, CASH_LABEL: 15000}


def test_depletion_scenario():
    working_set, _ = normalize(single_position(1000, 0), 1000)
    snapshots = project(working_set, 2, WithdrawalSchedule(base_annual_amount=1500))

    year1, year2 = snapshots[1], snapshots[2]
    assert year1.total_value == 0.0
    assert year1.period_withdrawal == 1000.0
    assert year1.breakdown["Index Fund"] == 0.0

    assert year2.total_value == 0.0
    assert year2.period_withdrawal == 0.0
    assert year2.cumulative_withdrawn == 1000.0


def test_depletion_zeroes_every_position():
    working_set, _ = normalize(mixed_positions(), 60000)
    snapshots = project(working_set, 1, WithdrawalSchedule(base_annual_amount=1_000_000))

    last = snapshots[-1]
    assert all(value == 0.0 for value in last.breakdown.values())
    grown = 20000 * 1.035 + 15000 * 1.11 + 15000 * 1.07 + 10000
    assert isclose(last.period_withdrawal, grown)


def test_conservation_of_pro_rata_withdrawal():
    working_set, _ = normalize(mixed_positions(), 50000)
    snapshots = project(working_set, 1, WithdrawalSchedule(base_annual_amount=4000))

    before = {"Treasury Bonds": 20000 * 1.035, "Global Tech ETF": 15000 * 1.11, "Dividend Stocks": 15000 * 1.07}
    total_before = sum(before.values())
    after = snapshots[1].breakdown

    deductions = {name: before[name] - after[name] for name in before}
    assert isclose(sum(deductions.values()), 4000.0, rel_tol=1e-9)
    assert isclose(snapshots[1].total_value, total_before - 4000.0, rel_tol=1e-9)
    for name, value in before.items():
        assert isclose(deductions[name], 4000.0 * value / total_before, rel_tol=1e-9)


def test_withdrawal_equal_to_total_is_taken_in_full():
    working_set, _ = normalize(single_position(1000, 0), 1000)
    snapshots = project(working_set, 1, WithdrawalSchedule(base_annual_amount=1000))

    assert snapshots[1].period_withdrawal == 1000.0
    assert snapshots[1].total_value == 0.0


@pytest.mark.parametrize("withdrawal, escalation", [(0, 0), (2500, 3), (4000, 10), (60000, 0)])
def test_ledger_invariants(withdrawal, escalation):
    working_set, _ = normalize(mixed_positions(), 55000)
    snapshots = project(working_set, 30, WithdrawalSchedule(base_annual_amount=withdrawal, escalation_rate_percent=escalation))

    assert [snapshot.period for snapshot in snapshots] == list(range(31))

    running = 0.0
    previous = 0.0
    for snapshot in snapshots:
        running += snapshot.period_withdrawal
        assert snapshot.cumulative_withdrawn >= previous
        assert isclose(snapshot.cumulative_withdrawn, running, abs_tol=1e-6)
        assert snapshot.total_value >= 0
        assert all(value >= 0 for value in snapshot.breakdown.values())
        assert set(snapshot.breakdown) == set(snapshots[0].breakdown)
        previous = snapshot.cumulative_withdrawn

    for period, snapshot in enumerate(snapshots[1:], start=1):
        required = withdrawal * (1 + escalation / 100) ** (period - 1)
        assert snapshot.period_withdrawal <= required + 1e-9


def test_depleted_portfolio_never_regrows():
    working_set, _ = normalize(mixed_positions(), 50000)
    snapshots = project(working_set, 10, WithdrawalSchedule(base_annual_amount=30000))

    depleted = [snapshot for snapshot in snapshots if snapshot.total_value == 0.0]
    assert depleted
    first = depleted[0].period
    for snapshot in snapshots[first:]:
        assert snapshot.total_value == 0.0
        assert snapshot.cumulative_withdrawn == depleted[0].cumulative_withdrawn


def test_project_does_not_mutate_working_set():
    working_set, _ = normalize(mixed_positions(), 50000)
    before = [position.current_value for position in working_set]

    project(working_set, 5, WithdrawalSchedule(base_annual_amount=3000))

    assert [position.current_value for position in working_set] == before


def test_snapshot_breakdown_is_read_only():
    working_set, _ = normalize(single_position(1000, 5), 1000)
    snapshot = project(working_set, 1, WithdrawalSchedule())[1]

    with pytest.raises(TypeError):
        snapshot.breakdown["Index Fund"] = 0.0


def test_overflowed_position_is_kept_when_nothing_is_withdrawn():
    working_set, _ = normalize(single_position(1e308, 100), 1e308)
    snapshots = project(working_set, 2, WithdrawalSchedule())

    assert snapshots[1].breakdown["Index Fund"] == float("inf")
    assert snapshots[2].total_value == float("inf")
    assert snapshots[2].cumulative_withdrawn == 0.0
