"""Tests for the pooled Monte Carlo projection."""

import math

import pytest

from wealth_planner.calculators import projections
from wealth_planner.models import (
    Asset,
    Goal,
    Liability,
    PERCENTILE_KEYS,
    ProjectionInput,
    SafeWithdrawalRate,
    SystematicWithdrawalPlan,
)


def _plan(volatility=0.15):
    return ProjectionInput(
        current_age=55,
        goals=Goal(retirement_age=65, life_expectancy=90),
        assets=[
            Asset("KiwiSaver", "kiwisaver", 100000.0, contribution_amount=200.0, contribution_frequency="weekly",
                  expected_return=0.06, volatility=volatility, employer_contribution=3000.0),
            Asset("Shares", "portfolio", 300000.0, expected_return=0.07, volatility=volatility),
            Asset("Salary", "income", 95000.0, expected_return=0.0, volatility=0.0),
        ],
        liabilities=[Liability("Mortgage", "mortgage", 200000.0, interest_rate=0.06, monthly_payment=2000.0)],
    )


def test_percentile_series_shape_and_order():
    result = projections.run_monte_carlo(_plan(), SafeWithdrawalRate(), 300, start_year=2024, seed=5)
    for key in PERCENTILE_KEYS:
        series = result.percentile(key)
        assert len(series) == 90 - 55 + 1
        assert series[0].age == 55 and series[-1].age == 90
        assert series[0].year == 2024
    for y in range(36):
        nws = [result.percentile(k)[y].net_worth for k in PERCENTILE_KEYS]
        assert nws == sorted(nws)
    assert 0.0 <= result.success_rate <= 100.0


def test_liabilities_reported_as_zero():
    result = projections.run_monte_carlo(_plan(), SafeWithdrawalRate(), 50, start_year=2024, seed=1)
    for p in result.median:
        assert p.liabilities == {"Mortgage": 0.0}
        assert p.net_worth == pytest.approx(sum(p.assets.values()))


def test_income_assets_follow_phase():
    result = projections.run_monte_carlo(_plan(), SafeWithdrawalRate(), 50, start_year=2024, seed=2)
    by_age = {p.age: p for p in result.p25}
    assert by_age[64].assets["Salary"] == 95000.0
    assert by_age[65].assets["Salary"] == 0.0


def test_pooled_value_split_by_opening_weights():
    result = projections.run_monte_carlo(_plan(), None, 50, start_year=2024, seed=3)
    opening = result.median[0]
    assert opening.assets["KiwiSaver"] == pytest.approx(100000.0)
    assert opening.assets["Shares"] == pytest.approx(300000.0)
    later = result.median[10]
    assert later.assets["Shares"] == pytest.approx(3 * later.assets["KiwiSaver"])


def test_zero_volatility_matches_deterministic_path():
    inp = ProjectionInput(
        current_age=35,
        goals=Goal(retirement_age=40, life_expectancy=45),
        assets=[Asset("Portfolio", "portfolio", 100000.0, contribution_amount=1000.0,
                      expected_return=0.07, volatility=0.0)],
    )
    for strategy in (SafeWithdrawalRate(rate=0.05), SystematicWithdrawalPlan(5000.0)):
        det = projections.run_deterministic(inp, strategy, start_year=2024)
        mc = projections.run_monte_carlo(inp, strategy, 20, start_year=2024, seed=0)
        assert mc.success_rate == 100.0
        for d, m in zip(det, mc.median):
            assert m.net_worth == pytest.approx(d.net_worth, rel=1e-9)
            assert m.withdrawal_amount == pytest.approx(d.withdrawal_amount, rel=1e-9)
            if d.sustainability_ratio is None:
                assert m.sustainability_ratio is None
            elif math.isinf(d.sustainability_ratio):
                assert math.isinf(m.sustainability_ratio)
            else:
                assert m.sustainability_ratio == pytest.approx(d.sustainability_ratio, rel=1e-9)


def test_seeded_runs_repeat():
    first = projections.run_monte_carlo(_plan(), SafeWithdrawalRate(), 40, start_year=2024, seed=77)
    second = projections.run_monte_carlo(_plan(), SafeWithdrawalRate(), 40, start_year=2024, seed=77)
    assert first == second


def test_blended_assumptions_are_value_weighted():
    start, ret, vol, weights = projections.blended_assumptions(_plan(volatility=0.1).assets)
    assert start == pytest.approx(400000.0)
    assert ret == pytest.approx(0.25 * 0.06 + 0.75 * 0.07)
    assert vol == pytest.approx(0.1)
    assert weights == pytest.approx({"KiwiSaver": 0.25, "Shares": 0.75})


def test_blended_assumptions_defaults():
    start, ret, vol, weights = projections.blended_assumptions([Asset("Salary", "income", 50000.0)])
    assert (start, ret, vol, weights) == (0.0, 0.05, 0.10, {})
    _, _, _, equal = projections.blended_assumptions([Asset("A", "other", 0.0), Asset("B", "other", 0.0)])
    assert equal == {"A": 0.5, "B": 0.5}


def test_cash_flow_schedule():
    inp = ProjectionInput(
        current_age=60,
        goals=Goal(retirement_age=62, life_expectancy=65),
        assets=[Asset("Portfolio", "portfolio", 100000.0, contribution_amount=1000.0, expected_return=0.0)],
        inflation_rate=0.02,
    )
    contributions, withdrawals = projections.build_cash_flow_schedule(
        inp, SafeWithdrawalRate(rate=0.04), 100000.0, 0.0
    )
    # entries cover ages 61..65
    assert contributions == [1000.0, 0.0, 0.0, 0.0, 0.0]
    assert withdrawals[0] == 0.0
    assert withdrawals[1] == pytest.approx(101000.0 * 0.04)
    assert withdrawals[2] == pytest.approx(101000.0 * 0.04 * 1.02)
    assert len(withdrawals) == 5


def test_expired_horizon_gives_empty_series():
    inp = ProjectionInput(current_age=92, goals=Goal(retirement_age=65, life_expectancy=90),
                          assets=[Asset("Portfolio", "portfolio", 1000.0)])
    result = projections.run_monte_carlo(inp, SafeWithdrawalRate(), 10, seed=1)
    assert result.median == ()
