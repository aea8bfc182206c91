import math

import pytest

from wealth_planner.calculators import projections
from wealth_planner.components.charts import ACCUMULATION, DECUMULATION, NET_WORTH, ChartSpecBuilder, phase_for
from wealth_planner.models import Asset, Goal, Liability, ProjectionInput, ProjectionPoint, SafeWithdrawalRate


def _points():
    inp = ProjectionInput(
        current_age=60,
        goals=Goal(retirement_age=63, life_expectancy=66),
        assets=[Asset("Shares", "portfolio", 200000.0, expected_return=0.05),
                Asset("Salary", "income", 80000.0)],
        liabilities=[Liability("Car", "loan", 5000.0, interest_rate=0.1, monthly_payment=500.0)],
    )
    return projections.run_deterministic(inp, SafeWithdrawalRate(), start_year=2024)


def test_phase_boundary():
    assert phase_for(62, 63) == ACCUMULATION
    assert phase_for(63, 63) == DECUMULATION


def test_records_layout():
    points = _points()
    rows = ChartSpecBuilder().records(points, 63)
    assert len(rows) == len(points) * (1 + 2 + 1)

    net_worth = rows[: len(points)]
    assert all(r["category"] == NET_WORTH for r in net_worth)
    assert [r["age"] for r in net_worth] == list(range(60, 67))
    assert net_worth[0]["phase"] == ACCUMULATION
    assert net_worth[-1]["phase"] == DECUMULATION
    assert net_worth[0]["withdrawalAmount"] == 0.0

    kinds = {r["category"]: r["kind"] for r in rows}
    assert kinds == {NET_WORTH: "net_worth", "Shares": "asset", "Salary": "asset", "Car": "liability"}


def test_infinite_ratio_is_blank():
    point = ProjectionPoint(66, 2030, 1.0, {}, {}, withdrawal_amount=5.0, sustainability_ratio=math.inf)
    (row,) = ChartSpecBuilder().records([point], 65)
    assert row["sustainabilityRatio"] is None


def test_build_spec():
    points = _points()
    spec = ChartSpecBuilder().build(points, 63)
    assert spec["retirementAge"] == 63
    assert spec["title"].startswith("Financial Projections")
    assert len(spec["values"]) == len(points) * 4
    traces = spec["figure"]["data"]
    assert [t["name"] for t in traces] == [NET_WORTH, "Shares", "Salary", "Car"]
    assert list(traces[0]["y"]) == pytest.approx([p.net_worth for p in points])
    assert traces[3]["line"]["dash"] == "dot"


def test_build_without_points():
    spec = ChartSpecBuilder().build([], 65)
    assert spec["values"] == []
    assert list(spec["figure"]["data"]) == []


def test_fan_chart_and_gauge():
    inp = ProjectionInput(current_age=60, goals=Goal(62, 64), assets=[Asset("Shares", "portfolio", 1000.0)])
    result = projections.run_monte_carlo(inp, SafeWithdrawalRate(), 20, start_year=2024, seed=4)
    builder = ChartSpecBuilder()
    fan = builder.fan_chart(result)
    assert len(fan["data"]) == 5
    assert list(fan["data"][-1]["x"]) == [60, 61, 62, 63, 64]

    assert builder.success_gauge(140.0)["data"][0]["value"] == 100.0
    assert builder.success_gauge(-3.0)["data"][0]["value"] == 0.0


def test_sustainability_chart_skips_blank_years():
    points = _points()
    fig = ChartSpecBuilder().sustainability_chart(points, 63)
    expected = [p.age for p in points if p.sustainability_ratio is not None and math.isfinite(p.sustainability_ratio)]
    assert list(fig["data"][0]["x"]) == expected
