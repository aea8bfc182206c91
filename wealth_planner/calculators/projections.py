"""Year-by-year projection of a household balance sheet.

Two entry points share the same cash-flow rules:

* ``run_deterministic`` walks every asset and liability through one expected
  path and reports a :class:`~wealth_planner.models.ProjectionPoint` per year.
* ``run_monte_carlo`` pools the investable assets into one balance, randomises
  its returns and reports order-statistic percentile paths plus a success rate.

Point 0 is the opening balance sheet at the current age, less the first
withdrawal when the plan already starts in retirement.  Each following
point applies, in order: asset growth and contributions, liability interest
and payments, funding of those payments from non-income assets, the
retirement withdrawal, and finally the net worth and sustainability ratio.
Income assets are a flow marker: their nominal value while working, zero once
retired, and never grown, topped up or drawn down.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import DEFAULTS
from ..errors import ComputationError
from ..models import (
    Asset,
    MonteCarloResult,
    PERCENTILE_KEYS,
    ProjectionInput,
    ProjectionPoint,
    WithdrawalStrategy,
)
from . import monte_carlo

logger = logging.getLogger(__name__)


def withdrawal_for_year(
    strategy: WithdrawalStrategy,
    retirement_value: float,
    years_retired: int,
    inflation_rate: float,
) -> float:
    """Withdrawal due ``years_retired`` years after the retirement age.

    A safe-withdrawal-rate plan takes ``rate`` of the value frozen at
    retirement; a systematic plan takes its fixed amount.  Either is scaled by
    ``(1 + inflation_rate) ** years_retired`` when inflation adjusted.
    """
    if strategy.kind == "swr":
        rate = DEFAULTS["swr_rate"] if strategy.rate is None else strategy.rate
        amount = retirement_value * rate
    else:
        amount = strategy.fixed_amount or 0.0
    if strategy.inflation_adjusted:
        amount *= (1.0 + inflation_rate) ** years_retired
    return amount


def allocate_proportionally(values: List[float], amount: float, eligible: Sequence[bool]) -> None:
    """Take ``amount`` out of ``values`` in proportion to each eligible value.

    Values are updated in place and floored at zero.  Nothing happens when
    the eligible base is zero.
    """
    base = sum(v for v, ok in zip(values, eligible) if ok)
    if amount <= 0 or base <= 0:
        return
    for i, ok in enumerate(eligible):
        if ok:
            values[i] = max(0.0, values[i] - amount * (values[i] / base))


def sustainability_ratio(total_assets: float, withdrawal: float, years_remaining: int) -> float:
    need = withdrawal * years_remaining
    if need <= 0:
        return math.inf
    return total_assets / need


def _income_value(asset: Asset, retired: bool) -> float:
    return 0.0 if retired else asset.current_value


def _check_finite(age: int, *numbers: float) -> None:
    for n in numbers:
        if math.isnan(n) or math.isinf(n):
            raise ComputationError(f"projection produced a non-finite value at age {age}")


def _snapshot(assets: Sequence[Asset], values: Sequence[float]) -> Dict[str, float]:
    return {a.name: v for a, v in zip(assets, values)}


# ---------- Deterministic ----------

def run_deterministic(
    projection_input: ProjectionInput,
    strategy: Optional[WithdrawalStrategy] = None,
    start_year: Optional[int] = None,
) -> List[ProjectionPoint]:
    """Project every asset and liability along the expected path.

    Returns ``life_expectancy - current_age + 1`` points (empty when life
    expectancy is already behind the current age).  ``start_year`` is the
    calendar year of point 0 and defaults to this year.
    """
    inp = projection_input
    year_count = inp.year_count
    if year_count < 0:
        return []
    start_year = date.today().year if start_year is None else start_year
    retirement_age = inp.goals.retirement_age
    life_expectancy = inp.goals.life_expectancy

    assets = inp.assets
    liabilities = inp.liabilities
    investable = [not a.is_income for a in assets]
    every_asset = [True] * len(assets)

    # Ledger state, indexed like ``assets`` / ``liabilities``
    opening_retired = inp.current_age >= retirement_age
    values = [
        _income_value(a, opening_retired) if a.is_income else a.current_value
        for a in assets
    ]
    balances = [l.current_balance for l in liabilities]
    retirement_value: Optional[float] = None
    _check_finite(inp.current_age, sum(values) - sum(balances))

    # Already retired: the opening year is the first withdrawal year
    first_withdrawal = 0.0
    opening_ratio = None
    if opening_retired and strategy is not None:
        retirement_value = sum(values)
        first_withdrawal = withdrawal_for_year(
            strategy, retirement_value, inp.current_age - retirement_age, inp.inflation_rate
        )
        allocate_proportionally(values, first_withdrawal, every_asset)
        if first_withdrawal > 0:
            opening_ratio = sustainability_ratio(
                sum(values), first_withdrawal, life_expectancy - inp.current_age
            )

    points = [
        ProjectionPoint(
            age=inp.current_age,
            year=start_year,
            net_worth=sum(values) - sum(balances),
            assets=_snapshot(assets, values),
            liabilities={l.name: b for l, b in zip(liabilities, balances)},
            withdrawal_amount=first_withdrawal,
            sustainability_ratio=opening_ratio,
        )
    ]

    for offset in range(1, year_count + 1):
        age = inp.current_age + offset
        retired = age >= retirement_age

        # 1. growth and contributions
        for i, asset in enumerate(assets):
            if asset.is_income:
                values[i] = _income_value(asset, retired)
                continue
            value = values[i] * (1.0 + asset.growth_rate)
            if not retired:
                value += asset.annual_contribution()
            values[i] = max(0.0, value)
        grown_total = sum(values)

        # 2. interest and payments; liabilities ignore the retirement boundary
        payments_due = 0.0
        for j, liability in enumerate(liabilities):
            balance = balances[j]
            if balance > 0:
                balance *= 1.0 + liability.interest_rate
                balance = max(0.0, balance - liability.annual_payment)
                payments_due += liability.annual_payment
            balances[j] = balance

        # 3. payments come out of investable assets
        allocate_proportionally(values, payments_due, investable)

        # 4. retirement withdrawal
        withdrawal = 0.0
        if retired and strategy is not None:
            if retirement_value is None:
                retirement_value = grown_total
            withdrawal = withdrawal_for_year(
                strategy, retirement_value, age - retirement_age, inp.inflation_rate
            )
            allocate_proportionally(values, withdrawal, every_asset)

        # 5. net worth
        total_assets = sum(values)
        net_worth = total_assets - sum(balances)

        # 6. sustainability
        ratio = None
        if retired and withdrawal > 0:
            ratio = sustainability_ratio(total_assets, withdrawal, life_expectancy - age)

        _check_finite(age, net_worth, withdrawal)
        points.append(
            ProjectionPoint(
                age=age,
                year=start_year + offset,
                net_worth=net_worth,
                assets=_snapshot(assets, values),
                liabilities={l.name: b for l, b in zip(liabilities, balances)},
                withdrawal_amount=withdrawal,
                sustainability_ratio=ratio,
            )
        )

    logger.debug(
        "deterministic projection: %d points, final net worth %.2f",
        len(points), points[-1].net_worth,
    )
    return points


# ---------- Monte Carlo ----------

def blended_assumptions(assets: Sequence[Asset]) -> Tuple[float, float, float, Dict[str, float]]:
    """Pool the investable assets into one balance.

    Returns ``(start_value, weighted_return, weighted_volatility, weights)``
    where weights are each asset's share of today's pooled value (equal
    shares when the pool is empty of value).
    """
    pool = [a for a in assets if not a.is_income]
    if not pool:
        return 0.0, DEFAULTS["expected_return"], DEFAULTS["volatility"], {}
    total = sum(a.current_value for a in pool)
    if total > 0:
        weights = {a.name: a.current_value / total for a in pool}
    else:
        weights = {a.name: 1.0 / len(pool) for a in pool}
    weighted_return = sum(a.growth_rate * weights[a.name] for a in pool)
    weighted_volatility = sum(a.return_volatility * weights[a.name] for a in pool)
    return total, weighted_return, weighted_volatility, weights


def opening_withdrawal(
    projection_input: ProjectionInput,
    strategy: Optional[WithdrawalStrategy],
    start_value: float,
) -> float:
    """Withdrawal taken at the current age when the plan opens in retirement."""
    inp = projection_input
    retirement_age = inp.goals.retirement_age
    if strategy is None or inp.current_age < retirement_age:
        return 0.0
    return withdrawal_for_year(strategy, start_value, inp.current_age - retirement_age, inp.inflation_rate)


def build_cash_flow_schedule(
    projection_input: ProjectionInput,
    strategy: Optional[WithdrawalStrategy],
    start_value: float,
    weighted_return: float,
) -> Tuple[List[float], List[float]]:
    """Contribution and withdrawal schedules for the pooled balance.

    Entry ``y`` holds the flows of the year ending at ``current_age + y + 1``.
    The safe-withdrawal base is the pooled value reached at the first retired
    age along the expected (non-random) path, or today's pooled value when the
    plan opens in retirement (see :func:`opening_withdrawal`).
    """
    inp = projection_input
    retirement_age = inp.goals.retirement_age
    pooled_contribution = sum(a.annual_contribution() for a in inp.assets if not a.is_income)

    contributions: List[float] = []
    withdrawals: List[float] = []
    expected = start_value
    retirement_value: Optional[float] = None
    if inp.current_age >= retirement_age and strategy is not None:
        retirement_value = start_value
        expected = max(0.0, start_value - opening_withdrawal(inp, strategy, start_value))
    for y in range(max(0, inp.year_count)):
        age = inp.current_age + y + 1
        retired = age >= retirement_age
        contribution = 0.0 if retired else pooled_contribution
        expected = expected * (1.0 + weighted_return) + contribution

        withdrawal = 0.0
        if retired and strategy is not None:
            if retirement_value is None:
                retirement_value = expected
            withdrawal = withdrawal_for_year(
                strategy, retirement_value, age - retirement_age, inp.inflation_rate
            )
            expected = max(0.0, expected - withdrawal)

        contributions.append(contribution)
        withdrawals.append(withdrawal)
    return contributions, withdrawals


def _percentile_points(
    inp: ProjectionInput,
    series: Sequence[float],
    weights: Dict[str, float],
    withdrawals: Sequence[float],
    start_year: int,
) -> Tuple[ProjectionPoint, ...]:
    retirement_age = inp.goals.retirement_age
    points = []
    for y, pooled in enumerate(series):
        age = inp.current_age + y
        retired = age >= retirement_age
        snapshot = {
            a.name: _income_value(a, retired) if a.is_income else pooled * weights[a.name]
            for a in inp.assets
        }
        total_assets = sum(snapshot.values())
        withdrawal = withdrawals[y] if retired else 0.0
        ratio = None
        if retired and withdrawal > 0:
            ratio = sustainability_ratio(total_assets, withdrawal, inp.goals.life_expectancy - age)
        points.append(
            ProjectionPoint(
                age=age,
                year=start_year + y,
                net_worth=total_assets,
                assets=snapshot,
                # stochastic analysis is asset-only
                liabilities={l.name: 0.0 for l in inp.liabilities},
                withdrawal_amount=withdrawal,
                sustainability_ratio=ratio,
            )
        )
    return tuple(points)


def run_monte_carlo(
    projection_input: ProjectionInput,
    strategy: Optional[WithdrawalStrategy] = None,
    simulation_count: int = DEFAULTS["simulation_count"],
    start_year: Optional[int] = None,
    seed=None,
    normal=None,
    workers: int = 1,
) -> MonteCarloResult:
    """Percentile paths for the pooled portfolio.

    Liabilities are reported at zero on every point; only the deterministic
    projection models them.  ``seed``, ``normal`` and ``workers`` are passed
    through to :func:`monte_carlo.run_simulations`.
    """
    inp = projection_input
    start_year = date.today().year if start_year is None else start_year
    year_count = max(0, inp.year_count)

    start_value, weighted_return, weighted_volatility, weights = blended_assumptions(inp.assets)
    contributions, withdrawals = build_cash_flow_schedule(inp, strategy, start_value, weighted_return)
    first = opening_withdrawal(inp, strategy, start_value)

    summary = monte_carlo.run_simulations(
        max(0.0, start_value - first),
        weighted_return,
        weighted_volatility,
        year_count,
        simulation_count=simulation_count,
        contributions=contributions,
        withdrawals=withdrawals,
        seed=seed,
        normal=normal,
        workers=workers,
    )
    if inp.year_count < 0:
        empty: Tuple[ProjectionPoint, ...] = ()
        return MonteCarloResult(empty, empty, empty, empty, empty, summary["success_rate"])

    series = {
        key: _percentile_points(inp, summary[key], weights, [first] + withdrawals, start_year)
        for key in PERCENTILE_KEYS
    }
    return MonteCarloResult(success_rate=summary["success_rate"], **series)


__all__ = [
    "run_deterministic",
    "run_monte_carlo",
    "withdrawal_for_year",
    "allocate_proportionally",
    "sustainability_ratio",
    "blended_assumptions",
    "build_cash_flow_schedule",
    "opening_withdrawal",
]
