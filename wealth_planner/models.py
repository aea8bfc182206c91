"""Plan inputs and projection outputs.

Inputs arrive as camelCase JSON bodies (see ``projection_input_from_dict``)
and are turned into frozen dataclasses the calculators can rely on: numbers
are finite floats, names are unique and defaults are filled in from
:data:`wealth_planner.config.DEFAULTS`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple, Union

from .config import DEFAULTS
from .errors import InvalidInputError

ASSET_TYPES = ("kiwisaver", "nz-work-super", "portfolio", "property", "income", "other")
LIABILITY_TYPES = ("mortgage", "loan", "credit-card", "other")
CONTRIBUTION_PERIODS = {"annual": 1, "monthly": 12, "weekly": 52}

# Asset type that receives employer and government top-ups
MATCHED_SAVINGS = "kiwisaver"
# Flow marker: counted while working, zero once retired
INCOME_STREAM = "income"


def _number(raw, name: str, default: Optional[float] = None, required: bool = False) -> Optional[float]:
    if raw is None:
        if required:
            raise InvalidInputError(f"{name} is required", field=name)
        return default
    if isinstance(raw, bool):
        raise InvalidInputError(f"{name} must be a number", field=name)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise InvalidInputError(f"{name} must be a number, got {raw!r}", field=name) from None
    if not math.isfinite(value):
        raise InvalidInputError(f"{name} must be finite, got {raw!r}", field=name)
    return value


def parse_int(raw, name: str, default: Optional[int] = None, required: bool = False) -> Optional[int]:
    value = _number(raw, name, default, required)
    if value is None:
        return None
    if value != int(value):
        raise InvalidInputError(f"{name} must be a whole number of years", field=name)
    return int(value)


@dataclass(frozen=True)
class Asset:
    name: str
    type: str = "other"
    current_value: float = 0.0
    contribution_amount: Optional[float] = None
    contribution_frequency: str = "annual"
    expected_return: Optional[float] = None
    volatility: Optional[float] = None
    employer_contribution: Optional[float] = None
    government_contribution: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.type, str) or self.type not in ASSET_TYPES:
            raise InvalidInputError(
                f"asset {self.name!r} has unknown type {self.type!r}; expected one of {', '.join(ASSET_TYPES)}",
                field="assets.type",
            )
        if not isinstance(self.contribution_frequency, str) or self.contribution_frequency not in CONTRIBUTION_PERIODS:
            raise InvalidInputError(
                f"asset {self.name!r} has unknown contribution frequency {self.contribution_frequency!r}",
                field="assets.contributionFrequency",
            )
        if self.current_value < 0:
            object.__setattr__(self, "current_value", 0.0)

    @property
    def is_income(self) -> bool:
        return self.type == INCOME_STREAM

    @property
    def growth_rate(self) -> float:
        # An explicit 0.0 is a real assumption; only a missing rate takes the default
        return DEFAULTS["expected_return"] if self.expected_return is None else self.expected_return

    @property
    def return_volatility(self) -> float:
        return DEFAULTS["volatility"] if self.volatility is None else self.volatility

    def annual_contribution(self) -> float:
        """Contribution normalised to a yearly figure, including matching top-ups."""
        if not self.contribution_amount:
            return 0.0
        total = self.contribution_amount * CONTRIBUTION_PERIODS[self.contribution_frequency]
        if self.type == MATCHED_SAVINGS:
            total += (self.employer_contribution or 0.0) + (self.government_contribution or 0.0)
        return total


@dataclass(frozen=True)
class Liability:
    name: str
    type: str = "other"
    current_balance: float = 0.0
    interest_rate: float = 0.0
    monthly_payment: float = 0.0
    remaining_months: Optional[int] = None

    def __post_init__(self):
        if not isinstance(self.type, str) or self.type not in LIABILITY_TYPES:
            raise InvalidInputError(
                f"liability {self.name!r} has unknown type {self.type!r}; expected one of {', '.join(LIABILITY_TYPES)}",
                field="liabilities.type",
            )
        if self.current_balance < 0:
            object.__setattr__(self, "current_balance", 0.0)

    @property
    def annual_payment(self) -> float:
        return self.monthly_payment * 12


@dataclass(frozen=True)
class Goal:
    retirement_age: int
    life_expectancy: int = DEFAULTS["life_expectancy"]
    name: str = DEFAULTS["goal_name"]
    target_age: Optional[int] = None
    desired_annual_income: Optional[float] = None
    inflation_rate: float = DEFAULTS["inflation_rate"]

    def __post_init__(self):
        if self.retirement_age > self.life_expectancy:
            raise InvalidInputError(
                f"goals.retirementAge ({self.retirement_age}) must not exceed "
                f"goals.lifeExpectancy ({self.life_expectancy})",
                field="goals.retirementAge",
            )


@dataclass(frozen=True)
class SafeWithdrawalRate:
    """Fixed share of the portfolio value frozen at retirement."""

    rate: float = DEFAULTS["swr_rate"]
    inflation_adjusted: bool = True
    kind: str = field(default="swr", init=False)


@dataclass(frozen=True)
class SystematicWithdrawalPlan:
    """Fixed nominal amount each retired year."""

    fixed_amount: float = 0.0
    inflation_adjusted: bool = True
    kind: str = field(default="swp", init=False)


WithdrawalStrategy = Union[SafeWithdrawalRate, SystematicWithdrawalPlan]


@dataclass(frozen=True)
class ProjectionInput:
    current_age: int
    goals: Goal
    assets: Tuple[Asset, ...] = ()
    liabilities: Tuple[Liability, ...] = ()
    inflation_rate: float = DEFAULTS["inflation_rate"]
    tax_year: int = DEFAULTS["tax_year"]

    def __post_init__(self):
        # lists are accepted for convenience but stored as tuples
        object.__setattr__(self, "assets", tuple(self.assets))
        object.__setattr__(self, "liabilities", tuple(self.liabilities))
        for label, items in (("assets", self.assets), ("liabilities", self.liabilities)):
            seen = set()
            for item in items:
                if item.name in seen:
                    raise InvalidInputError(f"duplicate {label} name {item.name!r}", field=f"{label}.name")
                seen.add(item.name)

    @property
    def year_count(self) -> int:
        return self.goals.life_expectancy - self.current_age


@dataclass(frozen=True)
class ProjectionPoint:
    age: int
    year: int
    net_worth: float
    assets: Mapping[str, float]
    liabilities: Mapping[str, float]
    withdrawal_amount: float = 0.0
    sustainability_ratio: Optional[float] = None

    def __post_init__(self):
        # read-only views over private copies
        object.__setattr__(self, "assets", MappingProxyType(dict(self.assets)))
        object.__setattr__(self, "liabilities", MappingProxyType(dict(self.liabilities)))

    @property
    def total_assets(self) -> float:
        return sum(self.assets.values())

    @property
    def total_liabilities(self) -> float:
        return sum(self.liabilities.values())

    def to_dict(self) -> dict:
        return {
            "age": self.age,
            "year": self.year,
            "netWorth": self.net_worth,
            "assets": dict(self.assets),
            "liabilities": dict(self.liabilities),
            "withdrawalAmount": self.withdrawal_amount,
            "sustainabilityRatio": self.sustainability_ratio,
        }


PERCENTILE_KEYS = ("p10", "p25", "median", "p75", "p90")


@dataclass(frozen=True)
class MonteCarloResult:
    p10: Tuple[ProjectionPoint, ...]
    p25: Tuple[ProjectionPoint, ...]
    median: Tuple[ProjectionPoint, ...]
    p75: Tuple[ProjectionPoint, ...]
    p90: Tuple[ProjectionPoint, ...]
    success_rate: float

    def percentile(self, key: str) -> Tuple[ProjectionPoint, ...]:
        if key not in PERCENTILE_KEYS:
            raise KeyError(key)
        return getattr(self, key)

    def to_dict(self) -> dict:
        out = {k: [p.to_dict() for p in self.percentile(k)] for k in PERCENTILE_KEYS}
        out["successRate"] = self.success_rate
        return out


# ---------- Parsing from request bodies ----------

def asset_from_dict(raw: Mapping, index: int = 0) -> Asset:
    if not isinstance(raw, Mapping):
        raise InvalidInputError(f"assets[{index}] must be an object", field="assets")
    name = raw.get("name")
    if not name:
        raise InvalidInputError(f"assets[{index}].name is required", field="assets.name")
    prefix = f"assets[{index}]"
    return Asset(
        name=str(name),
        type=raw.get("type") or "other",
        current_value=max(0.0, _number(raw.get("currentValue"), f"{prefix}.currentValue", default=0.0)),
        contribution_amount=_number(raw.get("contributionAmount"), f"{prefix}.contributionAmount"),
        contribution_frequency=raw.get("contributionFrequency") or "annual",
        expected_return=_number(raw.get("expectedReturn"), f"{prefix}.expectedReturn"),
        volatility=_number(raw.get("volatility"), f"{prefix}.volatility"),
        employer_contribution=_number(raw.get("employerContribution"), f"{prefix}.employerContribution"),
        government_contribution=_number(raw.get("governmentContribution"), f"{prefix}.governmentContribution"),
    )


def liability_from_dict(raw: Mapping, index: int = 0) -> Liability:
    if not isinstance(raw, Mapping):
        raise InvalidInputError(f"liabilities[{index}] must be an object", field="liabilities")
    name = raw.get("name")
    if not name:
        raise InvalidInputError(f"liabilities[{index}].name is required", field="liabilities.name")
    prefix = f"liabilities[{index}]"
    return Liability(
        name=str(name),
        type=raw.get("type") or "other",
        current_balance=max(0.0, _number(raw.get("currentBalance"), f"{prefix}.currentBalance", default=0.0)),
        interest_rate=_number(raw.get("interestRate"), f"{prefix}.interestRate", required=True),
        monthly_payment=_number(raw.get("monthlyPayment"), f"{prefix}.monthlyPayment", default=0.0),
        remaining_months=parse_int(raw.get("remainingMonths"), f"{prefix}.remainingMonths"),
    )


def goal_from_dict(raw: Mapping, current_age: int) -> Goal:
    if not isinstance(raw, Mapping):
        raise InvalidInputError("goals must be an object", field="goals")
    return Goal(
        name=raw.get("name") or DEFAULTS["goal_name"],
        target_age=parse_int(raw.get("targetAge"), "goals.targetAge", default=current_age),
        retirement_age=parse_int(raw.get("retirementAge"), "goals.retirementAge", required=True),
        life_expectancy=parse_int(raw.get("lifeExpectancy"), "goals.lifeExpectancy", default=DEFAULTS["life_expectancy"]),
        desired_annual_income=_number(raw.get("desiredAnnualIncome"), "goals.desiredAnnualIncome"),
        inflation_rate=_number(raw.get("inflationRate"), "goals.inflationRate", default=DEFAULTS["inflation_rate"]),
    )


def projection_input_from_dict(body: Mapping) -> ProjectionInput:
    """Build a :class:`ProjectionInput` from a camelCase request body."""
    current_age = parse_int(body.get("currentAge"), "currentAge", required=True)
    assets = body.get("assets") or []
    liabilities = body.get("liabilities") or []
    if not isinstance(assets, list):
        raise InvalidInputError("assets must be a list", field="assets")
    if not isinstance(liabilities, list):
        raise InvalidInputError("liabilities must be a list", field="liabilities")
    return ProjectionInput(
        current_age=current_age,
        goals=goal_from_dict(body.get("goals"), current_age),
        assets=[asset_from_dict(a, i) for i, a in enumerate(assets)],
        liabilities=[liability_from_dict(l, i) for i, l in enumerate(liabilities)],
        inflation_rate=_number(body.get("inflationRate"), "inflationRate", default=DEFAULTS["inflation_rate"]),
        tax_year=parse_int(body.get("taxYear"), "taxYear", default=DEFAULTS["tax_year"]),
    )


def withdrawal_strategy_from_dict(raw: Optional[Mapping], goals: Optional[Goal] = None) -> WithdrawalStrategy:
    """Resolve the withdrawal policy for a request.

    An explicit ``withdrawalStrategy`` wins; otherwise a desired annual income
    becomes an inflation-adjusted systematic plan; otherwise the 4% rule.
    """
    if raw is not None:
        if not isinstance(raw, Mapping):
            raise InvalidInputError("withdrawalStrategy must be an object", field="withdrawalStrategy")
        kind = raw.get("type") or "swr"
        adjusted = raw.get("inflationAdjusted") is not False
        if kind == "swr":
            rate = _number(raw.get("rate"), "withdrawalStrategy.rate", default=DEFAULTS["swr_rate"])
            return SafeWithdrawalRate(rate=rate, inflation_adjusted=adjusted)
        if kind == "swp":
            amount = _number(raw.get("fixedAmount"), "withdrawalStrategy.fixedAmount", default=0.0)
            return SystematicWithdrawalPlan(fixed_amount=amount, inflation_adjusted=adjusted)
        raise InvalidInputError(
            f"Invalid withdrawalStrategy.type {kind!r}. Must be one of: swr, swp",
            field="withdrawalStrategy.type",
        )
    if goals is not None and goals.desired_annual_income:
        return SystematicWithdrawalPlan(fixed_amount=goals.desired_annual_income, inflation_adjusted=True)
    return SafeWithdrawalRate()


__all__ = [
    "ASSET_TYPES",
    "LIABILITY_TYPES",
    "Asset",
    "Liability",
    "Goal",
    "SafeWithdrawalRate",
    "SystematicWithdrawalPlan",
    "WithdrawalStrategy",
    "ProjectionInput",
    "ProjectionPoint",
    "MonteCarloResult",
    "PERCENTILE_KEYS",
    "parse_int",
    "projection_input_from_dict",
    "withdrawal_strategy_from_dict",
]
