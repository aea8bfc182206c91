"""Deterministic and Monte Carlo personal-finance projections."""

from .calculators.projections import run_deterministic, run_monte_carlo
from .models import (
    Asset,
    Goal,
    Liability,
    MonteCarloResult,
    ProjectionInput,
    ProjectionPoint,
    SafeWithdrawalRate,
    SystematicWithdrawalPlan,
)

__version__ = "0.1.0"

__all__ = [
    "run_deterministic",
    "run_monte_carlo",
    "Asset",
    "Goal",
    "Liability",
    "MonteCarloResult",
    "ProjectionInput",
    "ProjectionPoint",
    "SafeWithdrawalRate",
    "SystematicWithdrawalPlan",
]
