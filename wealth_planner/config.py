"""Default assumptions and logging setup shared across the package."""

from __future__ import annotations

import logging
import os
from typing import Optional

APP_NAME = "Wealth Planner"

# Defaults used whenever an input omits a value
DEFAULTS = {
    "inflation_rate": 0.02,
    "life_expectancy": 90,
    "expected_return": 0.05,
    "volatility": 0.10,
    "swr_rate": 0.04,
    "simulation_count": 1000,
    "tax_year": 2024,
    "goal_name": "Retirement Goal",
    "projection_method": "monteCarlo",
    "response_format": "full",
}

PROJECTION_METHODS = ("deterministic", "monteCarlo")
RESPONSE_FORMATS = ("full", "dataOnly")

LOG_LEVEL_ENV = "WEALTH_PLANNER_LOG_LEVEL"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging once; ``level`` falls back to the environment."""
    name = (level or os.environ.get(LOG_LEVEL_ENV, "INFO")).upper()
    logging.basicConfig(level=getattr(logging, name, logging.INFO), format=LOG_FORMAT)
