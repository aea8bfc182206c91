"""Tax calculation utilities.

This module implements New Zealand personal income tax as a pure bracket
lookup.  The defaults embed IRD thresholds for the 2024 tax year with the
2025 thresholds alongside.  Progressive rates are applied to gross income with
no deductions or credits, and the prescribed investor rate (PIR) used for
KiwiSaver and other PIE funds is looked up from the same tables.

The projection engine does not net tax out of its cash flows; these functions
are offered alongside it for reporting.

Example
-------

>>> # Income tax on $60 000 for the 2024 tax year
>>> round(compute_income_tax(60000, year=2024), 2)
11020.0

The underlying brackets can be customised by passing a dictionary matching the
schema in ``data/tax_tables.json``.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

from ..errors import InvalidInputError

_DEFAULT_TAX_TABLE_PATH = Path(__file__).resolve().parent.parent / "data" / "tax_tables.json"


@lru_cache(maxsize=None)
def _default_tables() -> Dict[str, Dict]:
    return _load_tax_tables()


def _load_tax_tables(path: Optional[Path] = None) -> Dict[str, Dict]:
    """Load tax tables from JSON.  If ``path`` is not provided, load the
    default file shipped with the package.

    Parameters
    ----------
    path : Path, optional
        Path to a JSON file containing the tax tables.

    Returns
    -------
    dict
        The parsed tax tables.
    """
    p = path or _DEFAULT_TAX_TABLE_PATH
    with open(p, "r", encoding="utf-8") as f:
        tables = json.load(f)
    return tables


def _year_tables(year: int, tax_tables: Optional[Dict[str, Dict]]) -> Dict:
    tables = tax_tables or _default_tables()
    try:
        return tables[str(year)]
    except KeyError:
        raise InvalidInputError(
            f"no tax tables for {year}; available: {', '.join(sorted(tables))}", field="taxYear"
        ) from None


def compute_income_tax(
    income: float,
    year: int = 2024,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Compute income tax due on ``income``.

    The tax is calculated progressively using the brackets defined under the
    chosen year.  Income at or below zero owes nothing.
    """
    if income <= 0:
        return 0.0
    brackets = _year_tables(year, tax_tables)["income"]["brackets"]
    tax = 0.0
    remaining = income
    for bracket in brackets:
        rate = bracket["rate"]
        start = bracket["start"]
        end = bracket["end"] if bracket["end"] is not None else float("inf")
        width = end - start
        if remaining <= 0:
            break
        if income > start:
            amount = min(remaining, width)
            tax += amount * rate
            remaining -= amount
        else:
            break
    return tax


def after_tax_income(
    gross_income: float,
    year: int = 2024,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    return gross_income - compute_income_tax(gross_income, year, tax_tables)


def effective_tax_rate(
    income: float,
    year: int = 2024,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """Average rate paid across all brackets (0 for non-positive income)."""
    if income <= 0:
        return 0.0
    return compute_income_tax(income, year, tax_tables) / income


def prescribed_investor_rate(
    income: float,
    year: int = 2024,
    tax_tables: Optional[Dict[str, Dict]] = None,
) -> float:
    """PIE tax rate for KiwiSaver and other portfolio investment entities."""
    for tier in _year_tables(year, tax_tables)["pir"]:
        if tier["max_income"] is None or income <= tier["max_income"]:
            return tier["rate"]
    raise InvalidInputError(f"PIR table for {year} has no open-ended tier", field="taxYear")


__all__ = [
    "compute_income_tax",
    "after_tax_income",
    "effective_tax_rate",
    "prescribed_investor_rate",
    "_load_tax_tables",
]
