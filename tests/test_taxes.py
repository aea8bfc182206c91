"""Unit tests for the taxes module.

These tests verify that income tax and PIR lookups using the embedded IRD
tables produce expected results for the 2024 and 2025 tax years.
"""

import math

import pytest

from wealth_planner.calculators import taxes as tax_calc
from wealth_planner.errors import InvalidInputError


def test_income_tax_example():
    """Income tax on $60k for the 2024 tax year."""
    tax = tax_calc.compute_income_tax(60000, year=2024)
    assert math.isclose(tax, 11020.0, rel_tol=1e-9)


def test_income_tax_2025_thresholds():
    """The 2025 thresholds are wider, so the same income owes less."""
    tax = tax_calc.compute_income_tax(60000, year=2025)
    assert math.isclose(tax, 10220.5, rel_tol=1e-9)


def test_top_bracket():
    # 1470 + 5950 + 6600 + 36300 + 0.39 * 20000
    tax = tax_calc.compute_income_tax(200000, year=2024)
    assert math.isclose(tax, 58120.0, rel_tol=1e-9)


def test_zero_and_negative_income():
    assert tax_calc.compute_income_tax(0) == 0.0
    assert tax_calc.compute_income_tax(-500) == 0.0
    assert tax_calc.effective_tax_rate(0) == 0.0


def test_after_tax_and_effective_rate():
    assert math.isclose(tax_calc.after_tax_income(60000, 2024), 48980.0)
    assert math.isclose(tax_calc.effective_tax_rate(60000, 2024), 11020.0 / 60000)


def test_prescribed_investor_rate_tiers():
    assert tax_calc.prescribed_investor_rate(14000, 2024) == 0.105
    assert tax_calc.prescribed_investor_rate(30000, 2024) == 0.175
    assert tax_calc.prescribed_investor_rate(50000, 2024) == 0.28
    assert tax_calc.prescribed_investor_rate(50000, 2025) == 0.175


def test_unknown_year_is_rejected():
    with pytest.raises(InvalidInputError) as err:
        tax_calc.compute_income_tax(60000, year=1999)
    assert err.value.field == "taxYear"


def test_custom_tables():
    tables = {"2030": {"income": {"brackets": [{"start": 0, "end": None, "rate": 0.1}]},
                       "pir": [{"max_income": None, "rate": 0.2}]}}
    assert tax_calc.compute_income_tax(1000, year=2030, tax_tables=tables) == pytest.approx(100.0)
    assert tax_calc.prescribed_investor_rate(1000, year=2030, tax_tables=tables) == 0.2


def test_load_default_tables_from_disk():
    tables = tax_calc._load_tax_tables()
    assert {"2024", "2025"} <= set(tables)
