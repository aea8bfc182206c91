"""Helper package that exposes the projection calculators.

The `calculators` package contains small, focused modules that each implement
one piece of the projection logic:

* ``random_normal`` – Box-Muller standard-normal generator with an injectable uniform source.
* ``monte_carlo`` – single-path simulator and percentile/success-rate aggregation.
* ``projections`` – deterministic year-by-year engine and the pooled Monte Carlo projection.
* ``taxes`` – New Zealand income tax and PIR bracket lookups.

Each module exposes a few public functions with clear parameters and returns.  See
individual docstrings for details.
"""

from . import random_normal, monte_carlo, projections, taxes  # noqa: F401

__all__ = ["random_normal", "monte_carlo", "projections", "taxes"]
