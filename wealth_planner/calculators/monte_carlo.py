from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence

import numpy as np

from ..errors import InvalidInputError
from .random_normal import BoxMullerNormal, draw_return

logger = logging.getLogger(__name__)

# Order-statistic percentiles: index floor(N * p) into the sorted sample
PERCENTILES = {"p10": 0.10, "p25": 0.25, "median": 0.50, "p75": 0.75, "p90": 0.90}


def _scheduled(schedule: Sequence[float], year: int) -> float:
    if year < len(schedule) and schedule[year]:
        return float(schedule[year])
    return 0.0


def simulate_path(
    start_value: float,
    expected_return: float,
    volatility: float,
    year_count: int,
    contributions: Sequence[float] = (),
    withdrawals: Sequence[float] = (),
    normal: Optional[Callable[[], float]] = None,
) -> List[float]:
    """Advance one pooled balance through ``year_count`` random years.

    Returns ``year_count + 1`` values with ``start_value`` first.  A path that
    reaches zero stays there: later contributions are not applied.
    """
    normal = normal or BoxMullerNormal()
    values = [float(start_value)]
    for year in range(max(0, year_count)):
        current = values[-1]
        if current <= 0:
            values.append(0.0)
            continue
        value = current * (1.0 + draw_return(expected_return, volatility, normal))
        value += _scheduled(contributions, year)
        value -= _scheduled(withdrawals, year)
        values.append(max(0.0, value))
    return values


def _order_statistic(sorted_column: np.ndarray, p: float) -> float:
    return float(sorted_column[int(len(sorted_column) * p)])


def run_simulations(
    start_value: float,
    weighted_return: float,
    weighted_volatility: float,
    year_count: int,
    simulation_count: int = 1000,
    contributions: Sequence[float] = (),
    withdrawals: Sequence[float] = (),
    seed=None,
    normal: Optional[Callable[[], float]] = None,
    workers: int = 1,
) -> Dict:
    """Run ``simulation_count`` paths and summarise them per year.

    Cash-flow schedules are shared by every path; only returns are random.
    Without an injected ``normal`` source each path gets its own generator
    spawned from ``seed``, so seeded results do not depend on ``workers``.

    Returns a dict with ``median``, ``p10``, ``p25``, ``p75``, ``p90`` (lists of
    ``year_count + 1`` floats) and ``success_rate`` (percent of paths whose
    final value is strictly positive).
    """
    if simulation_count < 1:
        raise InvalidInputError("simulation_count must be at least 1", field="numSimulations")
    if normal is not None and workers > 1:
        raise ValueError("an injected normal source cannot be shared across workers")

    if normal is not None:
        sources = [normal] * simulation_count
    else:
        children = np.random.SeedSequence(seed).spawn(simulation_count)
        sources = [BoxMullerNormal(seed=child) for child in children]

    def _one(source):
        return simulate_path(
            start_value, weighted_return, weighted_volatility, year_count,
            contributions, withdrawals, normal=source,
        )

    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            paths = list(pool.map(_one, sources))
    else:
        paths = [_one(source) for source in sources]

    stacked = np.sort(np.vstack(paths), axis=0)  # n_paths x years, sorted per year
    out = {
        key: [_order_statistic(stacked[:, year], p) for year in range(stacked.shape[1])]
        for key, p in PERCENTILES.items()
    }
    terminal = np.array([path[-1] for path in paths])
    out["success_rate"] = float(np.count_nonzero(terminal > 0.0)) / simulation_count * 100.0

    logger.debug(
        "monte carlo: %d paths x %d years, success rate %.1f%%",
        simulation_count, year_count, out["success_rate"],
    )
    return out


__all__ = ["PERCENTILES", "simulate_path", "run_simulations"]
