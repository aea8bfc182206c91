"""Standard-normal deviates via the Box-Muller transform.

This is the only source of randomness in the package.  The uniform source is
injectable so tests can replay a fixed sequence and Monte Carlo workers can
each own an independently seeded generator.
"""

from __future__ import annotations

import math
from typing import Callable, Optional

import numpy as np

UniformSource = Callable[[], float]


class BoxMullerNormal:
    """Callable producing one N(0, 1) sample per call.

    Parameters
    ----------
    uniform : callable, optional
        Zero-argument callable returning floats in ``[0, 1)``.  Defaults to
        ``numpy.random.default_rng(seed).random``.
    seed : int or numpy.random.SeedSequence, optional
        Seed for the default generator.  Ignored when ``uniform`` is given.
    """

    def __init__(self, uniform: Optional[UniformSource] = None, seed=None):
        if uniform is None:
            uniform = np.random.default_rng(seed).random
        self._uniform = uniform

    def _open_unit(self) -> float:
        # log(0) is undefined, so exact zeros are redrawn
        u = self._uniform()
        while u == 0.0:
            u = self._uniform()
        return float(u)

    def sample(self) -> float:
        u1 = self._open_unit()
        u2 = self._open_unit()
        return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)

    __call__ = sample


def draw_return(expected_return: float, volatility: float, normal: Callable[[], float]) -> float:
    """One year's random return: ``expected_return + volatility * Z``."""
    return expected_return + volatility * normal()


__all__ = ["BoxMullerNormal", "UniformSource", "draw_return"]
