"""Request handling for projection calls.

``handle_projection_request`` maps a decoded JSON body to the engine and
returns ``(status, payload)``.  It is framework-free; a web route only has to
decode the body and serialise the payload.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Tuple

from .calculators.projections import run_deterministic, run_monte_carlo
from .components.charts import ChartSpecBuilder
from .config import DEFAULTS, PROJECTION_METHODS, RESPONSE_FORMATS
from .errors import InvalidInputError
from .models import parse_int, projection_input_from_dict, withdrawal_strategy_from_dict

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("currentAge", "goals", "assets")


def _bad_request(message: str) -> Tuple[int, Any]:
    logger.info("rejected projection request: %s", message)
    return 400, {"error": message}


def handle_projection_request(
    body: Mapping,
    builder: Optional[ChartSpecBuilder] = None,
    start_year: Optional[int] = None,
    seed=None,
) -> Tuple[int, Any]:
    """Run the projection described by ``body``.

    Returns ``(200, chart spec)`` for ``responseFormat="full"``, ``(200,
    records)`` for ``"dataOnly"``, ``(400, {"error": ...})`` for bad input and
    ``(500, {"error", "message"})`` for anything unexpected.
    """
    logger.info("processing projection request")
    if not isinstance(body, Mapping):
        return _bad_request("Request body must be a JSON object")

    missing = [f for f in REQUIRED_FIELDS if body.get(f) is None]
    if missing:
        return _bad_request(f"Missing required fields. Required: {', '.join(REQUIRED_FIELDS)}")
    goals = body.get("goals")
    if not isinstance(goals, Mapping) or goals.get("retirementAge") is None:
        return _bad_request("goals.retirementAge is required")

    method = body.get("projectionMethod") or DEFAULTS["projection_method"]
    if method not in PROJECTION_METHODS:
        return _bad_request(f"Invalid projectionMethod. Must be one of: {', '.join(PROJECTION_METHODS)}")
    response_format = body.get("responseFormat") or DEFAULTS["response_format"]
    if response_format not in RESPONSE_FORMATS:
        return _bad_request(f"Invalid responseFormat. Must be one of: {', '.join(RESPONSE_FORMATS)}")

    try:
        projection_input = projection_input_from_dict(body)
        strategy = withdrawal_strategy_from_dict(body.get("withdrawalStrategy"), projection_input.goals)
        simulation_count = parse_int(body.get("numSimulations"), "numSimulations", default=DEFAULTS["simulation_count"])
        if simulation_count < 1:
            raise InvalidInputError("numSimulations must be at least 1", field="numSimulations")
    except InvalidInputError as exc:
        return _bad_request(str(exc))

    builder = builder or ChartSpecBuilder()
    retirement_age = projection_input.goals.retirement_age
    try:
        success_rate = None
        if method == "deterministic":
            logger.info("calculating deterministic projection")
            points = run_deterministic(projection_input, strategy, start_year=start_year)
        else:
            logger.info("calculating Monte Carlo projection with %d simulations", simulation_count)
            result = run_monte_carlo(
                projection_input, strategy, simulation_count, start_year=start_year, seed=seed
            )
            points = result.median
            success_rate = result.success_rate
            logger.info("projection complete, success rate %.1f%%", success_rate)

        if response_format == "dataOnly":
            return 200, builder.records(points, retirement_age)

        spec = builder.build(points, retirement_age)
        spec["projectionMethod"] = method
        if success_rate is not None:
            spec["successRate"] = success_rate
        return 200, spec
    except Exception as exc:
        logger.exception("error processing projection request")
        return 500, {"error": "Internal server error", "message": str(exc)}


__all__ = ["handle_projection_request", "REQUIRED_FIELDS"]
