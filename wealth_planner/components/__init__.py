"""Expose component submodules for convenience."""

from .charts import ChartSpecBuilder
from .insights import generate_insights

__all__ = ["ChartSpecBuilder", "generate_insights"]
