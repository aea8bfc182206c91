# components/charts.py
# Plotly chart specs built from projection points.
# The plotly module is handed to ChartSpecBuilder by the caller; figures are
# returned as plain dicts so they can be sent as JSON or rebuilt with go.Figure(...).

from __future__ import annotations

import math
from typing import Dict, List, Optional, Sequence

import plotly.graph_objects

from ..models import MonteCarloResult, ProjectionPoint

NET_WORTH = "Net Worth"
ACCUMULATION = "Accumulation"
DECUMULATION = "Decumulation"

TITLE = "Financial Projections - Net Worth and Asset Performance"
DESCRIPTION = (
    "Financial projections showing net worth and asset performance over time, "
    "including accumulation and decumulation phases for retirement planning."
)
HOVER = "Age %{x}<br>$%{y:,.0f}<extra>%{fullData.name}</extra>"


def phase_for(age: int, retirement_age: int) -> str:
    return ACCUMULATION if age < retirement_age else DECUMULATION


def _finite_or_none(x: Optional[float]) -> Optional[float]:
    if x is None or not math.isfinite(x):
        return None
    return x


class ChartSpecBuilder:
    """Turns projection points into chart records and plotly figure dicts.

    Parameters
    ----------
    go : module, optional
        The ``plotly.graph_objects`` module (or a stand-in exposing ``Figure``,
        ``Scatter`` and ``Indicator``).
    template : str
        Plotly template name applied to every figure.
    """

    def __init__(self, go=None, template: str = "plotly_white", height: int = 450):
        self.go = go or plotly.graph_objects
        self.template = template
        self.height = height

    # ---------- Data records ----------
    def records(self, points: Sequence[ProjectionPoint], retirement_age: int) -> List[Dict]:
        """Flat ``{age, year, value, category, phase}`` rows per series and year.

        Net worth rows come first and also carry the withdrawal amount and
        sustainability ratio; then one row per asset and per liability.
        """
        net_worth = []
        assets = []
        liabilities = []
        for p in points:
            phase = phase_for(p.age, retirement_age)
            net_worth.append({
                "age": p.age, "year": p.year, "value": p.net_worth,
                "category": NET_WORTH, "kind": "net_worth", "phase": phase,
                "withdrawalAmount": p.withdrawal_amount or 0.0,
                "sustainabilityRatio": _finite_or_none(p.sustainability_ratio),
            })
            for name, value in p.assets.items():
                assets.append({
                    "age": p.age, "year": p.year, "value": value,
                    "category": name, "kind": "asset", "phase": phase,
                })
            for name, balance in p.liabilities.items():
                liabilities.append({
                    "age": p.age, "year": p.year, "value": balance,
                    "category": name, "kind": "liability", "phase": phase,
                })
        return net_worth + assets + liabilities

    # ---------- Main projection chart ----------
    def build(self, points: Sequence[ProjectionPoint], retirement_age: int) -> Dict:
        """Full chart spec: title, description, plotly figure dict and records."""
        values = self.records(points, retirement_age)
        fig = self.go.Figure()

        categories: Dict[str, List[Dict]] = {}
        for row in values:
            categories.setdefault(row["category"], []).append(row)
        for name, rows in categories.items():
            kind = rows[0]["kind"]
            fig.add_trace(self.go.Scatter(
                x=[r["age"] for r in rows],
                y=[r["value"] for r in rows],
                mode="lines",
                name=name,
                line=dict(
                    width=4 if kind == "net_worth" else 2,
                    dash="dot" if kind == "liability" else "solid",
                ),
                customdata=[[r["year"], r["phase"]] for r in rows],
                hovertemplate="Age %{x} (%{customdata[0]})<br>$%{y:,.0f}<br>%{customdata[1]}"
                              "<extra>%{fullData.name}</extra>",
            ))

        if values:
            last_age = max(r["age"] for r in values)
            if last_age >= retirement_age:
                fig.add_vrect(
                    x0=retirement_age, x1=last_age,
                    fillcolor="#FF9800", opacity=0.1, line_width=0, layer="below",
                )
            fig.add_vline(
                x=retirement_age, line_dash="dash", line_color="#FF5722", line_width=2,
                annotation_text=f"Retirement Age: {retirement_age}",
                annotation_position="top right",
            )

        fig.update_layout(
            title=TITLE,
            template=self.template,
            height=self.height,
            margin=dict(l=10, r=10, t=60, b=10),
            legend=dict(title="Assets & Net Worth"),
            xaxis_title="Age",
            yaxis_title="Value (NZD)",
            yaxis_tickformat="$,.0f",
        )
        return {
            "title": TITLE,
            "description": DESCRIPTION,
            "retirementAge": retirement_age,
            "figure": fig.to_dict(),
            "values": values,
        }

    # ---------- Sustainability ----------
    def sustainability_chart(self, points: Sequence[ProjectionPoint], retirement_age: int) -> Dict:
        """Ratio of assets to remaining withdrawals for each retired year."""
        rows = [
            p for p in points
            if p.age >= retirement_age and _finite_or_none(p.sustainability_ratio) is not None
        ]
        fig = self.go.Figure()
        fig.add_trace(self.go.Scatter(
            x=[p.age for p in rows],
            y=[p.sustainability_ratio for p in rows],
            mode="lines+markers",
            name="Sustainability Ratio",
            marker=dict(color=["#4CAF50" if p.sustainability_ratio >= 1.0 else "#F44336" for p in rows]),
            hovertemplate="Age %{x}<br>%{y:.2f}<extra></extra>",
        ))
        fig.add_hline(y=1.0, line_dash="dash", line_color="#666")
        fig.update_layout(
            title="Withdrawal Sustainability Over Retirement Horizon",
            template=self.template,
            height=300,
            margin=dict(l=10, r=10, t=40, b=10),
            xaxis_title="Age",
            yaxis_title="Sustainability Ratio",
            yaxis_range=[0, 3],
        )
        return fig.to_dict()

    # ---------- Net worth "fan" ----------
    def fan_chart(self, result: MonteCarloResult, title: str = "Net Worth (Percentile Fan)") -> Dict:
        """Shaded 10–90 and 25–75 bands with a median line."""
        ages = [p.age for p in result.median]

        def nw(series):
            return [p.net_worth for p in series]

        fig = self.go.Figure()
        for upper, lower, label in ((result.p90, result.p10, "10–90%"), (result.p75, result.p25, "25–75%")):
            fig.add_trace(self.go.Scatter(
                x=ages, y=nw(upper), mode="lines", line=dict(width=0),
                hoverinfo="skip", showlegend=False,
            ))
            fig.add_trace(self.go.Scatter(
                x=ages, y=nw(lower), mode="lines", line=dict(width=0),
                fill="tonexty", name=label, hovertemplate=HOVER,
            ))
        fig.add_trace(self.go.Scatter(
            x=ages, y=nw(result.median), mode="lines", name="Median", hovertemplate=HOVER,
        ))
        fig.update_layout(
            title=title,
            template=self.template,
            height=380,
            margin=dict(l=10, r=10, t=40, b=10),
            legend=dict(orientation="h", yanchor="bottom", y=1.02, xanchor="right", x=1),
            xaxis_title="Age",
            yaxis_title="Dollars (nominal)",
        )
        return fig.to_dict()

    # ---------- Success gauge ----------
    def success_gauge(self, success_rate: float) -> Dict:
        pct = max(0.0, min(100.0, float(success_rate)))
        fig = self.go.Figure(self.go.Indicator(
            mode="gauge+number",
            value=round(pct, 1),
            number={"suffix": "%"},
            gauge={
                "axis": {"range": [0, 100]},
                "bar": {"thickness": 0.35},
                "steps": [
                    {"range": [0, 60], "color": "#ef4444"},
                    {"range": [60, 80], "color": "#f59e0b"},
                    {"range": [80, 100], "color": "#22c55e"},
                ],
            },
        ))
        fig.update_layout(template=self.template, height=220, margin=dict(l=10, r=10, t=10, b=10))
        return fig.to_dict()


__all__ = ["ChartSpecBuilder", "phase_for", "NET_WORTH", "ACCUMULATION", "DECUMULATION"]
