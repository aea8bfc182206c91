from typing import Optional, Sequence

from ..models import ProjectionPoint


def _point_at(points: Sequence[ProjectionPoint], age: int) -> Optional[ProjectionPoint]:
    for p in points:
        if p.age == age:
            return p
    return None


def generate_insights(
    points: Sequence[ProjectionPoint],
    retirement_age: int,
    success_rate: Optional[float] = None,
) -> str:
    """Return a short plain-language summary of a projection.

    ``points`` is a deterministic projection or a Monte Carlo median path.
    ``success_rate`` (0-100) adds an outlook sentence for Monte Carlo runs.
    """
    if not points:
        return "There are no projection years to summarise."

    sentences = []
    if success_rate is not None:
        if success_rate >= 85.0:
            outlook = "high chance of success"
        elif success_rate >= 60.0:
            outlook = "moderate chance of success"
        else:
            outlook = "plan may be at risk"
        sentences.append(f"Your plan has a {outlook} ({success_rate:.1f}% of simulations stay funded).")

    at_retirement = _point_at(points, retirement_age)
    if at_retirement is not None:
        sentences.append(
            f"Projected net worth at retirement (age {retirement_age}) is ${at_retirement.net_worth:,.0f}."
        )

    last = points[-1]
    sentences.append(f"Projected net worth at age {last.age} is ${last.net_worth:,.0f}.")

    ratios = [p.sustainability_ratio for p in points if p.sustainability_ratio is not None]
    if ratios and min(ratios) < 1.0:
        short = next(p for p in points if p.sustainability_ratio is not None and p.sustainability_ratio < 1.0)
        sentences.append(
            f"From age {short.age} the remaining assets no longer cover the planned withdrawals."
        )
    return " ".join(sentences)
