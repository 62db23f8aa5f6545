"""Percentages, trends and velocity with explicit zero-denominator rules."""

from fincore.config import DEFAULT_CONFIG, EngineConfig
from fincore.views import Velocity

AHEAD = "ahead"
ON_TRACK = "on-track"
BEHIND = "behind"


def safe_percentage(part: float, whole: float) -> float:
    if whole == 0:
        return 0.0
    return part / whole * 100


def budget_percentage(spent: float, budget: float) -> float:
    # a zero budget is fully used as soon as anything is spent
    if budget <= 0:
        return 100.0 if spent > 0 else 0.0
    return spent / budget * 100


def change_percentage(change: float, previous: float) -> float:
    """Magnitude of ``change`` relative to ``previous``; 100 when starting from zero."""
    if previous == 0:
        return 100.0 if change != 0 else 0.0
    return abs(change / previous) * 100


def period_change(current: float, previous: float) -> float:
    """Signed percentage change between two period totals."""
    if previous > 0:
        return (current - previous) / previous * 100
    if current > 0:
        return 100.0
    return 0.0


def trend(change: float) -> str:
    if change > 0:
        return "up"
    if change < 0:
        return "down"
    return "stable"


def spending_velocity(
    current_spend: float,
    average_spend: float,
    config: EngineConfig = DEFAULT_CONFIG,
) -> Velocity:
    cap = config.velocity_progress_cap
    tol = config.velocity_tolerance
    if average_spend <= 0:
        if current_spend > 0:
            return Velocity(AHEAD, cap)
        return Velocity(ON_TRACK, 0.0)

    if current_spend > average_spend * (1 + tol):
        status = AHEAD
    elif current_spend < average_spend * (1 - tol):
        status = BEHIND
    else:
        status = ON_TRACK
    return Velocity(status, min(current_spend / average_spend * 100, cap))


def trend_message(percentage_change: float, config: EngineConfig = DEFAULT_CONFIG) -> str:
    size = abs(percentage_change)
    if percentage_change <= config.insight_improvement_threshold:
        return f"Great job! You cut spending by {size:.1f}%."
    if percentage_change >= config.insight_regression_threshold:
        return f"Heads up: Spending jumped by {size:.1f}%."
    return f"Your spending is stable (±{size:.1f}%)."


def suggestion(top_category) -> str:
    if top_category:
        return f"Consider setting a budget for {top_category} to save more."
    return "Track more expenses to get personalized insights."
