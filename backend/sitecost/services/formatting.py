"""
Display formatting for calculation results.

The engines return raw floats; everything locale- or presentation-specific
lives here so API responses and reports can render them consistently.
"""
from typing import Dict

from sitecost.services.cost_rollup_engine import CalculatedCostBreakdown, EarnedValueMetrics

_BREAKDOWN_MONEY_FIELDS = (
    "direct_costs",
    "labor_burden",
    "overhead",
    "subtotal",
    "contingency",
    "bond",
    "insurance",
    "total_costs",
    "profit",
    "total_price",
)

_EV_MONEY_FIELDS = (
    "planned_value",
    "earned_value",
    "cost_variance",
    "schedule_variance",
    "estimate_at_completion",
    "estimate_to_complete",
    "variance_at_completion",
)


def format_currency(
    amount: float,
    show_cents: bool = True,
    parens_for_negative: bool = True,
    symbol: str = "$",
) -> str:
    """
    ``1234.5`` → ``$1,234.50``; ``-1234.5`` → ``($1,234.50)``.

    Values that round to zero are shown without a sign.
    """
    decimals = 2 if show_cents else 0
    rounded = round(float(amount), decimals)
    formatted = f"{symbol}{abs(rounded):,.{decimals}f}"
    if rounded < 0:
        return f"({formatted})" if parens_for_negative else f"-{formatted}"
    return formatted


def format_percentage(value: float, decimals: int = 1) -> str:
    return f"{float(value):.{decimals}f}%"


def format_breakdown(breakdown: CalculatedCostBreakdown, symbol: str = "$") -> Dict[str, str]:
    display = {
        name: format_currency(getattr(breakdown, name), symbol=symbol)
        for name in _BREAKDOWN_MONEY_FIELDS
    }
    display["profit_margin"] = format_percentage(breakdown.profit_margin)
    display["markup"] = format_percentage(breakdown.markup)
    return display


def format_earned_value(metrics: EarnedValueMetrics, symbol: str = "$") -> Dict[str, str]:
    display = {
        name: format_currency(getattr(metrics, name), symbol=symbol)
        for name in _EV_MONEY_FIELDS
    }
    display["cost_performance_index"] = f"{metrics.cost_performance_index:.2f}"
    display["schedule_performance_index"] = f"{metrics.schedule_performance_index:.2f}"
    return display
