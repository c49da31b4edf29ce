"""Pure analytics over a ledger snapshot."""

from pocket_ledger.analytics.engine import (
    category_breakdown,
    current_month_bounds,
    merchant_ranking,
    month_bounds,
    month_over_month,
    month_summary,
    monthly_trends,
    weekday_pattern,
)

__all__ = [
    "category_breakdown",
    "current_month_bounds",
    "merchant_ranking",
    "month_bounds",
    "month_over_month",
    "month_summary",
    "monthly_trends",
    "weekday_pattern",
]
