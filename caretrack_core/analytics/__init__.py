# =============================================================================
# caretrack_core/analytics/__init__.py
# Compliance Ratios and Aggregation
# =============================================================================

from caretrack_core.analytics.ratios import (
    ComplianceTier,
    percentage,
    tier,
    tier_label,
    average,
)

from caretrack_core.analytics.aggregation import (
    ALL_HOSPITALS,
    filter_sessions,
    metric_averages,
    overall_average,
    benchmark_comparison,
    month_over_month,
    leaderboard,
)

__all__ = [
    "ComplianceTier",
    "percentage",
    "tier",
    "tier_label",
    "average",
    "ALL_HOSPITALS",
    "filter_sessions",
    "metric_averages",
    "overall_average",
    "benchmark_comparison",
    "month_over_month",
    "leaderboard",
]
