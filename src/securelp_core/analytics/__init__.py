"""Reporting on simulation results: persistence and derived metrics."""

from securelp_core.analytics.collector import (
    format_summary,
    load_results,
    save_results,
    save_summary,
)
from securelp_core.analytics.metrics import (
    ComparisonMetrics,
    CumulativePoint,
    HistogramBucket,
    comparison_metrics,
    cumulative_losses,
    cumulative_mev,
    loss_distribution,
    price_impact_over_time,
    profit_distribution,
)

__all__ = [
    "ComparisonMetrics",
    "CumulativePoint",
    "HistogramBucket",
    "comparison_metrics",
    "cumulative_losses",
    "cumulative_mev",
    "format_summary",
    "load_results",
    "loss_distribution",
    "price_impact_over_time",
    "profit_distribution",
    "save_results",
    "save_summary",
]
