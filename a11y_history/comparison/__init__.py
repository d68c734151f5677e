"""Scan comparison: diffs, summaries and quality scores."""

from a11y_history.comparison.engine import (
    compare_scan_records,
    format_percentage_change,
    get_comparison_summary,
    get_most_significant_change,
    get_trend_indicator,
    is_improvement,
    is_regression,
    validate_comparison,
)
from a11y_history.comparison.quality import calculate_quality_score, compare_quality_scores

__all__ = [
    "calculate_quality_score",
    "compare_quality_scores",
    "compare_scan_records",
    "format_percentage_change",
    "get_comparison_summary",
    "get_most_significant_change",
    "get_trend_indicator",
    "is_improvement",
    "is_regression",
    "validate_comparison",
]
