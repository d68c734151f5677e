"""Comparison engine computing diffs between two scan records.

All functions are pure: no I/O, deterministic for the same inputs (apart
from the ``compared_at`` stamp), and they never raise for valid records.
"""

from typing import Literal

from a11y_history.models.model_comparison import (
    ComparisonValidation,
    OverallComparison,
    ScanComparison,
    SeverityComparison,
)
from a11y_history.models.model_scan import SEVERITY_ORDER, ScanRecord, Severity
from a11y_history.utils import round_half_up


def _percentage_change(baseline_total: int, current_total: int) -> float:
    if baseline_total > 0:
        change = (current_total - baseline_total) / baseline_total * 100
        return round_half_up(change, 1)
    if current_total > 0:
        # From zero to some violations counts as a 100% increase
        return 100.0
    return 0.0


def compare_scan_records(baseline: ScanRecord, current: ScanRecord) -> ScanComparison:
    """Compare a baseline (earlier) scan with a current (later) one.

    Args:
        baseline: Earlier scan.
        current: Later scan.

    Returns:
        ScanComparison with overall and per-severity fixed/new/unchanged
        counts and the percentage change in total violations.
    """
    baseline_total = baseline.metadata.total_violations
    current_total = current.metadata.total_violations

    overall = OverallComparison(
        baseline_total=baseline_total,
        current_total=current_total,
        fixed=max(0, baseline_total - current_total),
        new=max(0, current_total - baseline_total),
        unchanged=min(baseline_total, current_total),
        percentage_change=_percentage_change(baseline_total, current_total),
    )

    by_severity: dict[Severity, SeverityComparison] = {}
    for severity in SEVERITY_ORDER:
        baseline_count = baseline.metadata.violations_by_severity.count(severity)
        current_count = current.metadata.violations_by_severity.count(severity)
        by_severity[severity] = SeverityComparison(
            baseline_count=baseline_count,
            current_count=current_count,
            fixed=max(0, baseline_count - current_count),
            new=max(0, current_count - baseline_count),
            unchanged=min(baseline_count, current_count),
        )

    return ScanComparison(
        baseline=baseline,
        current=current,
        overall=overall,
        by_severity=by_severity,
    )


def is_improvement(comparison: ScanComparison) -> bool:
    """Current scan has fewer violations than the baseline."""
    return comparison.overall.current_total < comparison.overall.baseline_total


def is_regression(comparison: ScanComparison) -> bool:
    """Current scan has more violations than the baseline."""
    return comparison.overall.current_total > comparison.overall.baseline_total


def get_comparison_summary(comparison: ScanComparison) -> str:
    """One-line human-readable summary of a comparison."""
    overall = comparison.overall

    if overall.current_total == 0 and overall.baseline_total == 0:
        return "No violations in either scan"
    if overall.current_total == 0:
        return f"All {overall.baseline_total} violations fixed!"
    if overall.baseline_total == 0:
        return f"{overall.current_total} new violations detected"
    if overall.current_total == overall.baseline_total:
        return "No change in violation count"

    # Mixed: some categories improved while others regressed
    has_improvements = any(c.fixed > 0 for c in comparison.by_severity.values())
    has_regressions = any(c.new > 0 for c in comparison.by_severity.values())
    if has_improvements and has_regressions:
        return f"{overall.fixed} fixed, {overall.new} new"

    if overall.fixed > 0:
        return f"{overall.fixed} violations fixed"
    return f"{overall.new} new violations"


def get_most_significant_change(comparison: ScanComparison) -> Severity | None:
    """Severity with the largest absolute change.

    Ties go to the more severe category. Returns None if nothing changed.
    """
    max_change = 0
    max_severity: Severity | None = None
    for severity in SEVERITY_ORDER:
        change = abs(comparison.by_severity[severity].delta)
        if change > max_change:
            max_change = change
            max_severity = severity
    return max_severity


def format_percentage_change(percentage_change: float) -> str:
    """Format a percentage change with sign, e.g. "+12.5%" or "-3.0%"."""
    if percentage_change == 0:
        return "0%"
    sign = "+" if percentage_change > 0 else ""
    return f"{sign}{percentage_change:.1f}%"


def get_trend_indicator(percentage_change: float) -> Literal["↑", "↓", "→"]:
    """Arrow showing the direction of a percentage change."""
    if percentage_change > 0:
        return "↑"
    if percentage_change < 0:
        return "↓"
    return "→"


def validate_comparison(first: ScanRecord, second: ScanRecord) -> ComparisonValidation:
    """Check whether two scans can be meaningfully compared.

    Comparing a scan with itself is invalid. Different URLs or modes are
    allowed but carry a warning.
    """
    if first.id == second.id:
        return ComparisonValidation(valid=False, warning="Cannot compare a scan with itself")
    if first.url != second.url:
        return ComparisonValidation(valid=True, warning="Comparing scans from different URLs")
    if first.mode != second.mode:
        return ComparisonValidation(
            valid=True,
            warning="Comparing scans with different modes (single vs exploration)",
        )
    return ComparisonValidation(valid=True)
