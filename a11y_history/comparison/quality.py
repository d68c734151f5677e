"""Quality score for a single scan.

    quality_score = 100 - (critical×10 + serious×5 + moderate×2 + minor×1)
    Minimum: 0
"""

from typing import Final

from a11y_history.models.model_scan import ScanRecord, Severity

PENALTY_WEIGHTS: Final[dict[Severity, int]] = {
    Severity.CRITICAL: 10,
    Severity.SERIOUS: 5,
    Severity.MODERATE: 2,
    Severity.MINOR: 1,
}
MAX_SCORE = 100


def calculate_quality_score(record: ScanRecord) -> int:
    """Calculate a 0-100 health score from weighted violation counts.

    Args:
        record: Scan to score.

    Returns:
        Score between 0 and 100; higher is better.
    """
    counts = record.metadata.violations_by_severity
    penalty = sum(counts.count(severity) * weight for severity, weight in PENALTY_WEIGHTS.items())
    return round(max(0, MAX_SCORE - penalty))


def compare_quality_scores(baseline: ScanRecord, current: ScanRecord) -> int:
    """Score difference between two scans; positive means improvement."""
    return calculate_quality_score(current) - calculate_quality_score(baseline)
