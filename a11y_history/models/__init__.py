"""Pydantic models for scan history and comparison."""

from a11y_history.models.model_comparison import (
    ComparisonValidation,
    OverallComparison,
    ScanComparison,
    SeverityComparison,
)
from a11y_history.models.model_scan import (
    SEVERITY_ORDER,
    HistoryFilter,
    ScanHistory,
    ScanMetadata,
    ScanMode,
    ScanRecord,
    Severity,
    ViolationsBySeverity,
    WcagLevel,
)
from a11y_history.models.model_storage import StorageQuota, StorageResult

__all__ = [
    "SEVERITY_ORDER",
    "ComparisonValidation",
    "HistoryFilter",
    "OverallComparison",
    "ScanComparison",
    "ScanHistory",
    "ScanMetadata",
    "ScanMode",
    "ScanRecord",
    "Severity",
    "SeverityComparison",
    "StorageQuota",
    "StorageResult",
    "ViolationsBySeverity",
    "WcagLevel",
]
