"""Comparison models for diffing two scan records."""

from datetime import datetime

from pydantic import BaseModel, Field

from a11y_history.models.common import _utc_now
from a11y_history.models.model_scan import ScanRecord, Severity


class SeverityComparison(BaseModel):
    """Change in one severity category."""

    baseline_count: int = Field(ge=0)
    current_count: int = Field(ge=0)
    fixed: int = Field(default=0, ge=0)
    new: int = Field(default=0, ge=0)
    unchanged: int = Field(default=0, ge=0)

    @property
    def delta(self) -> int:
        return self.current_count - self.baseline_count


class OverallComparison(BaseModel):
    """Change in total violation count."""

    baseline_total: int = Field(ge=0)
    current_total: int = Field(ge=0)
    fixed: int = Field(default=0, ge=0)
    new: int = Field(default=0, ge=0)
    unchanged: int = Field(default=0, ge=0)
    percentage_change: float = Field(
        default=0.0, description="(current - baseline) / baseline * 100, one decimal"
    )


class ScanComparison(BaseModel):
    """Diff between a baseline (earlier) and a current (later) scan."""

    baseline: ScanRecord
    current: ScanRecord
    overall: OverallComparison
    by_severity: dict[Severity, SeverityComparison]
    compared_at: datetime = Field(default_factory=_utc_now)


class ComparisonValidation(BaseModel):
    """Whether two scans can be meaningfully compared."""

    valid: bool
    warning: str | None = None
