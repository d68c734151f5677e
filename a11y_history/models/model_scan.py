"""Scan record models persisted in the history blob."""

from datetime import datetime
from enum import Enum
from typing import Final

from pydantic import BaseModel, Field, field_validator

from a11y_history.consts import SCHEMA_VERSION
from a11y_history.models.common import (
    CAMEL_CONFIG,
    FROZEN_CAMEL_CONFIG,
    _ensure_utc,
    _utc_now,
)
from a11y_history.utils import sanitize_label


class ScanMode(str, Enum):
    """How many pages a scan covered."""

    SINGLE = "single"
    EXPLORATION = "exploration"


class Severity(str, Enum):
    """Accessibility violation severity, ordered by user impact."""

    CRITICAL = "critical"
    SERIOUS = "serious"
    MODERATE = "moderate"
    MINOR = "minor"


SEVERITY_ORDER: Final[tuple[Severity, ...]] = (
    Severity.CRITICAL,
    Severity.SERIOUS,
    Severity.MODERATE,
    Severity.MINOR,
)


class WcagLevel(str, Enum):
    """WCAG conformance level."""

    A = "A"
    AA = "AA"
    AAA = "AAA"


class ViolationsBySeverity(BaseModel):
    """Violation counts by severity."""

    model_config = FROZEN_CAMEL_CONFIG

    critical: int = Field(default=0, ge=0)
    serious: int = Field(default=0, ge=0)
    moderate: int = Field(default=0, ge=0)
    minor: int = Field(default=0, ge=0)

    def count(self, severity: Severity | str) -> int:
        """Get the count for a single severity."""
        return getattr(self, Severity(severity).value)

    @property
    def total(self) -> int:
        """Sum of all severity counts."""
        return self.critical + self.serious + self.moderate + self.minor


class ScanMetadata(BaseModel):
    """Structured counts derived from a markdown report.

    Computed once when the record is created and never recomputed on read.
    """

    model_config = FROZEN_CAMEL_CONFIG

    total_violations: int = Field(default=0, ge=0)
    violations_by_severity: ViolationsBySeverity = Field(default_factory=ViolationsBySeverity)
    page_count: int = Field(default=0, ge=0, description="1 for single-page scans")
    wcag_level: WcagLevel | None = Field(default=None, description="Highest level mentioned")
    scan_duration: int | None = Field(default=None, ge=0, description="Milliseconds")


class ScanRecord(BaseModel):
    """One persisted accessibility scan.

    Immutable once stored; the label is changed by replacing the record
    with a copy (see ``with_label``).
    """

    model_config = FROZEN_CAMEL_CONFIG

    id: str
    url: str
    mode: ScanMode
    timestamp: datetime = Field(default_factory=_utc_now)
    report: str
    metadata: ScanMetadata
    label: str | None = None
    discovered_urls: list[str] | None = None

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)

    @field_validator("label")
    @classmethod
    def _sanitize_label(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return sanitize_label(value) or None

    def with_label(self, label: str | None) -> "ScanRecord":
        """Return a copy of this record with a new (sanitized) label."""
        cleaned = sanitize_label(label) if label else ""
        return self.model_copy(update={"label": cleaned or None})


class ScanHistory(BaseModel):
    """Root container written to storage as a single blob.

    Version field enables schema migrations on load.
    """

    model_config = CAMEL_CONFIG

    version: int = Field(default=SCHEMA_VERSION, description="Schema version for migrations")
    scans: list[ScanRecord] = Field(default_factory=list, description="Most recent first")
    last_modified: datetime = Field(default_factory=_utc_now)

    @field_validator("last_modified")
    @classmethod
    def _last_modified_utc(cls, value: datetime) -> datetime:
        return _ensure_utc(value)


class HistoryFilter(BaseModel):
    """Criteria for filtering scan history. All criteria are ANDed."""

    url: str | None = Field(default=None, description="Case-insensitive substring match")
    mode: ScanMode | None = None
    date_from: datetime | None = Field(default=None, description="Inclusive lower bound")
    date_to: datetime | None = Field(default=None, description="Inclusive upper bound")
    min_violations: int | None = Field(default=None, ge=0)
    max_violations: int | None = Field(default=None, ge=0)

    @field_validator("date_from", "date_to")
    @classmethod
    def _bounds_utc(cls, value: datetime | None) -> datetime | None:
        return _ensure_utc(value) if value is not None else None

    def matches(self, record: ScanRecord) -> bool:
        """Check whether a record satisfies every set criterion."""
        if self.url and self.url.lower() not in record.url.lower():
            return False
        if self.mode is not None and record.mode != self.mode:
            return False
        if self.date_from is not None and record.timestamp < self.date_from:
            return False
        if self.date_to is not None and record.timestamp > self.date_to:
            return False
        total = record.metadata.total_violations
        if self.min_violations is not None and total < self.min_violations:
            return False
        if self.max_violations is not None and total > self.max_violations:
            return False
        return True
