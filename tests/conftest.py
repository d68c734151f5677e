"""Pytest configuration and fixtures."""

from datetime import UTC, datetime, timedelta

import pytest

from a11y_history.models.model_scan import (
    ScanHistory,
    ScanMetadata,
    ScanMode,
    ScanRecord,
    ViolationsBySeverity,
)
from a11y_history.storage import MemoryBackend, ScanHistoryStore

EMOJI_REPORT = """
# Accessibility Report

## Violations Found

🔴 Critical: 5 violations
🟠 Serious: 10 violations
🟡 Moderate: 3 violations
🔵 Minor: 2 violations
"""

SECTION_REPORT = """
# Accessibility Report for https://example.com

## 🔴 Critical Issues

### 1. Images missing alternative text
Impact: critical

### 2. Form field without label
Impact: critical

## 🟠 Serious Issues

### 1. Insufficient color contrast
Impact: serious

## Recommendations

### 1. Add alt attributes
"""

EXPLORATION_REPORT = """
# Multi-Page Accessibility Report

Scanned 4 pages across the website.

**Total Violations Found:** 25

🔴 Critical: 2 violations
🟠 Serious: 8 violations

The site meets WCAG A requirements only partially.
"""


def make_record(
    scan_id: str = "scan-1",
    url: str = "https://example.com",
    mode: ScanMode = ScanMode.SINGLE,
    timestamp: datetime | None = None,
    critical: int = 0,
    serious: int = 0,
    moderate: int = 0,
    minor: int = 0,
    total: int | None = None,
    label: str | None = None,
) -> ScanRecord:
    """Build a scan record with the given violation counts."""
    counts = ViolationsBySeverity(
        critical=critical, serious=serious, moderate=moderate, minor=minor
    )
    return ScanRecord(
        id=scan_id,
        url=url,
        mode=mode,
        timestamp=timestamp or datetime(2024, 6, 1, 12, 0, tzinfo=UTC),
        report=f"# Report for {url}",
        metadata=ScanMetadata(
            total_violations=total if total is not None else counts.total,
            violations_by_severity=counts,
            page_count=1,
        ),
        label=label,
    )


@pytest.fixture
def backend() -> MemoryBackend:
    """Create an empty in-memory backend."""
    return MemoryBackend()


@pytest.fixture
def store(backend: MemoryBackend) -> ScanHistoryStore:
    """Create a history store over the in-memory backend."""
    return ScanHistoryStore(backend)


@pytest.fixture
def sample_records() -> list[ScanRecord]:
    """Three scans of two sites, most recent first."""
    base = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)
    return [
        make_record(
            "scan-c",
            url="https://example.com/about",
            mode=ScanMode.EXPLORATION,
            timestamp=base + timedelta(days=2),
            critical=1,
            serious=2,
        ),
        make_record(
            "scan-b",
            url="https://example.com",
            timestamp=base + timedelta(days=1),
            critical=2,
            serious=3,
            moderate=4,
        ),
        make_record(
            "scan-a",
            url="https://other.org",
            timestamp=base,
            minor=1,
            label="first run",
        ),
    ]


@pytest.fixture
def seeded_store(store: ScanHistoryStore, sample_records: list[ScanRecord]) -> ScanHistoryStore:
    """Store pre-populated with sample_records."""
    history = ScanHistory(scans=sample_records)
    result = store.import_from_json(history.model_dump_json(by_alias=True, exclude_none=True))
    assert result.success
    return store
