"""Parse markdown accessibility reports into structured scan metadata.

Reports are free-form text produced by an LLM agent, so extraction is a
chain of tolerant strategies:

1. An explicitly stated total ("Total Violations Found: N").
2. Per-severity counts from several phrasings, merged by maximum.
3. If every severity is still zero, count numbered issues under each
   severity section heading.
4. Page count (exploration mode) and WCAG level, first match wins.

Parsing never raises. Unrecognised text yields zero counts.
"""

import logging

from a11y_history.extraction.patterns import (
    PAGE_COUNT_PATTERNS,
    SECTION_HEADINGS,
    SEVERITY_PATTERNS,
    TOTAL_PATTERNS,
    WCAG_PATTERNS,
)
from a11y_history.extraction.strategies import (
    PatternStrategy,
    SectionCountStrategy,
    first_match,
    max_merge,
)
from a11y_history.models.model_scan import (
    SEVERITY_ORDER,
    ScanMetadata,
    ScanMode,
    Severity,
    ViolationsBySeverity,
    WcagLevel,
)

logger = logging.getLogger(__name__)

# Page count for exploration scans when the report does not state one.
# Kept at 0 for compatibility with previously stored histories.
EXPLORATION_DEFAULT_PAGE_COUNT = 0


def _wcag_level(capture: str) -> WcagLevel:
    return WcagLevel(capture.upper())


def _positive(value: int) -> bool:
    return value > 0


class MetadataExtractor:
    """Ordered extraction strategies for each metadata field."""

    def __init__(self) -> None:
        self.total_strategies = [PatternStrategy(p) for p in TOTAL_PATTERNS]
        self.severity_strategies = {
            severity: [PatternStrategy(p) for p in SEVERITY_PATTERNS[severity]]
            for severity in SEVERITY_ORDER
        }
        self.section_strategies = {
            severity: SectionCountStrategy(SECTION_HEADINGS[severity])
            for severity in SEVERITY_ORDER
        }
        self.page_count_strategies = [
            PatternStrategy(p, accept=_positive) for p in PAGE_COUNT_PATTERNS
        ]
        self.wcag_strategies = [PatternStrategy(p, convert=_wcag_level) for p in WCAG_PATTERNS]

    def _severity_counts(self, report: str) -> dict[Severity, int]:
        counts = {
            severity: max_merge(strategies, report)
            for severity, strategies in self.severity_strategies.items()
        }
        if any(counts.values()):
            return counts

        # Fallback: no stated counts, count issue entries per section
        for severity, strategy in self.section_strategies.items():
            counts[severity] = strategy.extract(report) or 0
        if any(counts.values()):
            logger.debug(f"Severity counts taken from section entries: {counts}")
        return counts

    def parse(self, report: str, mode: ScanMode | str) -> ScanMetadata:
        """Extract metadata from a markdown report.

        Args:
            report: Markdown report text.
            mode: Scan mode the report was produced with.

        Returns:
            ScanMetadata; counts are zero where nothing could be parsed.
        """
        mode = ScanMode(mode)
        report = report or ""

        explicit_total = first_match(self.total_strategies, report) or 0
        counts = self._severity_counts(report)
        by_severity = ViolationsBySeverity(**{s.value: c for s, c in counts.items()})

        if mode == ScanMode.SINGLE:
            page_count = 1
        else:
            page_count = (
                first_match(self.page_count_strategies, report) or EXPLORATION_DEFAULT_PAGE_COUNT
            )

        return ScanMetadata(
            total_violations=max(explicit_total, by_severity.total),
            violations_by_severity=by_severity,
            page_count=page_count,
            wcag_level=first_match(self.wcag_strategies, report),
        )


_default_extractor = MetadataExtractor()


def parse_report_metadata(report: str, mode: ScanMode | str) -> ScanMetadata:
    """Parse a markdown report with the default extraction strategies."""
    return _default_extractor.parse(report, mode)
