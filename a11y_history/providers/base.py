"""Report provider contract.

A report provider runs an accessibility scan somewhere else (an agent
driving a browser and a WCAG rule engine) and hands back the markdown
report. This package never scans pages itself.
"""

from dataclasses import dataclass
from typing import Protocol

from a11y_history.models.model_scan import ScanMode


class ReportProviderError(Exception):
    """Scan could not be completed by the provider."""


@dataclass
class ScanReport:
    """Markdown report returned by a provider."""

    report: str
    discovered_urls: list[str] | None = None
    duration_ms: int | None = None


class ReportProvider(Protocol):
    """Protocol for anything that can turn a URL into a markdown report."""

    async def generate_report(self, url: str, mode: ScanMode) -> ScanReport:
        """Scan a URL and return its report.

        Args:
            url: Page (or entry page, in exploration mode) to scan.
            mode: Single page or exploration.

        Returns:
            ScanReport with the markdown text.

        Raises:
            ReportProviderError: If the scan failed.
        """
        ...
