"""Clients for the external accessibility scanning service."""

from a11y_history.providers.base import ReportProvider, ReportProviderError, ScanReport
from a11y_history.providers.http_provider import HttpReportProvider

__all__ = ["HttpReportProvider", "ReportProvider", "ReportProviderError", "ScanReport"]
