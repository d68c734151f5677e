"""Scan pipeline: request a report, extract metadata, store the record.

1. Validate URL and mode
2. Ask the report provider for a markdown report
3. Store it (metadata extraction happens in the store)
"""

import asyncio
import logging
from datetime import UTC, datetime

from a11y_history.models.model_scan import ScanMode, ScanRecord
from a11y_history.models.model_storage import StorageResult
from a11y_history.providers.base import ReportProvider
from a11y_history.storage.history_store import ScanHistoryStore
from a11y_history.utils import is_valid_url

logger = logging.getLogger(__name__)


async def record_scan(
    provider: ReportProvider,
    store: ScanHistoryStore,
    url: str,
    mode: ScanMode | str,
    label: str | None = None,
) -> StorageResult[ScanRecord]:
    """Scan a URL through the provider and save the result to history.

    Args:
        provider: Report provider that performs the scan.
        store: History store to record the scan in.
        url: URL to scan.
        mode: Scan mode.
        label: Optional label for the new record.

    Returns:
        StorageResult from the store.

    Raises:
        ValueError: If the URL or mode is invalid.
        ReportProviderError: If the provider could not produce a report.
    """
    if not is_valid_url(url):
        raise ValueError(f"Invalid URL provided: {url!r}")
    try:
        mode = ScanMode(mode)
    except ValueError:
        raise ValueError(f"Invalid scan mode {mode!r}. Must be 'single' or 'exploration'") from None

    logger.info(f"Starting {mode.value} scan of {url}")
    start_time = datetime.now(UTC)

    scan_report = await provider.generate_report(url, mode)

    duration_ms = scan_report.duration_ms
    if duration_ms is None:
        duration_ms = int((datetime.now(UTC) - start_time).total_seconds() * 1000)

    result = store.add(
        url,
        mode,
        scan_report.report,
        label=label,
        discovered_urls=scan_report.discovered_urls,
        scan_duration=duration_ms,
    )
    if result.success:
        logger.info(f"Scan of {url} finished in {duration_ms}ms")
    else:
        logger.error(f"Scan of {url} finished but could not be saved: {result.error}")
    return result


def run_scan_pipeline(
    provider: ReportProvider,
    store: ScanHistoryStore,
    url: str,
    mode: ScanMode | str = ScanMode.SINGLE,
    label: str | None = None,
) -> StorageResult[ScanRecord]:
    """Synchronous wrapper around ``record_scan``."""
    return asyncio.run(record_scan(provider, store, url, mode, label=label))
