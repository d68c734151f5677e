"""HTTP client for the accessibility scanning service.

The service accepts ``POST /api/scan`` with ``{"url": ..., "mode": ...}``
and answers with:

    {
      "status": "success",
      "data": "<markdown report>",
      "metadata": {"totalTime": 41230, "discoveredUrls": [...], ...}
    }

Failures come back as ``{"error": ..., "details": ...}`` with a 4xx/5xx
status. Rate limits (429), server errors and transport errors are retried
with exponential backoff; everything else fails immediately.
"""

import asyncio
import logging
from typing import Any

import httpx

from a11y_history.consts import (
    SCAN_MAX_RETRIES,
    SCAN_RETRY_BASE_DELAY,
    SCAN_RETRY_MAX_DELAY,
    SCAN_SERVICE_ENDPOINT,
    SCAN_SERVICE_URL,
    SCAN_TIMEOUT,
)
from a11y_history.models.model_scan import ScanMode
from a11y_history.providers.backoff import Backoff
from a11y_history.providers.base import ReportProviderError, ScanReport

logger = logging.getLogger(__name__)

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


def _error_message(response: httpx.Response) -> str:
    """Pull a readable error out of a failed response."""
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error") or f"HTTP {response.status_code}"
        details = body.get("details")
        return f"{error}: {details}" if details else str(error)
    return f"HTTP {response.status_code}"


class HttpReportProvider:
    """Report provider backed by the scanning service's HTTP API."""

    def __init__(
        self,
        base_url: str = SCAN_SERVICE_URL,
        timeout: float = SCAN_TIMEOUT,
        max_retries: int = SCAN_MAX_RETRIES,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize HttpReportProvider.

        Args:
            base_url: Scanning service root URL.
            timeout: Per-request timeout in seconds (scans are slow).
            max_retries: Retries after the first attempt for retryable errors.
            transport: Optional httpx transport (used by tests).
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self._transport = transport
        self._backoff = Backoff(initial_delay=SCAN_RETRY_BASE_DELAY, max_delay=SCAN_RETRY_MAX_DELAY)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers={"Accept": "application/json"},
            transport=self._transport,
        )

    def _parse_response(self, body: Any) -> ScanReport:
        if not isinstance(body, dict) or body.get("status") != "success":
            raise ReportProviderError(f"Unexpected scan response: {str(body)[:200]}")

        report = body.get("data")
        if not isinstance(report, str):
            raise ReportProviderError("Scan response has no report text")

        metadata = body.get("metadata") or {}
        # Older service versions send only a count here
        discovered = metadata.get("discoveredUrls")
        discovered_urls = [str(u) for u in discovered] if isinstance(discovered, list) else None

        duration = metadata.get("totalTime")
        duration_ms = int(duration) if isinstance(duration, int | float) else None

        return ScanReport(report=report, discovered_urls=discovered_urls, duration_ms=duration_ms)

    async def generate_report(self, url: str, mode: ScanMode) -> ScanReport:
        """Request a scan and wait for the markdown report.

        Raises:
            ReportProviderError: On non-retryable errors or when retries run out.
        """
        mode = ScanMode(mode)
        payload = {"url": url, "mode": mode.value}
        self._backoff.reset()

        async with self._client() as client:
            for attempt in range(self.max_retries + 1):
                last_attempt = attempt == self.max_retries
                try:
                    logger.info(f"Requesting {mode.value} scan of {url} (attempt {attempt + 1})")
                    response = await client.post(SCAN_SERVICE_ENDPOINT, json=payload)
                except httpx.TransportError as e:
                    if last_attempt:
                        raise ReportProviderError(f"Scanning service unreachable: {e}") from e
                    delay = self._backoff.next_delay()
                    logger.warning(f"Transport error ({e}), retrying in {delay:.1f}s")
                    await asyncio.sleep(delay)
                    continue

                if response.status_code in RETRYABLE_STATUS and not last_attempt:
                    delay = self._backoff.next_delay()
                    logger.warning(
                        f"Scanning service returned {response.status_code}, retrying in {delay:.1f}s"
                    )
                    await asyncio.sleep(delay)
                    continue

                if response.is_error:
                    raise ReportProviderError(_error_message(response))

                try:
                    body = response.json()
                except ValueError as e:
                    raise ReportProviderError("Scan response is not valid JSON") from e
                return self._parse_response(body)

        raise ReportProviderError("Scan retries exhausted")
