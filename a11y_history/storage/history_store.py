"""Versioned, quota-bounded scan history.

The whole history is one JSON blob under a single key of a
``StorageBackend``. Every operation is a full load, mutate, persist cycle,
so callers never observe a partial write. Concurrent writers sharing a
backend are not coordinated; the last write wins.

Blob shape:
    {
      "version": 1,
      "scans": [ScanRecord, ...],      # most recent first, at most MAX_SCANS
      "lastModified": "2024-01-01T00:00:00Z"
    }
"""

import functools
import json
import logging
import math
from collections.abc import Callable, Iterable
from typing import Any, ParamSpec, TypeVar

from pydantic import ValidationError

from a11y_history.consts import (
    MAX_SCANS,
    PRUNE_KEEP_RATIO,
    SCHEMA_VERSION,
    STORAGE_KEY,
    STORAGE_LIMIT_BYTES,
    WARNING_RATIO,
)
from a11y_history.extraction.metadata_extractor import MetadataExtractor
from a11y_history.models.common import _utc_now
from a11y_history.models.model_scan import HistoryFilter, ScanHistory, ScanMode, ScanRecord
from a11y_history.models.model_storage import StorageQuota, StorageResult
from a11y_history.storage.backends.base import StorageBackend
from a11y_history.storage.errors import StorageError, StorageQuotaExceededError
from a11y_history.utils import (
    estimate_object_size,
    generate_scan_id,
    round_half_up,
    to_compact_json,
    utf16_size,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

PROBE_KEY = "__storage_test__"


def _never_raises(method: Callable[P, StorageResult[R]]) -> Callable[P, StorageResult[R]]:
    """Convert any unexpected exception into a failed StorageResult."""

    @functools.wraps(method)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> StorageResult[R]:
        try:
            return method(*args, **kwargs)
        except Exception as e:
            logger.exception(f"{method.__name__} failed")
            return StorageResult.fail(str(e) or type(e).__name__)

    return wrapper


class ScanHistoryStore:
    """CRUD and query API over the persisted scan history.

    Public methods return ``StorageResult`` and never raise. Storage that is
    unavailable reads as an empty history and rejects writes; corrupt data
    reads as an empty history.
    """

    def __init__(
        self,
        backend: StorageBackend,
        storage_key: str = STORAGE_KEY,
        limit_bytes: int = STORAGE_LIMIT_BYTES,
        max_scans: int = MAX_SCANS,
        extractor: MetadataExtractor | None = None,
    ):
        """Initialize ScanHistoryStore.

        Args:
            backend: Key-value medium holding the history blob.
            storage_key: Key the blob is stored under.
            limit_bytes: Size ceiling for the blob (UTF-16 estimate).
            max_scans: Maximum number of records retained.
            extractor: Metadata extractor used when adding scans.
        """
        self.backend = backend
        self.storage_key = storage_key
        self.limit_bytes = limit_bytes
        self.warning_bytes = limit_bytes * WARNING_RATIO
        self.max_scans = max_scans
        self.extractor = extractor or MetadataExtractor()

    # === PERSISTENCE ===

    def _is_storage_available(self) -> bool:
        """Probe the backend with a test write/remove cycle."""
        try:
            self.backend.set_item(PROBE_KEY, "test")
            self.backend.remove_item(PROBE_KEY)
            return True
        except StorageQuotaExceededError:
            # Full but working; the write path handles quota
            return True
        except (StorageError, OSError) as e:
            logger.debug(f"Storage probe failed: {e}")
            return False

    def _empty_history(self) -> ScanHistory:
        return ScanHistory(version=SCHEMA_VERSION, scans=[], last_modified=_utc_now())

    def _migrate_schema(self, raw: dict[str, Any]) -> dict[str, Any]:
        """Bring a raw history payload up to SCHEMA_VERSION.

        Version 1 is the only format so far; older or unversioned payloads
        only need the version field updated.
        """
        logger.warning(f"Migrating scan history from version {raw.get('version')} to {SCHEMA_VERSION}")
        return {**raw, "version": SCHEMA_VERSION}

    def _load_history(self) -> ScanHistory:
        if not self._is_storage_available():
            logger.warning("Storage not available, using empty history")
            return self._empty_history()

        try:
            data = self.backend.get_item(self.storage_key)
        except StorageError as e:
            logger.error(f"Failed to read scan history: {e}")
            return self._empty_history()

        if not data:
            return self._empty_history()

        try:
            raw = json.loads(data)
        except json.JSONDecodeError as e:
            logger.error(f"Scan history is not valid JSON, resetting: {e}")
            return self._empty_history()

        if not isinstance(raw, dict) or not isinstance(raw.get("scans"), list):
            logger.error("Invalid scan history structure, resetting")
            return self._empty_history()

        if raw.get("version") != SCHEMA_VERSION:
            raw = self._migrate_schema(raw)

        try:
            return ScanHistory.model_validate(raw)
        except ValidationError as e:
            logger.error(f"Scan history failed validation, resetting: {e.error_count()} errors")
            return self._empty_history()

    def _normalize(self, history: ScanHistory) -> ScanHistory:
        """Enforce the scan limit, keeping list order (most recent first)."""
        scans = list(history.scans)
        if len(scans) > self.max_scans:
            logger.debug(f"Dropping {len(scans) - self.max_scans} scans over the limit")
            scans = scans[: self.max_scans]
        return history.model_copy(update={"scans": scans})

    def _prune_old_scans(self, history: ScanHistory, keep_ratio: float = PRUNE_KEEP_RATIO) -> ScanHistory:
        """Keep the most recent ``keep_ratio`` of scans, dropping the oldest."""
        keep_count = math.floor(len(history.scans) * keep_ratio)
        kept = sorted(history.scans, key=lambda s: s.timestamp, reverse=True)[:keep_count]
        logger.warning(f"Pruned {len(history.scans) - len(kept)} old scans")
        return history.model_copy(update={"scans": kept, "last_modified": _utc_now()})

    def _save_history(self, history: ScanHistory) -> StorageResult[None]:
        if not self._is_storage_available():
            return StorageResult.fail("Storage is not available (disabled or read-only medium?)")

        history = self._normalize(history)
        try:
            serialized = to_compact_json(history)
            size = utf16_size(serialized)

            if size > self.limit_bytes:
                pruned = self._prune_old_scans(history)
                pruned_serialized = to_compact_json(pruned)
                # A lone scan larger than the limit cannot be saved by pruning
                if not pruned.scans or utf16_size(pruned_serialized) > self.limit_bytes:
                    return StorageResult.fail("Storage quota exceeded even after pruning")

                self.backend.set_item(self.storage_key, pruned_serialized)
                return StorageResult.ok(
                    warning="Storage was near capacity. Oldest scans were removed."
                )

            self.backend.set_item(self.storage_key, serialized)

            if size > self.warning_bytes:
                percentage = round_half_up(size / self.limit_bytes * 100)
                return StorageResult.ok(warning=f"Storage is at {percentage:.0f}% capacity")

            return StorageResult.ok()

        except StorageQuotaExceededError as e:
            logger.warning(f"Backend quota exceeded, pruning aggressively: {e}")
            try:
                pruned = self._prune_old_scans(history, PRUNE_KEEP_RATIO)
                if not pruned.scans and history.scans:
                    return StorageResult.fail("Storage quota exceeded and unable to free space")
                self.backend.set_item(self.storage_key, to_compact_json(pruned))
            except StorageError as retry_error:
                logger.error(f"Retry after pruning failed: {retry_error}")
                return StorageResult.fail("Storage quota exceeded and unable to free space")
            return StorageResult.ok(warning="Storage quota exceeded. Removed 50% of oldest scans.")

        except StorageError as e:
            logger.error(f"Failed to save scan history: {e}")
            return StorageResult.fail(str(e))

    def _find_index(self, scans: list[ScanRecord], scan_id: str) -> int | None:
        for i, scan in enumerate(scans):
            if scan.id == scan_id:
                return i
        return None

    # === QUERIES ===

    @_never_raises
    def get_quota(self) -> StorageResult[StorageQuota]:
        """Report estimated usage of the history blob."""
        history = self._load_history()
        used = estimate_object_size(history)
        return StorageResult.ok(
            StorageQuota(
                used=used,
                limit=self.limit_bytes,
                percentage_used=min(used / self.limit_bytes * 100, 100.0),
                scan_count=len(history.scans),
            )
        )

    @_never_raises
    def get_all(self) -> StorageResult[list[ScanRecord]]:
        """Get all scans, most recent first."""
        return StorageResult.ok(list(self._load_history().scans))

    @_never_raises
    def get_by_id(self, scan_id: str) -> StorageResult[ScanRecord]:
        """Get a single scan by ID."""
        for scan in self._load_history().scans:
            if scan.id == scan_id:
                return StorageResult.ok(scan)
        return StorageResult.fail(f"Scan with ID {scan_id} not found")

    @_never_raises
    def get_by_url(self, url: str, exact_match: bool = False) -> StorageResult[list[ScanRecord]]:
        """Get scans for a URL.

        Args:
            url: URL to look for.
            exact_match: If False, match case-insensitive substrings.
        """
        scans = self._load_history().scans
        if exact_match:
            matches = [s for s in scans if s.url == url]
        else:
            needle = url.lower()
            matches = [s for s in scans if needle in s.url.lower()]
        return StorageResult.ok(matches)

    @_never_raises
    def filter(self, criteria: HistoryFilter | None = None, **kwargs: Any) -> StorageResult[list[ScanRecord]]:
        """Get scans matching every given criterion.

        Criteria may be passed as a HistoryFilter or as keyword arguments
        (url, mode, date_from, date_to, min_violations, max_violations).
        """
        if criteria is None:
            criteria = HistoryFilter(**kwargs)
        return StorageResult.ok([s for s in self._load_history().scans if criteria.matches(s)])

    # === MUTATIONS ===

    @_never_raises
    def add(
        self,
        url: str,
        mode: ScanMode | str,
        report: str,
        label: str | None = None,
        discovered_urls: Iterable[str] | None = None,
        scan_duration: int | None = None,
    ) -> StorageResult[ScanRecord]:
        """Record a new scan.

        Metadata is extracted from the report once, here. The new record is
        placed first and the history is trimmed to the scan limit.

        Args:
            url: Scanned URL, stored as given.
            mode: Scan mode.
            report: Full markdown report, stored verbatim.
            label: Optional user label (trimmed, at most 100 characters).
            discovered_urls: Pages found during an exploration scan.
            scan_duration: Scan duration in milliseconds, if known.

        Returns:
            StorageResult with the created record and any storage warning.
        """
        mode = ScanMode(mode)
        history = self._load_history()

        metadata = self.extractor.parse(report, mode)
        if scan_duration is not None:
            metadata = metadata.model_copy(update={"scan_duration": scan_duration})

        if discovered_urls is not None and mode != ScanMode.EXPLORATION:
            logger.debug("Ignoring discovered URLs for a single-page scan")
            discovered_urls = None

        scan = ScanRecord(
            id=generate_scan_id(),
            url=url,
            mode=mode,
            timestamp=_utc_now(),
            report=report,
            metadata=metadata,
            label=label,
            discovered_urls=list(discovered_urls) if discovered_urls is not None else None,
        )

        updated = history.model_copy(
            update={
                "scans": [scan, *history.scans][: self.max_scans],
                "last_modified": _utc_now(),
            }
        )
        result = self._save_history(updated)
        if not result.success:
            return StorageResult.fail(result.error or "Failed to save scan")

        logger.info(
            f"Recorded scan {scan.id} for {url} "
            f"({metadata.total_violations} violations, {mode.value})"
        )
        return StorageResult.ok(scan, warning=result.warning)

    @_never_raises
    def delete(self, scan_id: str) -> StorageResult[None]:
        """Delete a scan by ID. Unknown IDs are a failure."""
        history = self._load_history()
        index = self._find_index(history.scans, scan_id)
        if index is None:
            return StorageResult.fail(f"Scan with ID {scan_id} not found")

        scans = history.scans[:index] + history.scans[index + 1 :]
        return self._save_history(
            history.model_copy(update={"scans": scans, "last_modified": _utc_now()})
        )

    @_never_raises
    def clear(self) -> StorageResult[None]:
        """Remove every scan, resetting to an empty history."""
        return self._save_history(self._empty_history())

    @_never_raises
    def update_label(self, scan_id: str, label: str) -> StorageResult[ScanRecord]:
        """Set or clear (empty string) a scan's label."""
        history = self._load_history()
        index = self._find_index(history.scans, scan_id)
        if index is None:
            return StorageResult.fail(f"Scan with ID {scan_id} not found")

        updated_scan = history.scans[index].with_label(label)
        scans = list(history.scans)
        scans[index] = updated_scan

        result = self._save_history(
            history.model_copy(update={"scans": scans, "last_modified": _utc_now()})
        )
        if not result.success:
            return StorageResult.fail(result.error or "Failed to save label")
        return StorageResult.ok(updated_scan, warning=result.warning)

    # === IMPORT / EXPORT ===

    @_never_raises
    def export_as_json(self) -> StorageResult[str]:
        """Export the full history as pretty-printed JSON."""
        history = self._load_history()
        data = history.model_dump(mode="json", by_alias=True, exclude_none=True)
        return StorageResult.ok(json.dumps(data, indent=2, ensure_ascii=False))

    @_never_raises
    def import_from_json(self, payload: str) -> StorageResult[None]:
        """Replace the history with an exported payload.

        The payload must be an object with an integer ``version`` and a
        ``scans`` array. On any validation failure the stored history is
        left untouched.
        """
        try:
            raw = json.loads(payload)
        except json.JSONDecodeError as e:
            return StorageResult.fail(f"Invalid JSON: {e}")

        if (
            not isinstance(raw, dict)
            or not isinstance(raw.get("scans"), list)
            or not isinstance(raw.get("version"), int)
            or isinstance(raw.get("version"), bool)
        ):
            return StorageResult.fail("Invalid import data structure")

        if raw["version"] != SCHEMA_VERSION:
            raw = self._migrate_schema(raw)

        try:
            imported = ScanHistory.model_validate(raw)
        except ValidationError as e:
            return StorageResult.fail(f"Invalid scan records: {e.error_count()} validation errors")

        # Imported files may come in any order; stored history is newest first
        scans = sorted(imported.scans, key=lambda s: s.timestamp, reverse=True)
        result = self._save_history(
            imported.model_copy(update={"scans": scans, "last_modified": _utc_now()})
        )
        if result.success:
            logger.info(f"Imported {len(imported.scans)} scans")
        return result
