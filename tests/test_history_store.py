"""Tests for the scan history store."""

import json
import logging
from datetime import UTC, datetime, timedelta
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from a11y_history.consts import MAX_SCANS, SCHEMA_VERSION, STORAGE_KEY, STORAGE_LIMIT_BYTES
from a11y_history.models.model_scan import HistoryFilter, ScanHistory, ScanMode
from a11y_history.storage import FileBackend, MemoryBackend, ScanHistoryStore
from tests.conftest import EMOJI_REPORT, EXPLORATION_REPORT, make_record

BASE_TIME = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _ids(result) -> list[str]:
    assert result.success, result.error
    return [scan.id for scan in result.data]


class TestEmptyStore:
    """Tests for a store with nothing saved yet."""

    def test_get_all_empty(self, store: ScanHistoryStore) -> None:
        result = store.get_all()
        assert result.success
        assert result.data == []

    def test_get_by_id_not_found(self, store: ScanHistoryStore) -> None:
        result = store.get_by_id("nope")
        assert not result.success
        assert result.error == "Scan with ID nope not found"

    def test_quota_empty(self, store: ScanHistoryStore) -> None:
        quota = store.get_quota().data
        assert quota.scan_count == 0
        assert quota.limit == STORAGE_LIMIT_BYTES
        assert quota.used > 0
        assert not quota.near_capacity


class TestAdd:
    """Tests for recording new scans."""

    def test_add_extracts_metadata(self, store: ScanHistoryStore) -> None:
        result = store.add("https://example.com", "single", EMOJI_REPORT, label="  baseline ")

        assert result.success
        scan = result.data
        assert scan.id
        assert scan.url == "https://example.com"
        assert scan.mode == ScanMode.SINGLE
        assert scan.report == EMOJI_REPORT
        assert scan.label == "baseline"
        assert scan.metadata.total_violations == 20
        assert scan.metadata.violations_by_severity.critical == 5
        assert scan.metadata.page_count == 1
        assert scan.timestamp.tzinfo is not None

    def test_add_then_get_by_id(self, store: ScanHistoryStore) -> None:
        scan = store.add("https://example.com", ScanMode.SINGLE, EMOJI_REPORT).data

        fetched = store.get_by_id(scan.id)
        assert fetched.success
        assert fetched.data == scan

    def test_new_scans_come_first(self, store: ScanHistoryStore) -> None:
        first = store.add("https://example.com/1", "single", EMOJI_REPORT).data
        second = store.add("https://example.com/2", "single", EMOJI_REPORT).data

        assert _ids(store.get_all()) == [second.id, first.id]

    def test_ids_are_unique(self, store: ScanHistoryStore) -> None:
        ids = {store.add("https://example.com", "single", "").data.id for _ in range(5)}
        assert len(ids) == 5

    def test_exploration_keeps_discovered_urls(self, store: ScanHistoryStore) -> None:
        urls = ["https://example.com/a", "https://example.com/b"]
        scan = store.add(
            "https://example.com",
            "exploration",
            EXPLORATION_REPORT,
            discovered_urls=urls,
            scan_duration=95000,
        ).data

        assert scan.discovered_urls == urls
        assert scan.metadata.page_count == 4
        assert scan.metadata.scan_duration == 95000

    def test_single_mode_drops_discovered_urls(self, store: ScanHistoryStore) -> None:
        scan = store.add(
            "https://example.com", "single", EMOJI_REPORT, discovered_urls=["https://x.com"]
        ).data

        assert scan.discovered_urls is None

    def test_new_scan_first_despite_future_timestamps(self, store: ScanHistoryStore) -> None:
        skewed = make_record("skewed", timestamp=datetime(2099, 1, 1, tzinfo=UTC))
        payload = ScanHistory(scans=[skewed]).model_dump_json(by_alias=True, exclude_none=True)
        assert store.import_from_json(payload).success

        scan = store.add("https://example.com", "single", EMOJI_REPORT).data

        assert _ids(store.get_all()) == [scan.id, "skewed"]

    def test_oldest_dropped_past_scan_limit(self, store: ScanHistoryStore) -> None:
        first = store.add("https://example.com/0", "single", "").data
        for i in range(1, MAX_SCANS + 1):
            store.add(f"https://example.com/{i}", "single", "")

        ids = _ids(store.get_all())
        assert len(ids) == MAX_SCANS
        assert first.id not in ids

    def test_persisted_blob_shape(self, store: ScanHistoryStore, backend: MemoryBackend) -> None:
        store.add("https://example.com", "single", EMOJI_REPORT)

        blob = json.loads(backend.get_item(STORAGE_KEY))
        assert set(blob) == {"version", "scans", "lastModified"}
        assert blob["version"] == SCHEMA_VERSION
        scan = blob["scans"][0]
        assert scan["metadata"]["totalViolations"] == 20
        assert scan["metadata"]["violationsBySeverity"]["serious"] == 10
        assert "label" not in scan
        assert "discoveredUrls" not in scan

    def test_unexpected_error_becomes_failed_result(self, store: ScanHistoryStore) -> None:
        store.extractor = MagicMock()
        store.extractor.parse.side_effect = RuntimeError("boom")

        result = store.add("https://example.com", "single", EMOJI_REPORT)

        assert not result.success
        assert result.error == "boom"

    def test_invalid_mode_becomes_failed_result(self, store: ScanHistoryStore) -> None:
        result = store.add("https://example.com", "bogus", EMOJI_REPORT)
        assert not result.success


class TestQueries:
    """Tests for reading and filtering history."""

    def test_get_all_most_recent_first(self, seeded_store: ScanHistoryStore) -> None:
        assert _ids(seeded_store.get_all()) == ["scan-c", "scan-b", "scan-a"]

    def test_get_by_url_substring(self, seeded_store: ScanHistoryStore) -> None:
        assert _ids(seeded_store.get_by_url("EXAMPLE.com")) == ["scan-c", "scan-b"]

    def test_get_by_url_exact(self, seeded_store: ScanHistoryStore) -> None:
        assert _ids(seeded_store.get_by_url("https://example.com", exact_match=True)) == ["scan-b"]

    @pytest.mark.parametrize(
        ("kwargs", "expected"),
        [
            ({"url": "example"}, ["scan-c", "scan-b"]),
            ({"mode": "exploration"}, ["scan-c"]),
            ({"date_from": BASE_TIME + timedelta(days=1)}, ["scan-c", "scan-b"]),
            ({"date_to": BASE_TIME}, ["scan-a"]),
            ({"min_violations": 5}, ["scan-b"]),
            ({"max_violations": 3}, ["scan-c", "scan-a"]),
            ({"url": "example", "max_violations": 3}, ["scan-c"]),
            ({}, ["scan-c", "scan-b", "scan-a"]),
        ],
    )
    def test_filter_kwargs(
        self, seeded_store: ScanHistoryStore, kwargs: dict, expected: list[str]
    ) -> None:
        assert _ids(seeded_store.filter(**kwargs)) == expected

    def test_filter_with_criteria_object(self, seeded_store: ScanHistoryStore) -> None:
        criteria = HistoryFilter(url="other")
        assert _ids(seeded_store.filter(criteria)) == ["scan-a"]

    def test_quota_counts_scans(self, seeded_store: ScanHistoryStore) -> None:
        quota = seeded_store.get_quota().data
        assert quota.scan_count == 3
        assert 0 < quota.percentage_used < 1


class TestMutations:
    """Tests for delete, clear and label updates."""

    def test_delete(self, seeded_store: ScanHistoryStore) -> None:
        assert seeded_store.delete("scan-b").success
        assert _ids(seeded_store.get_all()) == ["scan-c", "scan-a"]

    def test_delete_unknown_id(self, seeded_store: ScanHistoryStore) -> None:
        result = seeded_store.delete("missing")

        assert not result.success
        assert result.error == "Scan with ID missing not found"
        assert len(seeded_store.get_all().data) == 3

    def test_clear(self, seeded_store: ScanHistoryStore) -> None:
        assert seeded_store.clear().success
        assert seeded_store.get_all().data == []

    def test_update_label_trims(self, seeded_store: ScanHistoryStore) -> None:
        result = seeded_store.update_label("scan-b", "  release 2  ")

        assert result.success
        assert result.data.label == "release 2"
        assert seeded_store.get_by_id("scan-b").data.label == "release 2"
        # Position in history is unchanged
        assert _ids(seeded_store.get_all()) == ["scan-c", "scan-b", "scan-a"]

    def test_update_label_empty_clears(self, seeded_store: ScanHistoryStore) -> None:
        result = seeded_store.update_label("scan-a", "")

        assert result.success
        assert result.data.label is None
        assert seeded_store.get_by_id("scan-a").data.label is None

    def test_update_label_truncates(self, seeded_store: ScanHistoryStore) -> None:
        result = seeded_store.update_label("scan-a", "x" * 150)
        assert len(result.data.label) == 100

    def test_update_label_unknown_id(self, seeded_store: ScanHistoryStore) -> None:
        result = seeded_store.update_label("missing", "label")
        assert not result.success
        assert "not found" in result.error

    def test_other_fields_untouched_by_label(self, seeded_store: ScanHistoryStore) -> None:
        before = seeded_store.get_by_id("scan-b").data
        after = seeded_store.update_label("scan-b", "tagged").data

        assert after.model_dump(exclude={"label"}) == before.model_dump(exclude={"label"})


class TestImportExport:
    """Tests for JSON export and import."""

    def test_round_trip(self, seeded_store: ScanHistoryStore) -> None:
        exported = seeded_store.export_as_json().data

        other = ScanHistoryStore(MemoryBackend())
        assert other.import_from_json(exported).success
        assert other.get_all().data == seeded_store.get_all().data

    def test_export_uses_camel_case(self, seeded_store: ScanHistoryStore) -> None:
        exported = seeded_store.export_as_json().data
        data = json.loads(exported)

        assert data["version"] == SCHEMA_VERSION
        assert "lastModified" in data
        assert "totalViolations" in data["scans"][0]["metadata"]
        assert "\n  " in exported

    def test_import_sorts_scans(self, store: ScanHistoryStore) -> None:
        records = [
            make_record("old", timestamp=BASE_TIME),
            make_record("new", timestamp=BASE_TIME + timedelta(hours=1)),
        ]
        payload = {
            "version": SCHEMA_VERSION,
            "scans": [r.model_dump(mode="json", by_alias=True, exclude_none=True) for r in records],
        }

        assert store.import_from_json(json.dumps(payload)).success
        assert _ids(store.get_all()) == ["new", "old"]

    @pytest.mark.parametrize(
        ("payload", "error"),
        [
            ("not json", "Invalid JSON"),
            ('{"scans": []}', "Invalid import data structure"),
            ('{"version": true, "scans": []}', "Invalid import data structure"),
            ('{"version": 1, "scans": {}}', "Invalid import data structure"),
            ("[]", "Invalid import data structure"),
            ('{"version": 1, "scans": [{"id": "x"}]}', "Invalid scan records"),
        ],
    )
    def test_malformed_import_leaves_history(
        self, seeded_store: ScanHistoryStore, payload: str, error: str
    ) -> None:
        result = seeded_store.import_from_json(payload)

        assert not result.success
        assert result.error.startswith(error)
        assert len(seeded_store.get_all().data) == 3

    def test_import_older_version_migrates(self, store: ScanHistoryStore, backend: MemoryBackend) -> None:
        record = make_record("legacy")
        payload = {
            "version": 0,
            "scans": [record.model_dump(mode="json", by_alias=True, exclude_none=True)],
        }

        assert store.import_from_json(json.dumps(payload)).success
        assert json.loads(backend.get_item(STORAGE_KEY))["version"] == SCHEMA_VERSION


class TestDegradedStorage:
    """Tests for unavailable and corrupt storage."""

    def test_unavailable_reads_empty(self) -> None:
        store = ScanHistoryStore(MemoryBackend(available=False))

        result = store.get_all()
        assert result.success
        assert result.data == []

    def test_unavailable_rejects_writes(self) -> None:
        store = ScanHistoryStore(MemoryBackend(available=False))

        result = store.add("https://example.com", "single", EMOJI_REPORT)
        assert not result.success
        assert "not available" in result.error

    @pytest.mark.parametrize(
        "blob",
        [
            "{not json",
            '{"version": 1, "scans": "nope"}',
            '"just a string"',
            '{"version": 1, "scans": [{"id": 1}]}',
        ],
    )
    def test_corrupt_blob_reads_empty(self, store: ScanHistoryStore, backend: MemoryBackend, blob: str) -> None:
        backend.set_item(STORAGE_KEY, blob)

        result = store.get_all()
        assert result.success
        assert result.data == []

    def test_write_after_corruption_recovers(self, store: ScanHistoryStore, backend: MemoryBackend) -> None:
        backend.set_item(STORAGE_KEY, "{not json")

        assert store.add("https://example.com", "single", EMOJI_REPORT).success
        assert len(store.get_all().data) == 1

    def test_old_version_migrated_on_load(
        self, store: ScanHistoryStore, backend: MemoryBackend, caplog: pytest.LogCaptureFixture
    ) -> None:
        record = make_record("legacy", critical=1)
        backend.set_item(
            STORAGE_KEY,
            json.dumps(
                {
                    "version": 0,
                    "scans": [record.model_dump(mode="json", by_alias=True, exclude_none=True)],
                    "lastModified": "2024-06-01T12:00:00Z",
                }
            ),
        )

        with caplog.at_level(logging.WARNING):
            result = store.get_all()

        assert _ids(result) == ["legacy"]
        assert "Migrating scan history from version 0" in caplog.text

    def test_invalid_utf8_file_reads_empty(self, tmp_path: Path) -> None:
        (tmp_path / f"{STORAGE_KEY}.json").write_bytes(b"\xff\xfe{not utf8")
        store = ScanHistoryStore(FileBackend(tmp_path))

        result = store.get_all()
        assert result.success
        assert result.data == []

        assert store.add("https://example.com", "single", EMOJI_REPORT).success
        assert len(store.get_all().data) == 1

    def test_probe_key_not_left_behind(self, store: ScanHistoryStore, backend: MemoryBackend) -> None:
        store.add("https://example.com", "single", EMOJI_REPORT)
        assert len(backend) == 1


class TestQuota:
    """Tests for capacity warnings and pruning."""

    def test_warning_near_capacity(self, backend: MemoryBackend) -> None:
        scan = ScanHistoryStore(backend).add("https://example.com", "single", "x" * 5000).data
        used = ScanHistoryStore(backend).get_quota().data.used

        tight = ScanHistoryStore(backend, limit_bytes=int(used / 0.9))
        result = tight.update_label(scan.id, "v")

        assert result.success
        assert result.warning is not None
        assert result.warning.startswith("Storage is at ")
        assert result.warning.endswith("% capacity")

    def test_prunes_when_over_limit(self, backend: MemoryBackend) -> None:
        store = ScanHistoryStore(backend, limit_bytes=12000)

        for added in range(1, 20):
            result = store.add(f"https://example.com/{added}", "single", "x" * 1000)
            assert result.success
            if result.warning == "Storage was near capacity. Oldest scans were removed.":
                break
        else:
            pytest.fail("history was never pruned")

        ids = _ids(store.get_all())
        assert len(ids) == added // 2
        assert ids[0] == result.data.id

    def test_single_oversized_scan_fails(self, backend: MemoryBackend) -> None:
        store = ScanHistoryStore(backend, limit_bytes=1000)

        result = store.add("https://example.com", "single", "x" * 2000)

        assert not result.success
        assert result.error == "Storage quota exceeded even after pruning"
        assert store.get_all().data == []

    def test_backend_quota_retries_after_pruning(self) -> None:
        backend = MemoryBackend(quota_bytes=30000)
        store = ScanHistoryStore(backend)

        for added in range(1, 20):
            result = store.add(f"https://example.com/{added}", "single", "y" * 2000)
            assert result.success
            if result.warning:
                break
        else:
            pytest.fail("backend quota was never hit")

        assert result.warning == "Storage quota exceeded. Removed 50% of oldest scans."
        ids = _ids(store.get_all())
        assert len(ids) == added // 2
        assert ids[0] == result.data.id

    def test_backend_quota_unrecoverable(self) -> None:
        store = ScanHistoryStore(MemoryBackend(quota_bytes=2000))

        result = store.add("https://example.com", "single", "z" * 2000)

        assert not result.success
        assert result.error == "Storage quota exceeded and unable to free space"
