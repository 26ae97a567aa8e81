"""
FileDropWatcher — scan, per-file outcomes, blob moves and audit rows.
"""

import json

import pytest

from config import StorageConfig
from services import AuditRecorder, FileDropWatcher

CONTAINER = "legacy-drops"
EVENTS = "customization-events"

GOOD_CSV = b"floor_plan_id,component_type,position_x,position_y\n1,wall,0,0\n1,door,2,3\n"
MIXED_CSV = b"floor_plan_id,component_type,position_x,position_y\n1,wall,0,0\nbad,door,2,3\n"


@pytest.fixture
def storage_config():
    return StorageConfig(max_files_per_scan=3, max_file_bytes=10_000)


@pytest.fixture
def audit_repo(repositories):
    return repositories["audit_repo"]


@pytest.fixture
def watcher(fake_blobs, relay, audit_repo, storage_config):
    return FileDropWatcher(fake_blobs, relay, AuditRecorder(audit_repo), storage_config=storage_config)


def drop(fake_blobs, path, data, **metadata):
    fake_blobs.write_blob(CONTAINER, path, data, metadata=metadata)


class TestSuccessfulImports:

    def test_clean_file_processed(self, watcher, fake_blobs, fake_queue, audit_repo):
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV)
        summary = watcher.scan()

        assert summary["files_found"] == 1
        assert summary["files_processed"] == 1
        assert summary["events_published"] == 2
        assert len(fake_queue.messages(EVENTS)) == 2
        assert fake_blobs.names(CONTAINER) == ["processed/crm/batch.csv"]

        audit = audit_repo.records[0]
        assert audit.status == "success"
        assert audit.legacy_system_id == "crm"
        assert audit.source_file_name == "incoming/crm/batch.csv"
        assert audit.imported_by == "file-drop-watcher"
        assert audit.record_count == 2

    def test_partial_file(self, watcher, fake_blobs, audit_repo):
        drop(fake_blobs, "incoming/crm/mixed.csv", MIXED_CSV)
        result = watcher.scan()["results"][0]

        assert result["status"] == "processed"
        assert result["import_status"] == "partial"
        assert result["rows_rejected"] == 1
        assert "row 2" in audit_repo.records[0].error_details
        assert fake_blobs.names(CONTAINER) == ["processed/crm/mixed.csv"]

    def test_json_file_with_metadata(self, watcher, fake_blobs, audit_repo):
        rows = [{"floor_plan_id": 2, "component_type": "window", "position_x": 1, "position_y": 1}]
        drop(fake_blobs, "incoming/export.json", json.dumps(rows).encode(),
             legacy_system_id="erp", imported_by="nightly-sync")
        watcher.scan()

        audit = audit_repo.records[0]
        assert audit.legacy_system_id == "erp"
        assert audit.imported_by == "nightly-sync"
        assert audit.data_type == "json"

    def test_file_at_root_gets_unknown_system(self, watcher, fake_blobs, audit_repo):
        drop(fake_blobs, "incoming/loose.csv", GOOD_CSV)
        watcher.scan()
        assert audit_repo.records[0].legacy_system_id == "unknown"

    def test_published_events_carry_source_file(self, watcher, fake_blobs, fake_queue):
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV)
        watcher.scan()
        body = fake_queue.bodies(EVENTS)[0]
        assert body["source"] == "file_drop"
        assert body["source_file"] == "incoming/crm/batch.csv"


class TestFailedImports:

    def test_unparseable_file_moved_to_failed(self, watcher, fake_blobs, audit_repo):
        drop(fake_blobs, "incoming/crm/broken.json", b"{nope")
        summary = watcher.scan()

        assert summary["files_failed"] == 1
        assert fake_blobs.names(CONTAINER) == ["failed/crm/broken.json"]
        assert audit_repo.records[0].status == "failed"
        assert "could not be parsed" in audit_repo.records[0].error_details

    def test_every_row_rejected(self, watcher, fake_blobs, audit_repo):
        drop(fake_blobs, "incoming/crm/bad.csv", b"floor_plan_id,component_type\nx,wall\n")
        result = watcher.scan()["results"][0]
        assert result["status"] == "failed"
        assert result["rows_rejected"] == 1
        assert audit_repo.records[0].record_count == 0

    def test_header_only_file(self, watcher, fake_blobs, audit_repo):
        drop(fake_blobs, "incoming/crm/empty.csv", b"floor_plan_id,component_type,position_x,position_y\n")
        watcher.scan()
        assert audit_repo.records[0].error_details == "File contains no rows"

    def test_oversized_file_not_parsed(self, watcher, fake_blobs, fake_queue, audit_repo):
        drop(fake_blobs, "incoming/crm/huge.csv", GOOD_CSV + b"1,wall,0,0\n" * 2000)
        watcher.scan()
        assert fake_queue.messages(EVENTS) == []
        assert "limit is 10000" in audit_repo.records[0].error_details
        assert fake_blobs.names(CONTAINER) == ["failed/crm/huge.csv"]

    def test_queue_outage_fails_file(self, watcher, fake_blobs, fake_queue, audit_repo):
        fake_queue.fail_sends = 100
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV)
        result = watcher.scan()["results"][0]

        assert result["status"] == "failed"
        assert audit_repo.records[0].status == "failed"
        assert "Service Bus unavailable" in audit_repo.records[0].error_details
        assert fake_blobs.names(CONTAINER) == ["failed/crm/batch.csv"]

    def test_audit_outage_leaves_file_in_incoming(self, watcher, fake_blobs, audit_repo):
        from exceptions import DatabaseError

        def outage(record):
            raise DatabaseError("connection refused")

        audit_repo.record_import = outage
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV)
        summary = watcher.scan()

        assert summary["files_failed"] == 1
        assert summary["results"][0]["status"] == "error"
        assert fake_blobs.names(CONTAINER) == ["incoming/crm/batch.csv"]

    def test_overlong_system_id_fails_once(self, watcher, fake_blobs, fake_queue, audit_repo):
        long_system = "s" * 150
        drop(fake_blobs, f"incoming/{long_system}/batch.csv", GOOD_CSV)

        summary = watcher.scan()

        assert summary["files_failed"] == 1
        assert fake_queue.messages(EVENTS) == []
        assert fake_blobs.names(CONTAINER) == [f"failed/{long_system}/batch.csv"]
        audit = audit_repo.records[0]
        assert audit.status == "failed"
        assert len(audit.legacy_system_id) == 100
        assert "legacy_system_id is 150 characters" in audit.error_details
        assert watcher.scan()["files_found"] == 0
        assert len(audit_repo.records) == 1

    def test_overlong_importer_metadata(self, watcher, fake_blobs, audit_repo):
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV, imported_by="x" * 101)
        result = watcher.scan()["results"][0]

        assert result["status"] == "failed"
        assert "imported_by is 101 characters" in audit_repo.records[0].error_details
        assert fake_blobs.names(CONTAINER) == ["failed/crm/batch.csv"]

    def test_overlong_file_name(self, watcher, fake_blobs, audit_repo):
        name = "incoming/crm/" + "n" * 600 + ".csv"
        drop(fake_blobs, name, GOOD_CSV)
        watcher.scan()

        audit = audit_repo.records[0]
        assert audit.source_file_name == name[:500]
        assert "source_file_name is" in audit.error_details
        assert fake_blobs.names(CONTAINER) == ["failed/" + name[len("incoming/"):]]


class TestScanBookkeeping:

    def test_unsupported_files_skipped_and_left(self, watcher, fake_blobs):
        drop(fake_blobs, "incoming/crm/readme.txt", b"hello")
        summary = watcher.scan()
        assert summary["files_skipped"] == 1
        assert fake_blobs.names(CONTAINER) == ["incoming/crm/readme.txt"]

    def test_already_audited_file_only_moved(self, watcher, fake_blobs, fake_queue, audit_repo):
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV)
        watcher.audit.record_import("crm", "csv", "incoming/crm/batch.csv", "file-drop-watcher", 2)

        summary = watcher.scan()

        assert summary["files_skipped"] == 1
        assert fake_queue.messages(EVENTS) == []
        assert len(audit_repo.records) == 1
        assert fake_blobs.names(CONTAINER) == ["processed/crm/batch.csv"]

    def test_reused_name_does_not_overwrite_processed(self, watcher, fake_blobs, fake_queue, audit_repo):
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV)
        watcher.scan()
        drop(fake_blobs, "incoming/crm/batch.csv", MIXED_CSV)

        result = watcher.scan()["results"][0]

        assert result["status"] == "already_imported"
        assert len(fake_queue.messages(EVENTS)) == 2
        names = fake_blobs.names(CONTAINER)
        assert "processed/crm/batch.csv" in names
        assert fake_blobs.read_blob(CONTAINER, "processed/crm/batch.csv") == GOOD_CSV
        assert len(names) == 2
        assert result["destination"].startswith("processed/crm/batch.")
        assert result["destination"].endswith(".csv")
        assert fake_blobs.read_blob(CONTAINER, result["destination"]) == MIXED_CSV

    def test_files_beyond_limit_deferred(self, watcher, fake_blobs):
        for i in range(5):
            drop(fake_blobs, f"incoming/crm/batch-{i}.csv", GOOD_CSV)
        summary = watcher.scan()

        assert summary["files_processed"] == 3
        assert summary["files_deferred"] == 2
        assert len([n for n in fake_blobs.names(CONTAINER) if n.startswith("incoming/")]) == 2

    def test_other_prefixes_ignored(self, watcher, fake_blobs):
        drop(fake_blobs, "processed/crm/old.csv", GOOD_CSV)
        assert watcher.scan()["files_found"] == 0

    def test_second_scan_finds_nothing(self, watcher, fake_blobs):
        drop(fake_blobs, "incoming/crm/batch.csv", GOOD_CSV)
        watcher.scan()
        assert watcher.scan()["files_found"] == 0
