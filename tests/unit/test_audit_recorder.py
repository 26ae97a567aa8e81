"""
AuditRecorder — status derivation, HTTP payloads, lookups.
"""

import pytest
from pydantic import ValidationError as PydanticValidationError

from core.models import DataType, ImportStatus
from exceptions import ResourceNotFoundError
from services import AuditRecorder
from services.audit_recorder import MAX_ERROR_DETAILS_LENGTH
from tests.factories.model_factories import make_audit


@pytest.fixture
def recorder(repositories):
    return AuditRecorder(repositories["audit_repo"])


def _record(recorder, **overrides):
    data = {
        "legacy_system_id": "crm",
        "data_type": DataType.CSV,
        "source_file_name": "incoming/crm/a.csv",
        "imported_by": "file-drop-watcher",
        "record_count": 10,
    }
    data.update(overrides)
    return recorder.record_import(**data)


class TestRecordImport:

    def test_status_derived_from_counts(self, recorder):
        assert _record(recorder).status == "success"
        assert _record(recorder, rejected_count=2).status == "partial"
        assert _record(recorder, record_count=0, rejected_count=2).status == "failed"

    def test_explicit_status_wins(self, recorder):
        record = _record(recorder, record_count=4, status=ImportStatus.FAILED, error_details="queue down")
        assert record.status == "failed"
        assert record.error_details == "queue down"

    def test_contradicting_status_rejected(self, recorder):
        with pytest.raises(PydanticValidationError):
            _record(recorder, rejected_count=3, status=ImportStatus.SUCCESS)

    def test_long_error_details_truncated(self, recorder):
        record = _record(recorder, record_count=0, error_details="x" * (MAX_ERROR_DETAILS_LENGTH + 500))
        assert len(record.error_details) == MAX_ERROR_DETAILS_LENGTH
        assert record.error_details.endswith("...")


class TestRecordFromPayload:

    def test_reported_import(self, recorder):
        payload = make_audit(status="partial")
        record = recorder.record_from_payload(payload)
        assert record.legacy_system_id == payload["legacy_system_id"]
        assert record.status == "partial"

    def test_caller_header_fills_imported_by(self, recorder):
        payload = make_audit()
        payload.pop("imported_by")
        assert recorder.record_from_payload(payload, imported_by="adf-pipeline").imported_by == "adf-pipeline"

    def test_missing_fields(self, recorder):
        with pytest.raises(ValueError, match="source_file_name"):
            recorder.record_from_payload({"legacy_system_id": "crm", "data_type": "csv", "imported_by": "me"})

    def test_unknown_data_type(self, recorder):
        with pytest.raises(ValueError):
            recorder.record_from_payload(make_audit(data_type="xml"))

    def test_non_object(self, recorder):
        with pytest.raises(ValueError):
            recorder.record_from_payload("nope")


class TestLookups:

    def test_was_imported(self, recorder):
        _record(recorder, source_file_name="incoming/crm/b.csv")
        assert recorder.was_imported("incoming/crm/b.csv")
        assert not recorder.was_imported("incoming/crm/c.csv")

    def test_list_filters(self, recorder):
        _record(recorder, legacy_system_id="crm")
        _record(recorder, legacy_system_id="erp", record_count=0)
        assert [r.legacy_system_id for r in recorder.list_imports(legacy_system_id="erp")] == ["erp"]
        assert [r.status for r in recorder.list_imports(status="success")] == ["success"]

    def test_get_import(self, recorder):
        record = _record(recorder)
        assert recorder.get_import(record.audit_id).audit_id == record.audit_id

    def test_get_missing_import(self, recorder):
        with pytest.raises(ResourceNotFoundError):
            recorder.get_import("00000000-0000-0000-0000-000000000000")
