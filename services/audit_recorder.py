"""
Legacy Data Audit Recorder.

One audit row per legacy import. Used by the file-drop watcher and by the
audit HTTP endpoints (external tools such as a Data Factory run report
their imports through POST /api/audit/imports).

Exports:
    AuditRecorder
"""

from typing import Dict, Any, List, Optional

from core.logic import determine_import_status
from core.models import DataType, ImportStatus, LegacyDataAuditRecord
from exceptions import ResourceNotFoundError
from infrastructure.interface_repository import IAuditRepository
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "AuditRecorder")

MAX_ERROR_DETAILS_LENGTH = 8000

# Fields a caller may supply on POST /api/audit/imports
PAYLOAD_FIELDS = (
    "legacy_system_id",
    "data_type",
    "source_file_name",
    "imported_by",
    "status",
    "record_count",
    "rejected_count",
    "error_details",
)


class AuditRecorder:
    """Writes and reads legacy import audit records."""

    def __init__(self, audit_repo: IAuditRepository):
        self.repo = audit_repo

    def record_import(
        self,
        legacy_system_id: str,
        data_type: DataType,
        source_file_name: str,
        imported_by: str,
        record_count: int,
        rejected_count: int = 0,
        status: Optional[ImportStatus] = None,
        error_details: Optional[str] = None
    ) -> LegacyDataAuditRecord:
        """
        Record one import.

        status is derived from the counts when not given.

        Raises:
            pydantic.ValidationError: Counts contradict the status
            DatabaseError: Insert failed
        """
        if status is None:
            status = determine_import_status(record_count, rejected_count)
        if error_details and len(error_details) > MAX_ERROR_DETAILS_LENGTH:
            error_details = error_details[:MAX_ERROR_DETAILS_LENGTH - 3] + "..."

        record = LegacyDataAuditRecord(
            legacy_system_id=legacy_system_id,
            data_type=data_type,
            source_file_name=source_file_name,
            imported_by=imported_by,
            status=status,
            record_count=record_count,
            rejected_count=rejected_count,
            error_details=error_details,
        )
        saved = self.repo.record_import(record)
        logger.info(
            f"📋 Audit {saved.audit_id}: {saved.source_file_name} from {saved.legacy_system_id} "
            f"-> {saved.status} ({saved.record_count} published, {saved.rejected_count} rejected)"
        )
        return saved

    def record_from_payload(self, payload: Dict[str, Any], imported_by: Optional[str] = None) -> LegacyDataAuditRecord:
        """
        Record an import reported over HTTP.

        Raises:
            ValueError: Payload is not an object or is missing required fields
        """
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")

        data = {k: payload[k] for k in PAYLOAD_FIELDS if k in payload}
        if imported_by and not data.get("imported_by"):
            data["imported_by"] = imported_by

        missing = [k for k in ("legacy_system_id", "data_type", "source_file_name", "imported_by") if not data.get(k)]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        return self.record_import(
            legacy_system_id=data["legacy_system_id"],
            data_type=DataType(data["data_type"]),
            source_file_name=data["source_file_name"],
            imported_by=data["imported_by"],
            record_count=int(data.get("record_count", 0)),
            rejected_count=int(data.get("rejected_count", 0)),
            status=ImportStatus(data["status"]) if data.get("status") else None,
            error_details=data.get("error_details"),
        )

    def was_imported(self, source_file_name: str) -> bool:
        return self.repo.find_by_source_file(source_file_name) is not None

    def list_imports(
        self,
        status: Optional[str] = None,
        legacy_system_id: Optional[str] = None,
        limit: int = 100
    ) -> List[LegacyDataAuditRecord]:
        return self.repo.list_imports(status=status, legacy_system_id=legacy_system_id, limit=limit)

    def get_import(self, audit_id: str) -> LegacyDataAuditRecord:
        """
        Raises:
            ResourceNotFoundError: No record with this id
        """
        record = self.repo.get_import(audit_id)
        if record is None:
            raise ResourceNotFoundError(f"Audit record {audit_id} not found")
        return record
