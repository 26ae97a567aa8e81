"""
Legacy Data Audit Model - Persistence Boundary.

One row per legacy batch import, whether it came through the file drop
or was reported by an external tool. The table is append-only and has
no foreign keys: a floor plan can be deleted without losing the record
of how its customizations arrived.

Exports:
    LegacyDataAuditRecord: Row in the legacy_data_audit table
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict, model_validator

from .enums import DataType, ImportStatus

# Column widths; the file-drop watcher fits blob-derived values to them
MAX_SYSTEM_ID_LENGTH = 100
MAX_IMPORTER_LENGTH = 100
MAX_SOURCE_FILE_LENGTH = 500


class LegacyDataAuditRecord(BaseModel):
    """
    Audit trail entry for one legacy import.
    """

    model_config = ConfigDict(use_enum_values=True, validate_assignment=True)

    __sql_table_name: ClassVar[str] = "legacy_data_audit"
    __sql_primary_key: ClassVar[List[str]] = ["audit_id"]
    __sql_identity: ClassVar[bool] = False
    __sql_unique: ClassVar[List[List[str]]] = []
    __sql_foreign_keys: ClassVar[Dict[str, str]] = {}
    __sql_indexes: ClassVar[List[Dict[str, Any]]] = [
        {"columns": ["source_file_name"], "name": "idx_legacy_audit_source_file"},
        {"columns": ["legacy_system_id"], "name": "idx_legacy_audit_system"},
        {"columns": ["status"], "name": "idx_legacy_audit_status"},
        {"columns": ["imported_at"], "name": "idx_legacy_audit_imported_at", "descending": True},
    ]

    audit_id: str = Field(default_factory=lambda: str(uuid.uuid4()), max_length=36)
    legacy_system_id: str = Field(..., min_length=1, max_length=MAX_SYSTEM_ID_LENGTH, description="System that produced the file")
    data_type: DataType = Field(..., description="csv or json")
    source_file_name: str = Field(..., min_length=1, max_length=MAX_SOURCE_FILE_LENGTH, description="Blob path or external file name")
    imported_by: str = Field(..., min_length=1, max_length=MAX_IMPORTER_LENGTH, description="Person or process that ran the import")
    status: ImportStatus = Field(...)
    record_count: int = Field(default=0, ge=0, description="Rows published")
    rejected_count: int = Field(default=0, ge=0, description="Rows rejected")
    error_details: Optional[str] = Field(default=None)
    imported_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode='after')
    def check_status_counts(self):
        if self.status == ImportStatus.SUCCESS.value and self.rejected_count:
            raise ValueError("a successful import cannot have rejected rows")
        if self.status == ImportStatus.PARTIAL.value and not self.rejected_count:
            raise ValueError("a partial import must report rejected rows")
        return self
