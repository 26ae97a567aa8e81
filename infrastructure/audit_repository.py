"""
Legacy Data Audit Repository.

PostgreSQL persistence for LegacyDataAuditRecord. The table is append-only:
records are inserted once and read back for reporting and for the file-drop
watcher's "already imported?" check.

Exports:
    PostgreSQLAuditRepository: IAuditRepository over the legacy_data_audit table
"""

from typing import List, Optional

from psycopg import sql

from config.defaults import DatabaseDefaults
from core.models import LegacyDataAuditRecord, ImportStatus
from utils import enforce_contract

from .interface_repository import IAuditRepository
from .postgresql import PostgreSQLRepository


class PostgreSQLAuditRepository(PostgreSQLRepository, IAuditRepository):
    """
    PostgreSQL implementation of the legacy import audit trail.
    """

    TABLE = "legacy_data_audit"

    @enforce_contract(params={'record': LegacyDataAuditRecord}, returns=LegacyDataAuditRecord)
    def record_import(self, record: LegacyDataAuditRecord) -> LegacyDataAuditRecord:
        """
        Append one audit record.

        Raises:
            ConstraintViolationError: audit_id already recorded
        """
        with self._error_context("audit record", record.audit_id):
            row = self._insert_returning(self.TABLE, record.model_dump())
            saved = LegacyDataAuditRecord.model_validate(row)
            self._log_operation_result(
                True, "Import audited", saved.audit_id,
                {"file": saved.source_file_name, "status": saved.status,
                 "records": saved.record_count, "rejected": saved.rejected_count}
            )
            return saved

    @enforce_contract(params={'audit_id': str}, returns=Optional[LegacyDataAuditRecord])
    def get_import(self, audit_id: str) -> Optional[LegacyDataAuditRecord]:
        with self._error_context("audit retrieval", audit_id):
            row = self._fetch_by(self.TABLE, "audit_id", audit_id)
            return LegacyDataAuditRecord.model_validate(row) if row else None

    @enforce_contract(
        params={'status': (ImportStatus, str, type(None)), 'legacy_system_id': Optional[str], 'limit': int},
        returns=list
    )
    def list_imports(
        self,
        status: Optional[ImportStatus] = None,
        legacy_system_id: Optional[str] = None,
        limit: int = DatabaseDefaults.DEFAULT_PAGE_SIZE
    ) -> List[LegacyDataAuditRecord]:
        """Newest first, optionally filtered by status and source system."""
        if status is not None:
            # Raises ValueError for an unknown status string
            status = ImportStatus(status)
        with self._error_context("audit listing"):
            filters = {"status": status, "legacy_system_id": legacy_system_id}
            rows = self._list_rows(self.TABLE, filters, "imported_at", limit, 0, descending=True)
            return [LegacyDataAuditRecord.model_validate(r) for r in rows]

    @enforce_contract(params={'source_file_name': str}, returns=Optional[LegacyDataAuditRecord])
    def find_by_source_file(self, source_file_name: str) -> Optional[LegacyDataAuditRecord]:
        with self._error_context("audit lookup by file", source_file_name):
            query = sql.SQL(
                "SELECT * FROM {} WHERE {} = %s ORDER BY {} DESC LIMIT 1"
            ).format(
                self._table(self.TABLE),
                sql.Identifier("source_file_name"),
                sql.Identifier("imported_at")
            )
            row = self._execute_query(query, (source_file_name,), fetch='one')
            return LegacyDataAuditRecord.model_validate(row) if row else None
