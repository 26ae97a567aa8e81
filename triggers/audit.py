"""
Legacy Import Audit Triggers.

    GET  /api/audit/imports?status=&legacy_system_id=&limit=   newest first
    POST /api/audit/imports                                    record an external import (201)
    GET  /api/audit/imports/{audit_id}

POST is for imports run outside the file drop, for example a Data Factory
pipeline reporting its result. status is derived from the counts when
omitted.

Exports:
    AuditTrigger
    audit_trigger: Singleton instance
"""

from typing import Dict, Any, List, Optional

import azure.functions as func

from config.defaults import DatabaseDefaults
from services import AuditRecorder

from .http_base import BaseHttpTrigger


class AuditTrigger(BaseHttpTrigger):
    def __init__(self, repositories=None):
        super().__init__("audit", repositories)
        self._recorder = None

    def get_allowed_methods(self) -> List[str]:
        return ["GET", "POST"]

    def allowed_methods_for(self, req: func.HttpRequest) -> List[str]:
        return ["GET"] if req.route_params.get("audit_id") else ["GET", "POST"]

    def success_status_code(self, req: func.HttpRequest, data: Optional[Dict[str, Any]] = None) -> int:
        return 201 if req.method.upper() == "POST" else 200

    @property
    def recorder(self) -> AuditRecorder:
        if self._recorder is None:
            self._recorder = AuditRecorder(self.repositories["audit_repo"])
        return self._recorder

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        audit_id = req.route_params.get("audit_id")
        if audit_id:
            return {"import": self.serialize(self.recorder.get_import(audit_id))}

        if req.method.upper() == "POST":
            record = self.recorder.record_from_payload(
                self.extract_json_body(req), imported_by=self.caller_id(req)
            )
            return {"import": self.serialize(record)}

        params = self.extract_query_params(req, optional_params=["status", "legacy_system_id"])
        limit = self.get_int_param(req, "limit", DatabaseDefaults.DEFAULT_PAGE_SIZE, minimum=1)
        records = self.recorder.list_imports(
            status=params.get("status"),
            legacy_system_id=params.get("legacy_system_id"),
            limit=limit,
        )
        return {"imports": self.serialize(records), "count": len(records), "filters": {**params, "limit": limit}}


audit_trigger = AuditTrigger()
