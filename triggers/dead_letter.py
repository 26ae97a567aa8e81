"""
Dead-Letter and File-Drop Admin Triggers.

    GET  /api/admin/deadletter?source=dlq|rejected&limit=   peek (non-destructive)
    POST /api/admin/deadletter/replay?limit=                DLQ -> events queue
    POST /api/admin/filedrop/scan                           run the watcher once

Exports:
    DeadLetterTrigger, DeadLetterReplayTrigger, FileDropScanTrigger
    dead_letter_trigger, dead_letter_replay_trigger, file_drop_scan_trigger
"""

from typing import Dict, Any, List

import azure.functions as func

from core.models import DeadLetterSource
from services import AuditRecorder, DeadLetterService, FileDropWatcher

from .http_base import PipelineTrigger, SystemMonitoringTrigger

DEFAULT_LIMIT = 10


class DeadLetterTrigger(SystemMonitoringTrigger):
    """Peek at dead-lettered or rejected events."""

    def __init__(self, queue_repository=None):
        super().__init__("dead_letter_peek", queue_repository=queue_repository)

    def get_allowed_methods(self) -> List[str]:
        return ["GET"]

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        source = req.params.get("source", DeadLetterSource.DLQ.value)
        valid = [s.value for s in DeadLetterSource]
        if source not in valid:
            raise ValueError(f"source must be one of {valid}, got {source!r}")
        limit = self.get_int_param(req, "limit", DEFAULT_LIMIT, minimum=1)
        return DeadLetterService(self.queue_repository).peek(source, limit)


class DeadLetterReplayTrigger(SystemMonitoringTrigger):
    """Move DLQ messages back onto the events queue."""

    def __init__(self, queue_repository=None):
        super().__init__("dead_letter_replay", queue_repository=queue_repository)

    def get_allowed_methods(self) -> List[str]:
        return ["POST"]

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        body = self.extract_json_body(req, required=False) or {}
        limit = self.get_int_param(req, "limit", None, minimum=1)
        if limit is None:
            limit = self.parse_int(body.get("limit", DEFAULT_LIMIT), "limit")
        self.logger.info(f"♻️ Replay requested by {self.caller_id(req) or 'anonymous'} (limit={limit})")
        return DeadLetterService(self.queue_repository).replay(limit)


class FileDropScanTrigger(PipelineTrigger):
    """Run one file-drop scan on demand."""

    def __init__(self, repositories=None, queue_repository=None, blob_repository=None):
        super().__init__(
            "file_drop_scan",
            repositories=repositories,
            queue_repository=queue_repository,
            blob_repository=blob_repository,
        )

    def get_allowed_methods(self) -> List[str]:
        return ["POST"]

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        watcher = FileDropWatcher(
            self.blob_repository,
            self.relay,
            AuditRecorder(self.repositories["audit_repo"]),
        )
        return watcher.scan()


dead_letter_trigger = DeadLetterTrigger()
dead_letter_replay_trigger = DeadLetterReplayTrigger()
file_drop_scan_trigger = FileDropScanTrigger()
