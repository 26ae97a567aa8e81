"""
Customization Event Ingress Trigger.

    POST /api/customizations/events   -> 202 Accepted

Validates the event and puts it on the events queue. The database is
changed later by the queue consumer; the response carries the event_id
to correlate with.

Headers:
    X-User-Id          submitted_by
    X-Correlation-Id   tracing id (generated when absent, max 16 chars)

Exports:
    CustomizationEventTrigger
    customization_event_trigger: Singleton instance
"""

from typing import Dict, Any, List, Optional

import azure.functions as func

from services import CustomizationIngestService

from .http_base import PipelineTrigger


class CustomizationEventTrigger(PipelineTrigger):
    """Asynchronous customization intake."""

    def __init__(self, queue_repository=None):
        super().__init__("customization_events", queue_repository=queue_repository)
        self._ingest = None

    def get_allowed_methods(self) -> List[str]:
        return ["POST"]

    def success_status_code(self, req: func.HttpRequest, data: Optional[Dict[str, Any]] = None) -> int:
        return 202

    @property
    def ingest(self) -> CustomizationIngestService:
        if self._ingest is None:
            self._ingest = CustomizationIngestService(self.relay)
        return self._ingest

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        body = self.extract_json_body(req)
        correlation_id = (req.headers.get("X-Correlation-Id") or "")[:16] or None
        return self.ingest.submit_event(
            body,
            submitted_by=self.caller_id(req),
            correlation_id=correlation_id,
        )


customization_event_trigger = CustomizationEventTrigger()
