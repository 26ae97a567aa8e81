"""
Customization Ingest Service.

Front door of the asynchronous pipeline: validates a client event and hands
it to the relay. Nothing here touches the database; the queue consumer
applies the change later.

Exports:
    CustomizationIngestService: submit_event for POST /api/customizations/events
"""

import uuid
from typing import Dict, Any, Optional

from core.models import EventSource
from core.schema.queue import CustomizationEventMessage
from util_logger import LoggerFactory, ComponentType

from .event_relay import CustomizationEventRelay

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "CustomizationIngestService")

# Set by the server, never by the client
SERVER_FIELDS = ("source", "source_file", "submitted_by", "correlation_id", "timestamp")


class CustomizationIngestService:
    """
    Accepts customization events for asynchronous processing.
    """

    def __init__(self, relay: CustomizationEventRelay):
        self.relay = relay

    def submit_event(
        self,
        payload: Dict[str, Any],
        submitted_by: Optional[str] = None,
        correlation_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Validate and publish one event.

        Args:
            payload: Client JSON (event_type, floor_plan_id, ...)
            submitted_by: Caller identity (X-User-Id header)
            correlation_id: Tracing id; generated when absent

        Returns:
            {'status': 'accepted', 'event_id', 'message_id', 'queue', 'correlation_id'}

        Raises:
            ValueError: Payload is not an object or fails validation
                (pydantic.ValidationError is a ValueError)
            ServiceBusError: The event could not be queued
        """
        if not isinstance(payload, dict):
            raise ValueError("Request body must be a JSON object")

        correlation_id = correlation_id or str(uuid.uuid4())[:8]
        data = {k: v for k, v in payload.items() if k not in SERVER_FIELDS}
        data.update(
            source=EventSource.API,
            submitted_by=submitted_by,
            correlation_id=correlation_id,
        )

        event = CustomizationEventMessage.model_validate(data)
        logger.info(
            f"[{correlation_id}] 📥 Accepted {event.event_type.value} event {event.event_id} "
            f"for floor plan {event.floor_plan_id}"
        )

        message_id = self.relay.publish(event)

        return {
            "status": "accepted",
            "event_id": event.event_id,
            "message_id": message_id,
            "queue": self.relay.events_queue,
            "correlation_id": correlation_id,
        }
