"""
Queue Message Schemas - Transport Boundary.

Message formats for the Service Bus customization pipeline.

    CustomizationEventMessage  ->  customization-events queue
    RejectedEventMessage       ->  customization-events-rejected queue

Exports:
    CustomizationEventMessage: One customization change in motion
    RejectedEventMessage: An event that failed permanently, with the reason
"""

import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from ..models import EventType, EventSource, FailureKind


# ============================================================================
# QUEUE MESSAGE MODELS
# ============================================================================

class CustomizationEventMessage(BaseModel):
    """
    Customization event for the events queue.

    Required fields depend on event_type:
    - created: component_type, position_x, position_y
    - updated: customization_id and at least one changed field
    - deleted: customization_id

    event_id doubles as the Service Bus message_id and as the
    customization's source_event_id, so a client that retries with the
    same event_id cannot create the row twice.

    correlation_id is the short tracing id printed as a `[abc12345]`
    prefix in log lines, so one Application Insights query follows an
    event from the ingress request to the consumer:

        traces | where message contains '[abc12345]' | order by timestamp asc
    """

    model_config = ConfigDict(validate_assignment=True, extra='forbid')

    event_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        min_length=1,
        max_length=64,
        description="Client idempotency key (generated when absent)"
    )
    event_type: EventType = Field(..., description="created, updated or deleted")
    floor_plan_id: int = Field(..., gt=0)
    customization_id: Optional[int] = Field(default=None, gt=0)

    component_type: Optional[str] = Field(default=None, min_length=1, max_length=50)
    properties: Optional[Dict[str, Any]] = Field(default=None, description="Opaque property bag")
    position_x: Optional[float] = None
    position_y: Optional[float] = None

    source: EventSource = Field(default=EventSource.API)
    source_file: Optional[str] = Field(default=None, max_length=500)
    submitted_by: Optional[str] = Field(default=None, max_length=100)
    correlation_id: Optional[str] = Field(default=None, max_length=16)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator('component_type')
    @classmethod
    def normalize_component_type(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v

    @model_validator(mode='after')
    def check_fields_for_event_type(self):
        if self.event_type == EventType.CREATED:
            missing = [
                name for name in ('component_type', 'position_x', 'position_y')
                if getattr(self, name) is None
            ]
            if missing:
                raise ValueError(f"created event requires: {', '.join(missing)}")
        else:
            if self.customization_id is None:
                raise ValueError(f"{self.event_type.value} event requires customization_id")
            if self.event_type == EventType.UPDATED and not self.changed_fields():
                raise ValueError("updated event must change at least one field")
        return self

    def changed_fields(self) -> Dict[str, Any]:
        """Fields an update event carries, ready for CustomizationUpdateModel."""
        return {
            name: getattr(self, name)
            for name in ('component_type', 'properties', 'position_x', 'position_y')
            if getattr(self, name) is not None
        }

    def application_properties(self) -> Dict[str, Any]:
        """Service Bus application properties (filterable without parsing the body)."""
        return {
            'event_id': self.event_id,
            'event_type': self.event_type.value,
            'floor_plan_id': self.floor_plan_id,
            'source': self.source.value,
        }


class RejectedEventMessage(BaseModel):
    """
    Permanently failed event, parked for inspection.

    original_body is kept verbatim because a malformed payload may not
    parse into CustomizationEventMessage at all.
    """

    model_config = ConfigDict(validate_assignment=True)

    message_type: str = Field(default="customization_event_rejected")
    event_id: Optional[str] = Field(default=None, description="Parsed event_id, when the body parsed")
    message_id: Optional[str] = Field(default=None, description="Service Bus message_id")
    original_body: str = Field(..., description="Message body as received")
    failure_kind: FailureKind = Field(default=FailureKind.PERMANENT)
    reason: str = Field(..., max_length=100, description="Exception class name")
    error: str = Field(..., description="Exception message")
    delivery_count: int = Field(default=1, ge=0)
    correlation_id: Optional[str] = Field(default=None, max_length=16)
    rejected_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    'CustomizationEventMessage',
    'RejectedEventMessage',
]
