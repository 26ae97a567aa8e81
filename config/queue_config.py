"""
Azure Service Bus Queue Configuration.

Provides configuration for:
    - Service Bus connection settings
    - Queue names (customization events, rejected events)
    - Batch processing settings
    - Retry and delivery-count settings

Queue Architecture:
    - customization-events: every create/update/delete event, from the
      ingress API and the file-drop watcher. Its native dead-letter
      sub-queue catches events that kept failing transiently.
    - customization-events-rejected: events that failed permanently
      (bad payload, missing parent), with the reason attached.

Exports:
    QueueConfig: Pydantic queue configuration model
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import QueueDefaults


# ============================================================================
# QUEUE CONFIGURATION
# ============================================================================

class QueueConfig(BaseModel):
    """
    Azure Service Bus queue configuration.

    Controls Service Bus connection and message processing settings.
    """

    # Service Bus connection
    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Service Bus connection string (from ServiceBusConnection env var or Azure Functions binding)"
    )

    namespace: Optional[str] = Field(
        default=None,
        description="Service Bus namespace for managed identity auth (alternative to connection string)"
    )

    # Queue names
    events_queue: str = Field(
        default=QueueDefaults.EVENTS_QUEUE,
        description="Service Bus queue for customization events"
    )

    rejected_queue: str = Field(
        default=QueueDefaults.REJECTED_QUEUE,
        description="Service Bus queue for permanently rejected events"
    )

    max_delivery_count: int = Field(
        default=QueueDefaults.MAX_DELIVERY_COUNT,
        ge=1,
        le=100,
        description="MaxDeliveryCount configured on the events queue"
    )

    # Batch processing
    max_batch_size: int = Field(
        default=QueueDefaults.MAX_BATCH_SIZE,
        ge=1,
        le=1000,
        description="Maximum batch size for Service Bus messages"
    )

    # Retry configuration
    retry_count: int = Field(
        default=QueueDefaults.RETRY_COUNT,
        ge=0,
        le=10,
        description="Number of retry attempts for Service Bus send operations"
    )

    retry_delay_seconds: float = Field(
        default=QueueDefaults.RETRY_DELAY_SECONDS,
        ge=0,
        description="Base delay for exponential send backoff"
    )

    message_ttl_hours: int = Field(
        default=QueueDefaults.MESSAGE_TTL_HOURS,
        ge=1,
        description="Time-to-live applied to every published event"
    )

    def debug_dict(self) -> dict:
        return {
            "events_queue": self.events_queue,
            "rejected_queue": self.rejected_queue,
            "namespace": self.namespace,
            "connection": "***MASKED***" if self.connection_string else None,
            "max_delivery_count": self.max_delivery_count,
            "max_batch_size": self.max_batch_size,
            "retry_count": self.retry_count,
            "message_ttl_hours": self.message_ttl_hours,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("ServiceBusConnection"),
            # Check both SERVICE_BUS_NAMESPACE and Azure Functions binding variable
            namespace=os.environ.get("SERVICE_BUS_NAMESPACE") or os.environ.get("ServiceBusConnection__fullyQualifiedNamespace"),
            events_queue=os.environ.get("SERVICE_BUS_EVENTS_QUEUE", QueueDefaults.EVENTS_QUEUE),
            rejected_queue=os.environ.get("SERVICE_BUS_REJECTED_QUEUE", QueueDefaults.REJECTED_QUEUE),
            max_delivery_count=int(os.environ.get("QUEUE_MAX_DELIVERY_COUNT", str(QueueDefaults.MAX_DELIVERY_COUNT))),
            max_batch_size=int(os.environ.get("SERVICE_BUS_MAX_BATCH_SIZE", str(QueueDefaults.MAX_BATCH_SIZE))),
            retry_count=int(os.environ.get("SERVICE_BUS_RETRY_COUNT", str(QueueDefaults.RETRY_COUNT))),
            message_ttl_hours=int(os.environ.get("SERVICE_BUS_MESSAGE_TTL_HOURS", str(QueueDefaults.MESSAGE_TTL_HOURS))),
        )
