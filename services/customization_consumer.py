"""
Customization Event Processor - Queue Consumer.

Applies customization events from the events queue to the database.

Failure policy (core.logic.failure):
    PERMANENT  -> forward a RejectedEventMessage to the rejected queue and
                  return normally so the trigger completes the message
    TRANSIENT  -> re-raise; the Functions host abandons the message and
                  Service Bus redelivers it until MaxDeliveryCount, then
                  dead-letters it

Idempotency:
    created  - recorded in processed_events with the insert; any later
               delivery is DUPLICATE, even after the row was deleted
    updated  - writes the same values again
    deleted  - a missing row is DUPLICATE

Exports:
    CustomizationEventProcessor
"""

import uuid
from typing import Dict, Any, Optional, Tuple, Union

from config.defaults import QueueDefaults
from core.logic import classify_failure, is_final_attempt
from core.models import (
    CustomizationRecord,
    EventType,
    FailureKind,
    ProcessingOutcome,
)
from core.schema.queue import CustomizationEventMessage, RejectedEventMessage
from core.schema.updates import CustomizationUpdateModel
from exceptions import ResourceNotFoundError, ValidationError
from infrastructure.interface_repository import ICustomizationRepository, IFloorPlanRepository
from util_logger import LoggerFactory, ComponentType, LogContext

from .event_relay import CustomizationEventRelay

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "CustomizationEventProcessor")

# Rejected messages keep the whole body; the error text is capped
MAX_ERROR_LENGTH = 2000


class CustomizationEventProcessor:
    """
    Applies one queue message at a time.

    Usage:
        processor = CustomizationEventProcessor(customization_repo, floor_plan_repo, relay)
        result = processor.process(body, message_id=msg.message_id, delivery_count=msg.delivery_count)
    """

    def __init__(
        self,
        customization_repo: ICustomizationRepository,
        floor_plan_repo: IFloorPlanRepository,
        relay: CustomizationEventRelay,
        max_delivery_count: int = QueueDefaults.MAX_DELIVERY_COUNT
    ):
        self.customizations = customization_repo
        self.floor_plans = floor_plan_repo
        self.relay = relay
        self.max_delivery_count = max_delivery_count

    def process(
        self,
        body: Union[str, bytes],
        message_id: Optional[str] = None,
        delivery_count: int = 1
    ) -> Dict[str, Any]:
        """
        Parse and apply one message.

        Args:
            body: Raw message body (UTF-8 JSON, bytes or text)
            message_id: Service Bus message_id
            delivery_count: 1-based delivery attempt

        Returns:
            {'outcome', 'event_id', 'customization_id', 'correlation_id', 'message_id'}

        Raises:
            Exception: Any transient failure, so Service Bus redelivers the message
        """
        correlation_id = str(uuid.uuid4())[:8]
        event: Optional[CustomizationEventMessage] = None

        try:
            text = body.decode("utf-8") if isinstance(body, bytes) else body
            event = CustomizationEventMessage.model_validate_json(text)
            correlation_id = event.correlation_id or correlation_id
            logger.info(
                f"[{correlation_id}] 📨 Processing {event.event_type.value} event {event.event_id} "
                f"(delivery {delivery_count}/{self.max_delivery_count})",
                extra={'custom_dimensions': LogContext(
                    event_id=event.event_id,
                    event_type=event.event_type.value,
                    floor_plan_id=event.floor_plan_id,
                    correlation_id=correlation_id,
                    message_id=message_id,
                    source_file=event.source_file,
                    user_id=event.submitted_by,
                ).to_dict()}
            )
            outcome, customization_id = self._apply(event, correlation_id)

        except Exception as e:
            if classify_failure(e) == FailureKind.PERMANENT:
                return self._reject(body, event, e, message_id, delivery_count, correlation_id)

            if is_final_attempt(delivery_count, self.max_delivery_count):
                logger.error(
                    f"[{correlation_id}] 💀 Final attempt {delivery_count}/{self.max_delivery_count} failed "
                    f"for message {message_id}: {type(e).__name__}: {e} - Service Bus will dead-letter it"
                )
            else:
                logger.warning(
                    f"[{correlation_id}] 🔄 Transient failure on delivery {delivery_count} "
                    f"for message {message_id}: {type(e).__name__}: {e}"
                )
            raise

        logger.info(f"[{correlation_id}] ✅ Event {event.event_id}: {outcome.value} (customization {customization_id})")
        return {
            "outcome": outcome.value,
            "event_id": event.event_id,
            "customization_id": customization_id,
            "correlation_id": correlation_id,
            "message_id": message_id,
        }

    # ------------------------------------------------------------------
    # Event application
    # ------------------------------------------------------------------

    def _apply(self, event: CustomizationEventMessage, correlation_id: str) -> Tuple[ProcessingOutcome, Optional[int]]:
        if event.event_type == EventType.CREATED:
            return self._apply_created(event)
        if event.event_type == EventType.UPDATED:
            return self._apply_updated(event)
        return self._apply_deleted(event, correlation_id)

    def _apply_created(self, event: CustomizationEventMessage) -> Tuple[ProcessingOutcome, Optional[int]]:
        if self.floor_plans.get_floor_plan(event.floor_plan_id) is None:
            raise ResourceNotFoundError(f"Floor plan {event.floor_plan_id} does not exist")

        record = CustomizationRecord(
            floor_plan_id=event.floor_plan_id,
            component_type=event.component_type,
            properties=event.properties or {},
            position_x=event.position_x,
            position_y=event.position_y,
            source_event_id=event.event_id,
        )
        saved, created = self.customizations.create_customization_from_event(record)
        outcome = ProcessingOutcome.APPLIED if created else ProcessingOutcome.DUPLICATE
        return outcome, saved.customization_id if saved else None

    def _load_for_event(self, event: CustomizationEventMessage) -> Optional[CustomizationRecord]:
        existing = self.customizations.get_customization(event.customization_id)
        if existing is not None and existing.floor_plan_id != event.floor_plan_id:
            raise ValidationError(
                f"Customization {event.customization_id} belongs to floor plan "
                f"{existing.floor_plan_id}, not {event.floor_plan_id}"
            )
        return existing

    def _apply_updated(self, event: CustomizationEventMessage) -> Tuple[ProcessingOutcome, Optional[int]]:
        if self._load_for_event(event) is None:
            raise ResourceNotFoundError(f"Customization {event.customization_id} does not exist")

        updates = CustomizationUpdateModel(**event.changed_fields())
        updated = self.customizations.update_customization(event.customization_id, updates)
        if updated is None:
            raise ResourceNotFoundError(f"Customization {event.customization_id} was deleted during update")
        return ProcessingOutcome.APPLIED, updated.customization_id

    def _apply_deleted(self, event: CustomizationEventMessage, correlation_id: str) -> Tuple[ProcessingOutcome, Optional[int]]:
        if self._load_for_event(event) is None:
            logger.info(f"[{correlation_id}] 📋 Customization {event.customization_id} already deleted")
            return ProcessingOutcome.DUPLICATE, event.customization_id

        deleted = self.customizations.delete_customization(event.customization_id)
        outcome = ProcessingOutcome.APPLIED if deleted else ProcessingOutcome.DUPLICATE
        return outcome, event.customization_id

    # ------------------------------------------------------------------
    # Permanent failures
    # ------------------------------------------------------------------

    def _reject(
        self,
        body: Union[str, bytes],
        event: Optional[CustomizationEventMessage],
        error: Exception,
        message_id: Optional[str],
        delivery_count: int,
        correlation_id: str
    ) -> Dict[str, Any]:
        """
        Forward to the rejected queue.

        A failure to forward raises ServiceBusError, which is transient:
        the original message is retried rather than lost.
        """
        event_id = event.event_id if event else None
        logger.warning(
            f"[{correlation_id}] ⚠️ Permanent failure for message {message_id}: "
            f"{type(error).__name__}: {error}"
        )
        rejected = RejectedEventMessage(
            event_id=event_id,
            message_id=message_id,
            original_body=body.decode("utf-8", errors="replace") if isinstance(body, bytes) else body,
            reason=type(error).__name__[:100],
            error=str(error)[:MAX_ERROR_LENGTH],
            delivery_count=delivery_count,
            correlation_id=correlation_id,
        )
        self.relay.forward_rejected(rejected)

        return {
            "outcome": ProcessingOutcome.REJECTED.value,
            "event_id": event_id,
            "customization_id": event.customization_id if event else None,
            "correlation_id": correlation_id,
            "message_id": message_id,
            "reason": rejected.reason,
        }
