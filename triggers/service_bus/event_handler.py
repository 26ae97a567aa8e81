# ============================================================================
# SERVICE BUS CUSTOMIZATION EVENT HANDLER
# ============================================================================
# STATUS: Trigger layer - Events queue message processing
# PURPOSE: Hand customization events from Service Bus to the processor
# ============================================================================
"""
Customization Event Queue Handler.

Handles messages from the customization events queue. Returning normally
completes the message (applied, duplicate or rejected); raising abandons
it so Service Bus redelivers, and after MaxDeliveryCount moves it to the
dead-letter sub-queue.

Usage:
    from triggers.service_bus import handle_customization_event

    @app.service_bus_queue_trigger(
        arg_name="msg",
        queue_name="%SERVICE_BUS_EVENTS_QUEUE%",
        connection="ServiceBusConnection"
    )
    def process_customization_event(msg: func.ServiceBusMessage) -> None:
        handle_customization_event(msg)
"""

import time
import uuid
from typing import Any, Dict, Optional

import azure.functions as func

from util_logger import LoggerFactory, ComponentType, LogContext, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "CustomizationEventHandler")

_processor = None


def get_processor():
    """Processor wired to PostgreSQL and Service Bus, built on first message."""
    global _processor
    if _processor is None:
        from config import get_config
        from infrastructure import RepositoryFactory
        from services import CustomizationEventProcessor, CustomizationEventRelay

        repos = RepositoryFactory.create_repositories()
        relay = CustomizationEventRelay(RepositoryFactory.create_service_bus_repository())
        _processor = CustomizationEventProcessor(
            repos['customization_repo'],
            repos['floor_plan_repo'],
            relay,
            max_delivery_count=get_config().queues.max_delivery_count,
        )
    return _processor


@log_exceptions(logger=logger)
def handle_customization_event(
    msg: func.ServiceBusMessage,
    processor: Optional[Any] = None
) -> Dict[str, Any]:
    """
    Process one customization event message.

    Args:
        msg: Service Bus message
        processor: CustomizationEventProcessor (built lazily when omitted)

    Returns:
        Processing result dict (outcome, event_id, customization_id, ...)

    Raises:
        Exception: Transient failure; the host abandons the message
    """
    trace_id = str(uuid.uuid4())[:8]
    start_time = time.time()
    _log_message_received(msg, trace_id)

    body = msg.get_body()
    delivery_count = msg.delivery_count or 1

    result = (processor or get_processor()).process(
        body,
        message_id=msg.message_id,
        delivery_count=delivery_count,
    )

    elapsed = time.time() - start_time
    logger.info(
        f"[{result.get('correlation_id', trace_id)}] Message {msg.message_id} "
        f"{result['outcome']} in {elapsed:.3f}s"
    )
    return result


def _log_message_received(msg: func.ServiceBusMessage, trace_id: str) -> None:
    """Log Service Bus message metadata immediately on receipt."""
    logger.info(
        f"[{trace_id}] 📨 SERVICE BUS MESSAGE RECEIVED (customization events)",
        extra={
            **LogContext(correlation_id=trace_id, message_id=msg.message_id).to_dict(),
            'checkpoint': 'MESSAGE_RECEIVED',
            'sequence_number': msg.sequence_number,
            'delivery_count': msg.delivery_count,
            'enqueued_time': msg.enqueued_time_utc.isoformat() if msg.enqueued_time_utc else None,
            'content_type': msg.content_type,
        }
    )


__all__ = ['handle_customization_event', 'get_processor']
