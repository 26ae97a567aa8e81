"""
Customization Event Relay.

Publishes customization events to the events queue and rejected events to
the rejected queue. Both the ingress API and the file-drop watcher go
through here; neither talks to Service Bus directly.

Send failures are retried with exponential backoff
(retry_delay * 2**attempt) before a ServiceBusError reaches the caller.

Exports:
    CustomizationEventRelay: Queue publisher with retry
    BatchResult: Outcome of publish_batch
"""

import time
from dataclasses import dataclass, field
from typing import Callable, List, Dict, Any, Optional, TypeVar

from config import QueueConfig, get_config
from config.defaults import QueueDefaults
from core.schema.queue import CustomizationEventMessage, RejectedEventMessage
from exceptions import ServiceBusError
from interfaces.repository import IQueueRepository
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "CustomizationEventRelay")

T = TypeVar("T")


@dataclass
class BatchResult:
    """Result of a batch publish."""

    success: bool
    messages_sent: int
    batch_count: int
    elapsed_ms: float
    message_ids: List[str] = field(default_factory=list)
    failed_event_ids: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "messages_sent": self.messages_sent,
            "batch_count": self.batch_count,
            "elapsed_ms": round(self.elapsed_ms, 2),
            "failed_count": len(self.failed_event_ids),
            "errors": self.errors,
        }


class CustomizationEventRelay:
    """
    Publishes events through an IQueueRepository.

    Usage:
        relay = CustomizationEventRelay(RepositoryFactory.create_service_bus_repository())
        message_id = relay.publish(event)
    """

    def __init__(
        self,
        queue_repository: IQueueRepository,
        config: Optional[QueueConfig] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Args:
            queue_repository: Queue implementation (Service Bus or fake)
            config: Queue names and retry settings (from get_config() if omitted)
            sleep: Backoff sleep, injectable for tests
        """
        self.queue = queue_repository
        self.config = config or get_config().queues
        self._sleep = sleep
        self.attempts = max(1, self.config.retry_count)
        self.batch_size = min(self.config.max_batch_size, QueueDefaults.MAX_MESSAGES_PER_SEND)

    @property
    def events_queue(self) -> str:
        return self.config.events_queue

    @property
    def rejected_queue(self) -> str:
        return self.config.rejected_queue

    def _with_retry(self, description: str, operation: Callable[[], T]) -> T:
        """
        Run a send with exponential backoff.

        Raises:
            ServiceBusError: Every attempt failed
        """
        last_error: Optional[ServiceBusError] = None
        for attempt in range(self.attempts):
            try:
                return operation()
            except ServiceBusError as e:
                last_error = e
                logger.warning(f"⚠️ {description}: attempt {attempt + 1}/{self.attempts} failed: {e}")
                if attempt < self.attempts - 1:
                    wait_time = self.config.retry_delay_seconds * (2 ** attempt)
                    logger.debug(f"⏳ Waiting {wait_time}s before retry...")
                    self._sleep(wait_time)

        logger.error(f"❌ {description}: failed after {self.attempts} attempts")
        raise ServiceBusError(f"{description} failed after {self.attempts} attempts: {last_error}") from last_error

    def publish(self, event: CustomizationEventMessage) -> str:
        """
        Publish one event to the events queue.

        Returns:
            Service Bus message_id (equal to event.event_id)

        Raises:
            ServiceBusError: Send failed after retries
        """
        prefix = f"[{event.correlation_id}] " if event.correlation_id else ""
        message_id = self._with_retry(
            f"Publish event {event.event_id}",
            lambda: self.queue.send_message(self.events_queue, event)
        )
        logger.info(
            f"{prefix}📤 Published {event.event_type.value} event {event.event_id} "
            f"for floor plan {event.floor_plan_id}"
        )
        return message_id

    def publish_batch(self, events: List[CustomizationEventMessage]) -> BatchResult:
        """
        Publish events in chunks of at most max_batch_size.

        A chunk that still fails after retries is recorded in the result and
        the remaining chunks are still attempted.
        """
        start_time = time.time()
        result = BatchResult(success=True, messages_sent=0, batch_count=0, elapsed_ms=0.0)

        for i in range(0, len(events), self.batch_size):
            chunk = events[i:i + self.batch_size]
            result.batch_count += 1
            try:
                ids = self._with_retry(
                    f"Publish batch {result.batch_count} ({len(chunk)} events)",
                    lambda: self.queue.send_messages(self.events_queue, chunk)
                )
            except ServiceBusError as e:
                result.success = False
                result.errors.append(f"Batch {result.batch_count}: {e}")
                result.failed_event_ids.extend(ev.event_id for ev in chunk)
                continue
            result.messages_sent += len(ids)
            result.message_ids.extend(ids)

        result.elapsed_ms = (time.time() - start_time) * 1000
        logger.info(
            f"📦 Batch publish complete: {result.messages_sent}/{len(events)} events "
            f"in {result.batch_count} batches, {result.elapsed_ms:.2f}ms"
        )
        return result

    def forward_rejected(self, rejected: RejectedEventMessage) -> str:
        """
        Park a permanently failed event on the rejected queue.

        Raises:
            ServiceBusError: Send failed after retries (the caller treats this as transient)
        """
        message_id = self._with_retry(
            f"Forward rejected event {rejected.event_id or rejected.message_id}",
            lambda: self.queue.send_message(self.rejected_queue, rejected)
        )
        logger.warning(
            f"[{rejected.correlation_id}] 🚫 Event {rejected.event_id or rejected.message_id} "
            f"rejected ({rejected.reason}) and forwarded to {self.rejected_queue}"
        )
        return message_id
