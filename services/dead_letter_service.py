"""
Dead-Letter Service.

Operator view of events that did not make it into the database:

    dlq       native dead-letter sub-queue of the events queue
              (transient failures that exhausted MaxDeliveryCount)
    rejected  rejected-events queue (permanent failures, with a reason)

Replay only applies to the DLQ; a rejected event fails the same way on
every attempt until its data is fixed.

Exports:
    DeadLetterService
"""

from typing import Dict, Any, Optional

from config import QueueConfig, get_config
from config.defaults import QueueDefaults
from core.models import DeadLetterSource
from interfaces.repository import IQueueRepository
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "DeadLetterService")


def _clamp(limit: int, upper: int) -> int:
    return max(1, min(int(limit), upper))


class DeadLetterService:
    """Peek, replay and count dead-lettered customization events."""

    def __init__(self, queue_repository: IQueueRepository, config: Optional[QueueConfig] = None):
        self.queue = queue_repository
        self.config = config or get_config().queues

    def peek(self, source: str = DeadLetterSource.DLQ, limit: int = 10) -> Dict[str, Any]:
        """
        Look at dead-lettered or rejected events without removing them.

        Raises:
            ValueError: Unknown source
            ServiceBusError: Queue unreachable
        """
        source = DeadLetterSource(source)
        limit = _clamp(limit, QueueDefaults.PEEK_LIMIT)

        if source == DeadLetterSource.DLQ:
            queue_name = self.config.events_queue
            messages = self.queue.peek_messages(queue_name, max_messages=limit, dead_letter=True)
        else:
            queue_name = self.config.rejected_queue
            messages = self.queue.peek_messages(queue_name, max_messages=limit)

        logger.info(f"👀 Peeked {len(messages)} messages from {source.value} ({queue_name})")
        return {
            "source": source.value,
            "queue": queue_name,
            "count": len(messages),
            "messages": messages,
        }

    def replay(self, limit: int = 10) -> Dict[str, Any]:
        """
        Move up to limit DLQ messages back onto the events queue.

        Raises:
            ServiceBusError: Receive from the DLQ failed
        """
        limit = _clamp(limit, QueueDefaults.PEEK_LIMIT)
        result = self.queue.replay_dead_letters(self.config.events_queue, max_messages=limit)
        logger.info(
            f"♻️ DLQ replay on {self.config.events_queue}: "
            f"{result['replayed']} replayed, {result['failed']} failed"
        )
        return {"queue": self.config.events_queue, **result}

    def monitor(self) -> Dict[str, Any]:
        """
        Queue counts for the timer.

        health_status is ISSUES_DETECTED when anything sits in the DLQ or
        the rejected queue.
        """
        events = self.queue.get_queue_counts(self.config.events_queue)
        rejected = self.queue.get_queue_counts(self.config.rejected_queue)

        dead_lettered = events.get("dead_letter", 0)
        rejected_waiting = rejected.get("active", 0)
        healthy = dead_lettered == 0 and rejected_waiting == 0

        if not healthy:
            logger.warning(
                f"⚠️ {dead_lettered} dead-lettered events on {self.config.events_queue}, "
                f"{rejected_waiting} rejected events on {self.config.rejected_queue}"
            )

        return {
            "success": True,
            "health_status": "HEALTHY" if healthy else "ISSUES_DETECTED",
            "summary": {
                "events_active": events.get("active", 0),
                "events_dead_lettered": dead_lettered,
                "events_scheduled": events.get("scheduled", 0),
                "rejected_waiting": rejected_waiting,
            },
            "queues": {
                self.config.events_queue: events,
                self.config.rejected_queue: rejected,
            },
        }
