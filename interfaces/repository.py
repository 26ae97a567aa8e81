"""
Queue Repository Interface

Defines the contract for all queue operations in the system.
Business logic (the event relay, the consumer's rejected-event path and
the dead-letter admin endpoints) talks to queues only through this
interface; ServiceBusRepository implements it for Azure Service Bus and
the test suite implements it in memory.

Message identity:
    A message that has an `event_id` attribute is sent with that value as
    its Service Bus message_id, and a message with an
    `application_properties()` method gets those properties attached.
"""

from abc import ABC, abstractmethod
from typing import List, Dict, Any
from pydantic import BaseModel


class IQueueRepository(ABC):
    """
    Interface for queue operations.

    Implementations should handle:
    - Authentication and credential management
    - Message encoding (JSON body, content type, TTL)
    - Translating SDK errors into ServiceBusError

    Retries are NOT the implementation's job: callers decide how often to
    try again.
    """

    @abstractmethod
    def send_message(self, queue_name: str, message: BaseModel) -> str:
        """
        Send one message.

        Returns:
            Message ID

        Raises:
            ServiceBusError: If the send fails
        """
        pass

    @abstractmethod
    def send_messages(self, queue_name: str, messages: List[BaseModel]) -> List[str]:
        """
        Send several messages in a single batch call.

        Returns:
            Message IDs in input order

        Raises:
            ServiceBusError: If the batch was not accepted
        """
        pass

    @abstractmethod
    def peek_messages(
        self,
        queue_name: str,
        max_messages: int = 1,
        dead_letter: bool = False
    ) -> List[Dict[str, Any]]:
        """
        Peek at messages without locking or removing them.

        Args:
            queue_name: Queue to peek at
            max_messages: Maximum messages to return
            dead_letter: Peek the queue's dead-letter sub-queue instead

        Returns:
            List of dicts with message_id, sequence_number, enqueued_time,
            delivery_count, body, application_properties and, for
            dead-lettered messages, dead_letter_reason and
            dead_letter_error_description
        """
        pass

    @abstractmethod
    def replay_dead_letters(self, queue_name: str, max_messages: int = 10) -> Dict[str, Any]:
        """
        Move messages from the dead-letter sub-queue back onto the queue.

        Each message is re-sent before its dead-letter copy is completed,
        so a crash mid-replay can duplicate but never lose a message.

        Returns:
            {'replayed': int, 'failed': int, 'message_ids': [...], 'errors': [...]}
        """
        pass

    @abstractmethod
    def get_queue_counts(self, queue_name: str) -> Dict[str, int]:
        """
        Runtime message counts.

        Returns:
            {'active': int, 'dead_letter': int, 'scheduled': int}
        """
        pass
