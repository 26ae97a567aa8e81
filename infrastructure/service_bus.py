"""
Service Bus Repository Implementation

Message repository for Azure Service Bus. Carries customization events to
the events queue, forwards permanently failed events to the rejected
queue, and backs the dead-letter admin endpoints.

Key Features:
- Single and batch sends (up to 100 messages per batch call)
- message_id taken from the event_id so queue duplicate detection drops re-sends
- Peek of the queue, its dead-letter sub-queue and the rejected queue
- Dead-letter replay (re-send, then complete the dead-letter copy)
- Runtime counts through the Service Bus administration client
- Singleton pattern for credential and sender reuse

Authentication:
- ServiceBusConnection (connection string) for local development
- SERVICE_BUS_NAMESPACE / ServiceBusConnection__fullyQualifiedNamespace
  with DefaultAzureCredential in Azure
"""

from azure.servicebus import (
    ServiceBusClient,
    ServiceBusMessage,
    ServiceBusSender,
    ServiceBusReceiver,
    ServiceBusSubQueue,
)
from azure.servicebus.exceptions import ServiceBusError as AzureServiceBusError
from azure.servicebus.management import ServiceBusAdministrationClient
from azure.identity import DefaultAzureCredential
from azure.core.exceptions import AzureError
from typing import Optional, List, Dict, Any
import json
import threading
import time
from datetime import timedelta
from pydantic import BaseModel

from config import QueueConfig, get_config
from config.defaults import QueueDefaults
from exceptions import ServiceBusError, ConfigurationError
from interfaces.repository import IQueueRepository
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ServiceBusRepository")


def _decode_body(msg) -> Any:
    """Message body as JSON when possible, raw text otherwise."""
    text = str(msg)
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def _message_to_dict(msg) -> Dict[str, Any]:
    properties = {}
    for key, value in (msg.application_properties or {}).items():
        key = key.decode() if isinstance(key, bytes) else key
        properties[key] = value.decode() if isinstance(value, bytes) else value
    return {
        'message_id': msg.message_id,
        'sequence_number': msg.sequence_number,
        'enqueued_time': msg.enqueued_time_utc.isoformat() if msg.enqueued_time_utc else None,
        'delivery_count': msg.delivery_count,
        'body': _decode_body(msg),
        'application_properties': properties,
        'dead_letter_reason': msg.dead_letter_reason,
        'dead_letter_error_description': msg.dead_letter_error_description,
    }


class ServiceBusRepository(IQueueRepository):
    """
    Service Bus repository.

    Key Design Decisions:
    - Implements IQueueRepository so services never touch the SDK
    - Senders are cached per queue; receivers are created fresh per call
    - Thread-safe singleton (one client per worker process)
    - Every SDK failure surfaces as ServiceBusError
    """

    _instance: Optional['ServiceBusRepository'] = None
    _lock = threading.Lock()

    def __new__(cls, config: Optional[QueueConfig] = None):
        """Thread-safe singleton creation."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, config: Optional[QueueConfig] = None):
        """Initialize Service Bus clients with credential management."""
        if hasattr(self, '_initialized'):
            return

        logger.info("🚌 Initializing ServiceBusRepository")
        self.config = config or get_config().queues
        self.credential = None

        if self.config.connection_string:
            logger.info("🔑 Using connection string authentication")
            self.client = ServiceBusClient.from_connection_string(self.config.connection_string)
            self.admin_client = ServiceBusAdministrationClient.from_connection_string(
                self.config.connection_string
            )
        elif self.config.namespace:
            namespace = self.config.namespace
            if "." not in namespace:
                namespace = f"{namespace}.servicebus.windows.net"
            logger.info(f"🔐 Using DefaultAzureCredential for namespace: {namespace}")
            self.credential = DefaultAzureCredential()
            self.client = ServiceBusClient(fully_qualified_namespace=namespace, credential=self.credential)
            self.admin_client = ServiceBusAdministrationClient(
                fully_qualified_namespace=namespace, credential=self.credential
            )
        else:
            logger.error("❌ Service Bus not configured")
            raise ConfigurationError(
                "Set ServiceBusConnection or SERVICE_BUS_NAMESPACE "
                "(ServiceBusConnection__fullyQualifiedNamespace in Azure)"
            )

        self.message_ttl = timedelta(hours=self.config.message_ttl_hours)

        # Senders can be safely reused; receivers are closed by their context managers
        self._senders: Dict[str, ServiceBusSender] = {}

        self._initialized = True
        logger.info(f"✅ ServiceBusRepository initialized (ttl={self.config.message_ttl_hours}h)")

    @classmethod
    def instance(cls) -> 'ServiceBusRepository':
        """Get singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def _get_sender(self, queue_name: str) -> ServiceBusSender:
        """Get or create a message sender."""
        if queue_name not in self._senders:
            logger.debug(f"🚌 Creating new sender for queue: {queue_name}")
            self._senders[queue_name] = self.client.get_queue_sender(queue_name)
        return self._senders[queue_name]

    def _get_receiver(self, queue_name: str, dead_letter: bool = False) -> ServiceBusReceiver:
        """Get a fresh receiver (no caching)."""
        if dead_letter:
            return self.client.get_queue_receiver(queue_name, sub_queue=ServiceBusSubQueue.DEAD_LETTER)
        return self.client.get_queue_receiver(queue_name)

    def _build_message(self, message: BaseModel) -> ServiceBusMessage:
        """Serialize a Pydantic message; event_id becomes the message_id."""
        properties = message.application_properties() if hasattr(message, 'application_properties') else {}
        return ServiceBusMessage(
            body=message.model_dump_json(),
            content_type="application/json",
            time_to_live=self.message_ttl,
            message_id=getattr(message, 'event_id', None),
            application_properties=properties
        )

    def _drop_sender(self, queue_name: str) -> None:
        sender = self._senders.pop(queue_name, None)
        if sender is not None:
            try:
                sender.close()
            except AzureServiceBusError as e:
                logger.debug(f"Sender close failed for {queue_name}: {e}")

    # ========================================================================
    # IQueueRepository Implementation
    # ========================================================================

    def send_message(self, queue_name: str, message: BaseModel) -> str:
        """
        Send a single message to Service Bus.

        Returns:
            message_id (the event_id for customization events)

        Raises:
            ServiceBusError: Send rejected or namespace unreachable
        """
        sb_message = self._build_message(message)
        try:
            self._get_sender(queue_name).send_messages(sb_message)
        except (AzureServiceBusError, AzureError) as e:
            logger.warning(f"⚠️ Send to {queue_name} failed: {type(e).__name__}: {e}")
            # A failed sender may be stuck in a closed state
            self._drop_sender(queue_name)
            raise ServiceBusError(f"Failed to send message to {queue_name}: {e}") from e

        logger.info(f"✅ Message sent to {queue_name}. ID: {sb_message.message_id}")
        return sb_message.message_id

    def send_messages(self, queue_name: str, messages: List[BaseModel]) -> List[str]:
        """
        Send up to 100 messages in one call.

        Raises:
            ServiceBusError: Batch rejected; none of its messages were enqueued
        """
        if not messages:
            return []
        if len(messages) > QueueDefaults.MAX_MESSAGES_PER_SEND:
            raise ValueError(f"At most {QueueDefaults.MAX_MESSAGES_PER_SEND} messages per send, got {len(messages)}")

        sb_messages = [self._build_message(m) for m in messages]
        try:
            self._get_sender(queue_name).send_messages(sb_messages)
        except (AzureServiceBusError, AzureError) as e:
            logger.warning(f"⚠️ Batch send of {len(messages)} to {queue_name} failed: {e}")
            self._drop_sender(queue_name)
            raise ServiceBusError(f"Failed to send batch to {queue_name}: {e}") from e

        logger.info(f"📦 Sent batch of {len(sb_messages)} messages to {queue_name}")
        return [m.message_id for m in sb_messages]

    def peek_messages(
        self,
        queue_name: str,
        max_messages: int = 1,
        dead_letter: bool = False
    ) -> List[Dict[str, Any]]:
        """Peek at messages without removing them."""
        label = f"{queue_name}/$deadletterqueue" if dead_letter else queue_name
        try:
            with self._get_receiver(queue_name, dead_letter=dead_letter) as receiver:
                messages = receiver.peek_messages(max_message_count=max_messages)
                result = [_message_to_dict(msg) for msg in messages]
        except (AzureServiceBusError, AzureError) as e:
            logger.error(f"❌ Failed to peek messages in {label}: {e}")
            raise ServiceBusError(f"Failed to peek {label}: {e}") from e

        logger.debug(f"👀 Peeked at {len(result)} messages in {label}")
        return result

    def replay_dead_letters(self, queue_name: str, max_messages: int = 10) -> Dict[str, Any]:
        """
        Re-send dead-lettered messages to their queue.

        The replayed copy gets a new message_id so the queue's duplicate
        detection does not drop it; the body keeps its event_id, so the
        consumer stays idempotent.
        """
        replayed: List[str] = []
        errors: List[str] = []
        sender = self._get_sender(queue_name)

        try:
            with self._get_receiver(queue_name, dead_letter=True) as receiver:
                messages = receiver.receive_messages(max_message_count=max_messages, max_wait_time=5)
                for msg in messages:
                    original_id = msg.message_id
                    properties = dict(msg.application_properties or {})
                    properties['replayed_from_dead_letter'] = True
                    properties['dead_letter_reason'] = msg.dead_letter_reason or ""
                    copy = ServiceBusMessage(
                        body=b"".join(msg.body),
                        content_type=msg.content_type or "application/json",
                        time_to_live=self.message_ttl,
                        message_id=f"{original_id}-replay-{int(time.time())}",
                        application_properties=properties
                    )
                    try:
                        sender.send_messages(copy)
                        receiver.complete_message(msg)
                        replayed.append(original_id)
                    except (AzureServiceBusError, AzureError) as e:
                        logger.error(f"❌ Replay of {original_id} failed: {e}")
                        errors.append(f"{original_id}: {e}")
                        receiver.abandon_message(msg)
        except (AzureServiceBusError, AzureError) as e:
            logger.error(f"❌ Dead-letter replay on {queue_name} failed: {e}")
            raise ServiceBusError(f"Dead-letter replay failed: {e}") from e

        logger.info(f"♻️ Replayed {len(replayed)} dead-lettered messages to {queue_name} ({len(errors)} failed)")
        return {
            'replayed': len(replayed),
            'failed': len(errors),
            'message_ids': replayed,
            'errors': errors,
        }

    def get_queue_counts(self, queue_name: str) -> Dict[str, int]:
        """Runtime message counts from the administration client."""
        try:
            props = self.admin_client.get_queue_runtime_properties(queue_name)
        except AzureError as e:
            logger.error(f"❌ Failed to read runtime properties of {queue_name}: {e}")
            raise ServiceBusError(f"Cannot read counts for {queue_name}: {e}") from e
        return {
            'active': props.active_message_count,
            'dead_letter': props.dead_letter_message_count,
            'scheduled': props.scheduled_message_count,
        }

    def close(self) -> None:
        """Close cached senders and the client."""
        for queue_name in list(self._senders):
            self._drop_sender(queue_name)
        self.client.close()
