"""
CustomizationEventRelay — publish, retry with backoff, batching, rejected forwarding.
"""

import pytest

from core.schema.queue import CustomizationEventMessage, RejectedEventMessage
from exceptions import ServiceBusError
from tests.factories.model_factories import make_event


def _events(count):
    return [CustomizationEventMessage(**make_event("created")) for _ in range(count)]


class TestPublish:

    def test_message_id_is_event_id(self, relay, fake_queue):
        event = _events(1)[0]
        assert relay.publish(event) == event.event_id
        assert fake_queue.bodies("customization-events")[0]["event_id"] == event.event_id

    def test_application_properties_attached(self, relay, fake_queue):
        event = _events(1)[0]
        relay.publish(event)
        props = fake_queue.messages("customization-events")[0]["application_properties"]
        assert props["event_type"] == "created"

    def test_retries_with_exponential_backoff(self, relay, fake_queue, sleeps):
        fake_queue.fail_sends = 2
        relay.publish(_events(1)[0])
        assert fake_queue.send_calls == 3
        assert sleeps == [0.5, 1.0]

    def test_gives_up_after_retry_count(self, relay, fake_queue, sleeps):
        fake_queue.fail_sends = 10
        with pytest.raises(ServiceBusError, match="after 3 attempts"):
            relay.publish(_events(1)[0])
        assert fake_queue.send_calls == 3
        assert len(sleeps) == 2
        assert fake_queue.messages("customization-events") == []


class TestPublishBatch:

    def test_chunks_by_batch_size(self, relay, fake_queue):
        events = _events(5)
        result = relay.publish_batch(events)
        assert result.success
        assert result.batch_count == 3
        assert result.messages_sent == 5
        assert result.message_ids == [e.event_id for e in events]

    def test_failed_chunk_does_not_stop_later_chunks(self, relay, fake_queue):
        fake_queue.fail_sends = 3
        events = _events(4)
        result = relay.publish_batch(events)
        assert not result.success
        assert result.messages_sent == 2
        assert result.failed_event_ids == [e.event_id for e in events[:2]]
        assert len(result.errors) == 1
        assert result.to_dict()["failed_count"] == 2

    def test_empty_batch(self, relay):
        result = relay.publish_batch([])
        assert result.success
        assert result.batch_count == 0


class TestForwardRejected:

    def test_goes_to_rejected_queue(self, relay, fake_queue):
        rejected = RejectedEventMessage(
            event_id="evt-1", original_body="{}", reason="ResourceNotFoundError", error="missing"
        )
        relay.forward_rejected(rejected)
        bodies = fake_queue.bodies("customization-events-rejected")
        assert bodies[0]["reason"] == "ResourceNotFoundError"
        assert fake_queue.messages("customization-events") == []
