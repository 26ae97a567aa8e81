"""
DeadLetterService — peek, replay and monitor.
"""

import pytest

from config import QueueConfig
from core.schema.queue import RejectedEventMessage
from services import DeadLetterService

EVENTS = "customization-events"
REJECTED = "customization-events-rejected"


@pytest.fixture
def service(fake_queue):
    return DeadLetterService(fake_queue, config=QueueConfig())


class TestPeek:

    def test_peek_dlq(self, service, fake_queue):
        fake_queue.dead_letter(EVENTS, '{"event_id": "e-1"}', message_id="e-1")
        result = service.peek("dlq", limit=5)

        assert result["source"] == "dlq"
        assert result["queue"] == EVENTS
        assert result["count"] == 1
        assert result["messages"][0]["dead_letter_reason"] == "MaxDeliveryCountExceeded"

    def test_peek_rejected(self, service, fake_queue):
        fake_queue.send_message(REJECTED, RejectedEventMessage(
            event_id="e-2", original_body="{}", reason="ValidationError", error="bad"
        ))
        result = service.peek("rejected")
        assert result["queue"] == REJECTED
        assert result["messages"][0]["message_id"] == "e-2"

    def test_limit_clamped(self, service, fake_queue):
        for i in range(60):
            fake_queue.dead_letter(EVENTS, "{}")
        assert service.peek("dlq", limit=500)["count"] == 50
        assert service.peek("dlq", limit=0)["count"] == 1

    def test_unknown_source(self, service):
        with pytest.raises(ValueError):
            service.peek("graveyard")


class TestReplay:

    def test_moves_messages_back(self, service, fake_queue):
        for i in range(3):
            fake_queue.dead_letter(EVENTS, f'{{"n": {i}}}')
        result = service.replay(limit=2)

        assert result["queue"] == EVENTS
        assert result["replayed"] == 2
        assert fake_queue.get_queue_counts(EVENTS) == {"active": 2, "dead_letter": 1, "scheduled": 0}


class TestMonitor:

    def test_healthy_when_empty(self, service):
        result = service.monitor()
        assert result["success"]
        assert result["health_status"] == "HEALTHY"

    def test_issues_when_anything_failed(self, service, fake_queue):
        fake_queue.dead_letter(EVENTS, "{}")
        fake_queue.send_message(REJECTED, RejectedEventMessage(original_body="{}", reason="X", error="y"))
        result = service.monitor()

        assert result["health_status"] == "ISSUES_DETECTED"
        assert result["summary"]["events_dead_lettered"] == 1
        assert result["summary"]["rejected_waiting"] == 1
