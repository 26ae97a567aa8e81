"""
Ingest service and queue consumer — validation, idempotency, failure policy.
"""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from core.models import CustomizationRecord, FloorPlanRecord
from core.schema.queue import CustomizationEventMessage
from exceptions import DatabaseError, ServiceBusError
from services import CustomizationEventProcessor, CustomizationIngestService
from tests.factories.model_factories import make_customization, make_event, make_floor_plan

EVENTS = "customization-events"
REJECTED = "customization-events-rejected"


@pytest.fixture
def floor_plan(repositories):
    return repositories["floor_plan_repo"].create_floor_plan(FloorPlanRecord(**make_floor_plan(project_id=1)))


@pytest.fixture
def processor(repositories, relay):
    return CustomizationEventProcessor(
        repositories["customization_repo"],
        repositories["floor_plan_repo"],
        relay,
        max_delivery_count=5,
    )


def _body(**event) -> str:
    return CustomizationEventMessage(**event).model_dump_json()


class TestIngest:

    def test_accepts_and_queues(self, relay, fake_queue):
        payload = make_event("created", floor_plan_id=3)
        result = CustomizationIngestService(relay).submit_event(payload, submitted_by="u-17", correlation_id="abc12345")

        assert result["status"] == "accepted"
        assert result["event_id"] == payload["event_id"]
        assert result["queue"] == EVENTS
        queued = fake_queue.bodies(EVENTS)[0]
        assert queued["submitted_by"] == "u-17"
        assert queued["correlation_id"] == "abc12345"
        assert queued["source"] == "api"

    def test_generates_correlation_id(self, relay):
        result = CustomizationIngestService(relay).submit_event(make_event("created"))
        assert len(result["correlation_id"]) == 8

    def test_client_cannot_set_server_fields(self, relay, fake_queue):
        payload = make_event("created", source="file_drop", submitted_by="spoofed")
        CustomizationIngestService(relay).submit_event(payload, submitted_by="real-user")
        queued = fake_queue.bodies(EVENTS)[0]
        assert queued["source"] == "api"
        assert queued["submitted_by"] == "real-user"

    def test_invalid_event_never_queued(self, relay, fake_queue):
        payload = make_event("deleted")
        payload.pop("customization_id")
        with pytest.raises(PydanticValidationError):
            CustomizationIngestService(relay).submit_event(payload)
        assert fake_queue.messages(EVENTS) == []

    def test_non_object_payload(self, relay):
        with pytest.raises(ValueError):
            CustomizationIngestService(relay).submit_event(["not", "an", "object"])

    def test_queue_outage_surfaces(self, relay, fake_queue):
        fake_queue.fail_sends = 10
        with pytest.raises(ServiceBusError):
            CustomizationIngestService(relay).submit_event(make_event("created"))


class TestConsumerCreate:

    def test_applies_created_event(self, processor, floor_plan, repositories):
        event = make_event("created", floor_plan_id=floor_plan.floor_plan_id)
        result = processor.process(_body(**event), message_id=event["event_id"])

        assert result["outcome"] == "applied"
        saved = repositories["customization_repo"].get_customization(result["customization_id"])
        assert saved.source_event_id == event["event_id"]
        assert saved.component_type == event["component_type"]

    def test_redelivery_is_duplicate(self, processor, floor_plan, repositories):
        body = _body(**make_event("created", floor_plan_id=floor_plan.floor_plan_id))
        first = processor.process(body, delivery_count=1)
        second = processor.process(body, delivery_count=2)

        assert second["outcome"] == "duplicate"
        assert second["customization_id"] == first["customization_id"]
        assert len(repositories["customization_repo"].list_customizations()) == 1

    def test_missing_floor_plan_is_rejected(self, processor, fake_queue):
        event = make_event("created", floor_plan_id=424242)
        result = processor.process(_body(**event), message_id="m-1")

        assert result["outcome"] == "rejected"
        assert result["reason"] == "ResourceNotFoundError"
        rejected = fake_queue.bodies(REJECTED)[0]
        assert rejected["event_id"] == event["event_id"]
        assert rejected["message_id"] == "m-1"
        assert json.loads(rejected["original_body"])["floor_plan_id"] == 424242

    def test_replay_after_delete_is_duplicate(self, processor, floor_plan, repositories):
        event = make_event("created", floor_plan_id=floor_plan.floor_plan_id)
        first = processor.process(_body(**event), message_id=event["event_id"])
        repositories["customization_repo"].delete_customization(first["customization_id"])

        replay = processor.process(_body(**event), delivery_count=1)

        assert replay["outcome"] == "duplicate"
        assert replay["customization_id"] is None
        assert repositories["customization_repo"].list_customizations() == []


class TestConsumerUpdateDelete:

    @pytest.fixture
    def existing(self, repositories, floor_plan):
        return repositories["customization_repo"].create_customization(
            CustomizationRecord(**make_customization(floor_plan_id=floor_plan.floor_plan_id))
        )

    def test_update_changes_only_sent_fields(self, processor, existing, repositories):
        event = make_event(
            "updated",
            floor_plan_id=existing.floor_plan_id,
            customization_id=existing.customization_id,
            position_x=99.5,
        )
        assert processor.process(_body(**event))["outcome"] == "applied"
        updated = repositories["customization_repo"].get_customization(existing.customization_id)
        assert updated.position_x == 99.5
        assert updated.position_y == existing.position_y
        assert updated.properties == existing.properties

    def test_update_of_missing_customization_is_rejected(self, processor, floor_plan, fake_queue):
        event = make_event("updated", floor_plan_id=floor_plan.floor_plan_id, customization_id=777)
        assert processor.process(_body(**event))["outcome"] == "rejected"
        assert len(fake_queue.messages(REJECTED)) == 1

    def test_floor_plan_mismatch_is_rejected(self, processor, existing, fake_queue):
        event = make_event(
            "deleted",
            floor_plan_id=existing.floor_plan_id + 1,
            customization_id=existing.customization_id,
        )
        result = processor.process(_body(**event))
        assert result["outcome"] == "rejected"
        assert result["reason"] == "ValidationError"

    def test_delete_then_redelivery(self, processor, existing, repositories):
        body = _body(**make_event(
            "deleted",
            floor_plan_id=existing.floor_plan_id,
            customization_id=existing.customization_id,
        ))
        assert processor.process(body)["outcome"] == "applied"
        assert repositories["customization_repo"].get_customization(existing.customization_id) is None
        assert processor.process(body, delivery_count=2)["outcome"] == "duplicate"


class TestConsumerFailurePolicy:

    def test_malformed_json_is_rejected(self, processor, fake_queue):
        result = processor.process("{not json", message_id="m-bad")
        assert result["outcome"] == "rejected"
        assert result["event_id"] is None
        assert fake_queue.bodies(REJECTED)[0]["original_body"] == "{not json"

    def test_invalid_utf8_body_is_rejected(self, processor, fake_queue):
        result = processor.process(b'{"event_type": "\xff"}', message_id="m-bin")
        assert result["outcome"] == "rejected"
        assert result["reason"] == "UnicodeDecodeError"
        assert "\ufffd" in fake_queue.bodies(REJECTED)[0]["original_body"]

    def test_bytes_body_is_applied(self, processor, floor_plan):
        body = _body(**make_event("created", floor_plan_id=floor_plan.floor_plan_id)).encode("utf-8")
        assert processor.process(body)["outcome"] == "applied"

    def test_schema_violation_is_rejected(self, processor, fake_queue):
        result = processor.process(json.dumps({"event_type": "exploded", "floor_plan_id": 1}))
        assert result["outcome"] == "rejected"
        assert len(fake_queue.messages(REJECTED)) == 1

    def test_transient_failure_is_raised(self, processor, floor_plan, repositories, fake_queue):
        def outage(record):
            raise DatabaseError("connection reset")

        repositories["customization_repo"].create_customization_from_event = outage
        body = _body(**make_event("created", floor_plan_id=floor_plan.floor_plan_id))

        with pytest.raises(DatabaseError):
            processor.process(body, delivery_count=1)
        with pytest.raises(DatabaseError):
            processor.process(body, delivery_count=5)
        assert fake_queue.messages(REJECTED) == []

    def test_rejected_queue_outage_is_transient(self, processor, fake_queue):
        fake_queue.fail_sends = 10
        with pytest.raises(ServiceBusError):
            processor.process("{not json")
