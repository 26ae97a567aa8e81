"""
HTTP triggers against in-memory repositories — status codes and payloads.
"""

import json
from typing import Any, Dict, List

import azure.functions as func
import pytest

from exceptions import ConstraintViolationError, ResourceNotFoundError, ServiceBusError
from triggers.audit import AuditTrigger
from triggers.customization_events import CustomizationEventTrigger
from triggers.customizations import CustomizationTrigger
from triggers.dead_letter import DeadLetterReplayTrigger, DeadLetterTrigger, FileDropScanTrigger
from triggers.floor_plans import FloorPlanTrigger
from triggers.health import HealthCheckTrigger
from triggers.http_base import BaseHttpTrigger
from triggers.projects import ProjectTrigger
from triggers.schema_deploy import SchemaDeployTrigger
from triggers.users import UserTrigger
from tests.factories.model_factories import make_customization, make_event, make_floor_plan, make_project, make_user


def request(method: str, url: str = "/api/test", body: Any = None, route_params: Dict[str, str] = None,
            params: Dict[str, str] = None, headers: Dict[str, str] = None) -> func.HttpRequest:
    raw = b"" if body is None else (body if isinstance(body, bytes) else json.dumps(body).encode())
    return func.HttpRequest(
        method=method,
        url=url,
        body=raw,
        route_params=route_params or {},
        params=params or {},
        headers=headers or {},
    )


def payload(response: func.HttpResponse) -> Dict[str, Any]:
    return json.loads(response.get_body())


class _RaisingTrigger(BaseHttpTrigger):
    def __init__(self, error):
        super().__init__("raising")
        self.error = error

    def get_allowed_methods(self) -> List[str]:
        return ["GET"]

    def process_request(self, req):
        raise self.error


class TestErrorMapping:

    @pytest.mark.parametrize("error, status", [
        (ValueError("bad"), 400),
        (PermissionError("no"), 403),
        (ResourceNotFoundError("gone"), 404),
        (ConstraintViolationError("dup", "users_email_key"), 409),
        (ServiceBusError("down"), 503),
        (RuntimeError("boom"), 500),
    ])
    def test_status_codes(self, error, status):
        response = _RaisingTrigger(error).handle_request(request("GET"))
        assert response.status_code == status
        body = payload(response)
        assert body["message"] == str(error)
        assert body["request_id"] == response.headers["X-Request-ID"]

    def test_method_not_allowed(self):
        response = _RaisingTrigger(ValueError()).handle_request(request("DELETE"))
        assert response.status_code == 405
        assert response.headers["Allow"] == "GET"

    def test_internal_error_names_trigger(self):
        body = payload(_RaisingTrigger(RuntimeError("boom")).handle_request(request("GET")))
        assert body["debug"]["trigger_name"] == "raising"


@pytest.fixture
def users(repositories):
    return UserTrigger(repositories)


@pytest.fixture
def owner(repositories):
    from core.models import UserRecord
    return repositories["user_repo"].create_user(UserRecord(**make_user()))


@pytest.fixture
def plan(repositories, owner):
    from core.models import FloorPlanRecord, ProjectRecord
    project = repositories["project_repo"].create_project(ProjectRecord(**make_project(owner_id=owner.user_id)))
    return repositories["floor_plan_repo"].create_floor_plan(FloorPlanRecord(**make_floor_plan(project_id=project.project_id)))


class TestUserCrud:

    def test_lifecycle(self, users):
        created = users.handle_request(request("POST", body=make_user(email="Lee@Example.com")))
        assert created.status_code == 201
        user = payload(created)["user"]
        assert user["email"] == "lee@example.com"
        assert user["created_at"]

        item = {"user_id": str(user["user_id"])}
        assert payload(users.handle_request(request("GET", route_params=item)))["user"]["user_id"] == user["user_id"]

        patched = users.handle_request(request("PATCH", body={"name": "Lee Renamed"}, route_params=item))
        assert payload(patched)["user"]["name"] == "Lee Renamed"

        deleted = users.handle_request(request("DELETE", route_params=item))
        assert payload(deleted)["deleted"] is True
        assert users.handle_request(request("GET", route_params=item)).status_code == 404

    def test_server_fields_ignored_on_create(self, users):
        body = make_user(user_id=999, created_at="2001-01-01T00:00:00Z")
        user = payload(users.handle_request(request("POST", body=body)))["user"]
        assert user["user_id"] != 999
        assert not user["created_at"].startswith("2001")

    def test_duplicate_email_conflict(self, users):
        body = make_user()
        users.handle_request(request("POST", body=body))
        assert users.handle_request(request("POST", body=body)).status_code == 409

    def test_invalid_payload_details(self, users):
        response = users.handle_request(request("POST", body={"name": "No Email"}))
        assert response.status_code == 400
        assert payload(response)["details"][0]["loc"] == ["email"]

    def test_invalid_json(self, users):
        assert users.handle_request(request("POST", body=b"{broken")).status_code == 400

    def test_empty_patch_rejected(self, users, owner):
        response = users.handle_request(request("PATCH", body={}, route_params={"user_id": str(owner.user_id)}))
        assert response.status_code == 400

    def test_patch_missing_user(self, users):
        response = users.handle_request(request("PATCH", body={"name": "x"}, route_params={"user_id": "404"}))
        assert response.status_code == 404

    def test_collection_rejects_delete(self, users):
        assert users.handle_request(request("DELETE")).status_code == 405

    def test_list_paging(self, users):
        for _ in range(3):
            users.handle_request(request("POST", body=make_user()))
        body = payload(users.handle_request(request("GET", params={"limit": "2", "offset": "1"})))
        assert body["count"] == 2
        assert body["offset"] == 1

    def test_bad_paging(self, users):
        assert users.handle_request(request("GET", params={"limit": "lots"})).status_code == 400


class TestOwnershipChain:

    def test_project_for_missing_owner(self, repositories):
        response = ProjectTrigger(repositories).handle_request(request("POST", body=make_project(owner_id=31337)))
        assert response.status_code == 400

    def test_projects_filtered_by_owner(self, repositories, owner):
        trigger = ProjectTrigger(repositories)
        trigger.handle_request(request("POST", body=make_project(owner_id=owner.user_id)))
        body = payload(trigger.handle_request(request("GET", params={"owner_id": str(owner.user_id)})))
        assert body["count"] == 1
        assert payload(trigger.handle_request(request("GET", params={"owner_id": "999"})))["count"] == 0

    def test_owner_cannot_be_changed(self, repositories, plan):
        response = ProjectTrigger(repositories).handle_request(
            request("PATCH", body={"owner_id": 2}, route_params={"project_id": str(plan.project_id)})
        )
        assert response.status_code == 400

    def test_floor_plan_for_missing_project(self, repositories):
        response = FloorPlanTrigger(repositories).handle_request(request("POST", body=make_floor_plan(project_id=777)))
        assert response.status_code == 400

    def test_deleting_user_cascades(self, repositories, owner, plan):
        from core.models import CustomizationRecord
        repositories["customization_repo"].create_customization(
            CustomizationRecord(**make_customization(floor_plan_id=plan.floor_plan_id))
        )
        UserTrigger(repositories).handle_request(request("DELETE", route_params={"user_id": str(owner.user_id)}))

        assert repositories["project_repo"].list_projects() == []
        assert repositories["floor_plan_repo"].get_floor_plan(plan.floor_plan_id) is None
        assert repositories["customization_repo"].list_customizations() == []


class TestCustomizationCrud:

    def test_create_under_floor_plan(self, repositories, plan):
        trigger = CustomizationTrigger(repositories)
        body = make_customization(floor_plan_id=9999, source_event_id="spoofed")
        response = trigger.handle_request(
            request("POST", body=body, route_params={"floor_plan_id": str(plan.floor_plan_id)})
        )
        assert response.status_code == 201
        created = payload(response)["customization"]
        assert created["floor_plan_id"] == plan.floor_plan_id
        assert created["source_event_id"] is None

    def test_list_for_missing_floor_plan(self, repositories):
        response = CustomizationTrigger(repositories).handle_request(
            request("GET", route_params={"floor_plan_id": "5150"})
        )
        assert response.status_code == 404

    def test_patch_replaces_properties(self, repositories, plan):
        from core.models import CustomizationRecord
        existing = repositories["customization_repo"].create_customization(
            CustomizationRecord(**make_customization(floor_plan_id=plan.floor_plan_id))
        )
        response = CustomizationTrigger(repositories).handle_request(request(
            "PATCH", body={"properties": {"material": "glass"}},
            route_params={"customization_id": str(existing.customization_id)},
        ))
        assert payload(response)["customization"]["properties"] == {"material": "glass"}

    def test_null_position_rejected(self, repositories, plan):
        response = CustomizationTrigger(repositories).handle_request(request(
            "PATCH", body={"position_x": None}, route_params={"customization_id": "1"},
        ))
        assert response.status_code == 400


class TestCustomizationEvents:

    def test_accepted(self, fake_queue):
        trigger = CustomizationEventTrigger(queue_repository=fake_queue)
        response = trigger.handle_request(request(
            "POST", body=make_event("created"),
            headers={"X-User-Id": "designer-4", "X-Correlation-Id": "trace-0001"},
        ))
        assert response.status_code == 202
        body = payload(response)
        assert body["status"] == "accepted"
        assert body["correlation_id"] == "trace-0001"
        assert fake_queue.bodies("customization-events")[0]["submitted_by"] == "designer-4"

    def test_invalid_event(self, fake_queue):
        event = make_event("updated")
        event.pop("position_x")
        response = CustomizationEventTrigger(queue_repository=fake_queue).handle_request(request("POST", body=event))
        assert response.status_code == 400
        assert fake_queue.messages("customization-events") == []

    def test_queue_down(self, fake_queue):
        fake_queue.fail_sends = 100
        trigger = CustomizationEventTrigger(queue_repository=fake_queue)
        trigger.relay._sleep = lambda seconds: None
        assert trigger.handle_request(request("POST", body=make_event("created"))).status_code == 503

    def test_get_not_allowed(self, fake_queue):
        assert CustomizationEventTrigger(queue_repository=fake_queue).handle_request(request("GET")).status_code == 405


class TestAuditEndpoints:

    def test_report_and_read_back(self, repositories):
        trigger = AuditTrigger(repositories)
        body = {
            "legacy_system_id": "adf",
            "data_type": "csv",
            "source_file_name": "exports/2026-10-01.csv",
            "record_count": 12,
        }
        created = trigger.handle_request(request("POST", body=body, headers={"X-User-Id": "adf-pipeline"}))
        assert created.status_code == 201
        record = payload(created)["import"]
        assert record["status"] == "success"
        assert record["imported_by"] == "adf-pipeline"

        fetched = trigger.handle_request(request("GET", route_params={"audit_id": record["audit_id"]}))
        assert payload(fetched)["import"]["audit_id"] == record["audit_id"]

        listed = payload(trigger.handle_request(request("GET", params={"legacy_system_id": "adf"})))
        assert listed["count"] == 1

    def test_missing_record(self, repositories):
        response = AuditTrigger(repositories).handle_request(request("GET", route_params={"audit_id": "nope"}))
        assert response.status_code == 404

    def test_item_route_is_read_only(self, repositories):
        response = AuditTrigger(repositories).handle_request(request("POST", body={}, route_params={"audit_id": "x"}))
        assert response.status_code == 405


class TestOperations:

    def test_health_all_green(self, fake_queue, fake_blobs):
        class Db:
            def check_health(self):
                return {"status": "healthy", "schema_exists": True}

        trigger = HealthCheckTrigger(Db(), fake_queue, fake_blobs)
        response = trigger.handle_request(request("GET"))
        assert response.status_code == 200
        assert set(payload(response)["components"]) == {"database", "service_bus", "blob_storage"}

    def test_health_degraded(self, fake_queue, fake_blobs):
        class Db:
            def check_health(self):
                raise ConnectionError("refused")

        response = HealthCheckTrigger(Db(), fake_queue, fake_blobs).handle_request(request("GET"))
        assert response.status_code == 503
        assert payload(response)["errors"] == ["database: refused"]

    def test_dead_letter_peek(self, fake_queue):
        fake_queue.dead_letter("customization-events", "{}")
        body = payload(DeadLetterTrigger(fake_queue).handle_request(request("GET", params={"source": "dlq"})))
        assert body["count"] == 1

    def test_dead_letter_bad_source(self, fake_queue):
        response = DeadLetterTrigger(fake_queue).handle_request(request("GET", params={"source": "bin"}))
        assert response.status_code == 400

    def test_replay_limit_from_body(self, fake_queue):
        for _ in range(4):
            fake_queue.dead_letter("customization-events", "{}")
        body = payload(DeadLetterReplayTrigger(fake_queue).handle_request(request("POST", body={"limit": 3})))
        assert body["replayed"] == 3

    def test_file_drop_scan(self, repositories, fake_queue, fake_blobs):
        fake_blobs.write_blob(
            "legacy-drops", "incoming/crm/a.csv",
            b"floor_plan_id,component_type,position_x,position_y\n1,wall,0,0\n",
        )
        trigger = FileDropScanTrigger(repositories, fake_queue, fake_blobs)
        body = payload(trigger.handle_request(request("POST")))
        assert body["files_processed"] == 1
        assert body["events_published"] == 1

    def test_schema_rebuild_needs_confirmation(self):
        class Manager:
            app_schema = "floorplan"

            def deploy(self, rebuild=False):
                return {"status": "success", "rebuild": rebuild}

        trigger = SchemaDeployTrigger(Manager())
        assert trigger.handle_request(request("POST", params={"rebuild": "true"})).status_code == 400
        confirmed = trigger.handle_request(request("POST", params={"rebuild": "true", "confirm": "yes"}))
        assert payload(confirmed)["rebuild"] is True
