"""
Azure Functions entry point for the Floor-Plan Customization Pipeline.

Architecture:
    HTTP CRUD ──────────────────────────────────────────► PostgreSQL
    HTTP ingress ──┐                                          ▲
                   ├─► relay ─► customization-events ─► consumer
    file drop ─────┘                 │                        │
    (timer, 5 min)                   ▼                        ▼
                             dead-letter sub-queue    customization-events-rejected
                             (transient, exhausted)   (permanent failures)

Exports:
    app: Azure Function App instance

Endpoints:
    CRUD:
        /api/users[/{user_id}]
        /api/projects[/{project_id}]
        /api/floorplans[/{floor_plan_id}]
        /api/floorplans/{floor_plan_id}/customizations
        /api/customizations/{customization_id}

    Pipeline:
        POST /api/customizations/events - Queue a customization event (202)
        GET/POST /api/audit/imports[/{audit_id}] - Legacy import audit

    Operations:
        GET  /api/health
        GET  /api/admin/deadletter?source=dlq|rejected&limit=
        POST /api/admin/deadletter/replay
        POST /api/admin/filedrop/scan
        GET/POST /api/admin/schema/deploy?rebuild=&confirm=

    Service Bus:
        %SERVICE_BUS_EVENTS_QUEUE% (connection ServiceBusConnection)

    Timers (triggers/timers):
        file_drop_timer: 0 */5 * * * *
        dead_letter_monitor_timer: 0 */15 * * * *

Environment Variables:
    POSTGRES_HOST, POSTGRES_PORT, POSTGRES_DATABASE, POSTGRES_USER, POSTGRES_PASSWORD
    APP_SCHEMA: PostgreSQL schema (default floorplan)
    USE_MANAGED_IDENTITY: Entra token instead of password
    ServiceBusConnection / ServiceBusConnection__fullyQualifiedNamespace
    SERVICE_BUS_EVENTS_QUEUE, SERVICE_BUS_REJECTED_QUEUE
    AzureWebJobsStorage / STORAGE_ACCOUNT_NAME, FILE_DROP_CONTAINER
"""

import logging

import azure.functions as func

# Suppress Azure Identity and Azure SDK authentication/HTTP logging
logging.getLogger("azure.identity").setLevel(logging.WARNING)
logging.getLogger("azure.identity._internal").setLevel(logging.WARNING)
logging.getLogger("azure.core.pipeline.policies.http_logging_policy").setLevel(logging.WARNING)
logging.getLogger("azure.storage").setLevel(logging.WARNING)
logging.getLogger("azure.servicebus").setLevel(logging.WARNING)
logging.getLogger("azure.core").setLevel(logging.WARNING)
logging.getLogger("uamqp").setLevel(logging.WARNING)
logging.getLogger("msal").setLevel(logging.WARNING)

from util_logger import LoggerFactory, ComponentType

from triggers.users import user_trigger
from triggers.projects import project_trigger
from triggers.floor_plans import floor_plan_trigger
from triggers.customizations import customization_trigger
from triggers.customization_events import customization_event_trigger
from triggers.audit import audit_trigger
from triggers.health import health_check_trigger
from triggers.dead_letter import (
    dead_letter_trigger,
    dead_letter_replay_trigger,
    file_drop_scan_trigger,
)
from triggers.schema_deploy import schema_deploy_trigger
from triggers.service_bus import handle_customization_event
from triggers.timers import timer_bp

logger = LoggerFactory.create_logger(ComponentType.TRIGGER, "FunctionApp")

app = func.FunctionApp(http_auth_level=func.AuthLevel.ANONYMOUS)

app.register_functions(timer_bp)
logger.info("✅ Blueprints registered: timers")


# ============================================================================
# OPERATIONS
# ============================================================================

@app.route(route="health", methods=["GET"])
def health(req: func.HttpRequest) -> func.HttpResponse:
    """Health check endpoint using HTTP trigger base class."""
    return health_check_trigger.handle_request(req)


@app.route(route="admin/deadletter", methods=["GET"])
def dead_letter_peek(req: func.HttpRequest) -> func.HttpResponse:
    return dead_letter_trigger.handle_request(req)


@app.route(route="admin/deadletter/replay", methods=["POST"])
def dead_letter_replay(req: func.HttpRequest) -> func.HttpResponse:
    return dead_letter_replay_trigger.handle_request(req)


@app.route(route="admin/filedrop/scan", methods=["POST"])
def file_drop_scan(req: func.HttpRequest) -> func.HttpResponse:
    return file_drop_scan_trigger.handle_request(req)


@app.route(route="admin/schema/deploy", methods=["GET", "POST"])
def schema_deploy(req: func.HttpRequest) -> func.HttpResponse:
    """
    GET: what would be deployed. POST: deploy (rebuild=true needs confirm=yes).
    """
    return schema_deploy_trigger.handle_request(req)


# ============================================================================
# CRUD
# ============================================================================

@app.route(route="users", methods=["GET", "POST"])
def users(req: func.HttpRequest) -> func.HttpResponse:
    return user_trigger.handle_request(req)


@app.route(route="users/{user_id:int}", methods=["GET", "PATCH", "DELETE"])
def user_by_id(req: func.HttpRequest) -> func.HttpResponse:
    return user_trigger.handle_request(req)


@app.route(route="projects", methods=["GET", "POST"])
def projects(req: func.HttpRequest) -> func.HttpResponse:
    return project_trigger.handle_request(req)


@app.route(route="projects/{project_id:int}", methods=["GET", "PATCH", "DELETE"])
def project_by_id(req: func.HttpRequest) -> func.HttpResponse:
    return project_trigger.handle_request(req)


@app.route(route="floorplans", methods=["GET", "POST"])
def floor_plans(req: func.HttpRequest) -> func.HttpResponse:
    return floor_plan_trigger.handle_request(req)


@app.route(route="floorplans/{floor_plan_id:int}", methods=["GET", "PATCH", "DELETE"])
def floor_plan_by_id(req: func.HttpRequest) -> func.HttpResponse:
    return floor_plan_trigger.handle_request(req)


@app.route(route="floorplans/{floor_plan_id:int}/customizations", methods=["GET", "POST"])
def floor_plan_customizations(req: func.HttpRequest) -> func.HttpResponse:
    return customization_trigger.handle_request(req)


@app.route(route="customizations/{customization_id:int}", methods=["GET", "PATCH", "DELETE"])
def customization_by_id(req: func.HttpRequest) -> func.HttpResponse:
    return customization_trigger.handle_request(req)


# ============================================================================
# PIPELINE
# ============================================================================

@app.route(route="customizations/events", methods=["POST"])
def customization_events(req: func.HttpRequest) -> func.HttpResponse:
    """Queue a customization event; applied asynchronously (202)."""
    return customization_event_trigger.handle_request(req)


@app.route(route="audit/imports", methods=["GET", "POST"])
def audit_imports(req: func.HttpRequest) -> func.HttpResponse:
    return audit_trigger.handle_request(req)


@app.route(route="audit/imports/{audit_id}", methods=["GET"])
def audit_import_by_id(req: func.HttpRequest) -> func.HttpResponse:
    return audit_trigger.handle_request(req)


@app.service_bus_queue_trigger(
    arg_name="msg",
    queue_name="%SERVICE_BUS_EVENTS_QUEUE%",
    connection="ServiceBusConnection"
)
def process_customization_event(msg: func.ServiceBusMessage) -> None:
    """
    Apply one customization event.

    Transient failures propagate so Service Bus redelivers the message and
    finally dead-letters it; permanent failures are forwarded to the
    rejected queue inside the processor.
    """
    handle_customization_event(msg)
