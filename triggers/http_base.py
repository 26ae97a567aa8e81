"""
HTTP Trigger Base Class.

Abstract base class for all Azure Functions HTTP triggers providing consistent
infrastructure patterns for request/response handling.

Every response is JSON and carries request_id and timestamp. Errors use
{error, message, request_id, timestamp}; exceptions map to status codes:

    ValueError, ValidationError           400
    PermissionError                       403
    FileNotFoundError, ResourceNotFound   404
    method not allowed                    405
    ConstraintViolationError              409
    ServiceBusError                       503
    anything else                         500

Specialized Trigger Types:
    BaseHttpTrigger: Generic HTTP endpoint
    CrudTrigger: Collection + item resource (GET/POST, GET/PATCH/DELETE)
    PipelineTrigger: Endpoints that publish to or read from the queues
    SystemMonitoringTrigger: Health and diagnostics

Exports:
    BaseHttpTrigger, CrudTrigger, PipelineTrigger, SystemMonitoringTrigger
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional, List
import uuid
import json
import traceback
from datetime import datetime, timezone

import azure.functions as func
import pydantic

from exceptions import (
    ConstraintViolationError,
    ResourceNotFoundError,
    ServiceBusError,
    ValidationError,
)
from util_logger import LoggerFactory, ComponentType


class BaseHttpTrigger(ABC):
    """
    Abstract base class for Azure Functions HTTP triggers.

    Provides consistent infrastructure for HTTP request/response handling,
    parameter extraction, error handling, and logging patterns.
    """

    def __init__(self, trigger_name: str, repositories: Optional[Dict[str, Any]] = None):
        """
        Args:
            trigger_name: Name of the trigger for logging (e.g., "users", "health")
            repositories: Pre-built repository dict (tests); created lazily otherwise
        """
        self.trigger_name = trigger_name
        self.logger = LoggerFactory.create_logger(ComponentType.TRIGGER, f"HttpTrigger.{trigger_name}")
        self._repositories = repositories

    @property
    def repositories(self) -> Dict[str, Any]:
        """Lazy-loaded PostgreSQL repositories (user_repo, project_repo, ...)."""
        if self._repositories is None:
            from infrastructure import RepositoryFactory
            self._repositories = RepositoryFactory.create_repositories()
        return self._repositories

    # ========================================================================
    # ABSTRACT METHODS - Must be implemented by concrete triggers
    # ========================================================================

    @abstractmethod
    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        """
        Process the HTTP request and return response data.

        Raises:
            ValueError: For client errors (400)
            PermissionError: For authorization errors (403)
            ResourceNotFoundError: For not found errors (404)
            ConstraintViolationError: For conflicts (409)
            ServiceBusError: Queue unavailable (503)
        """
        pass

    @abstractmethod
    def get_allowed_methods(self) -> List[str]:
        """
        Return list of allowed HTTP methods for this trigger.
        """
        pass

    def allowed_methods_for(self, req: func.HttpRequest) -> List[str]:
        """Allowed methods for this particular request (route-dependent triggers override)."""
        return self.get_allowed_methods()

    def success_status_code(self, req: func.HttpRequest, data: Optional[Dict[str, Any]] = None) -> int:
        return 200

    # ========================================================================
    # CONCRETE INFRASTRUCTURE METHODS
    # ========================================================================

    def handle_request(self, req: func.HttpRequest) -> func.HttpResponse:
        """
        Main entry point for HTTP request handling.

        Provides consistent error handling, logging, and response formatting.
        """
        request_id = self._generate_request_id()

        self.logger.info(
            f"🌐 [{self.trigger_name}] Request {request_id} started: "
            f"{req.method} {req.url}"
        )

        allowed = self.allowed_methods_for(req)
        if req.method.upper() not in allowed:
            return self._create_error_response(
                error="Method not allowed",
                message=f"Method {req.method} not allowed. Allowed: {', '.join(allowed)}",
                status_code=405,
                request_id=request_id,
                headers={"Allow": ", ".join(allowed)}
            )

        try:
            response_data = self.process_request(req)
            response = self._create_success_response(
                response_data, request_id, self.success_status_code(req, response_data)
            )
            self.logger.info(
                f"✅ [{self.trigger_name}] Request {request_id} completed successfully"
            )
            return response

        except pydantic.ValidationError as e:
            self.logger.warning(f"❌ [{self.trigger_name}] Invalid payload: {e.error_count()} errors")
            return self._create_error_response(
                error="Bad request",
                message=self._format_validation_errors(e),
                status_code=400,
                request_id=request_id,
                details=[
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                    for err in e.errors(include_url=False)
                ]
            )

        except (ValueError, ValidationError) as e:
            self.logger.warning(f"❌ [{self.trigger_name}] Client error: {e}")
            return self._create_error_response(
                error="Bad request",
                message=str(e),
                status_code=400,
                request_id=request_id
            )

        except PermissionError as e:
            self.logger.warning(f"🚫 [{self.trigger_name}] Permission denied: {e}")
            return self._create_error_response(
                error="Forbidden",
                message=str(e),
                status_code=403,
                request_id=request_id
            )

        except (FileNotFoundError, ResourceNotFoundError) as e:
            self.logger.info(f"🔍 [{self.trigger_name}] Not found: {e}")
            return self._create_error_response(
                error="Not found",
                message=str(e),
                status_code=404,
                request_id=request_id
            )

        except ConstraintViolationError as e:
            self.logger.warning(
                f"⚠️ [{self.trigger_name}] Conflict on {e.constraint_name or 'constraint'}: {e}"
            )
            return self._create_error_response(
                error="Conflict",
                message=str(e),
                status_code=409,
                request_id=request_id
            )

        except ServiceBusError as e:
            self.logger.error(f"🚌 [{self.trigger_name}] Queue unavailable: {e}")
            return self._create_error_response(
                error="Service unavailable",
                message=str(e),
                status_code=503,
                request_id=request_id
            )

        except Exception as e:
            self.logger.error(f"💥 [{self.trigger_name}] Internal error: {type(e).__name__}: {e}")
            self.logger.debug(f"📍 Full traceback: {traceback.format_exc()}")
            return self._create_error_response(
                error="Internal server error",
                message=str(e),
                status_code=500,
                request_id=request_id,
                include_debug_info=True
            )

    # ========================================================================
    # UTILITY METHODS FOR SUBCLASSES
    # ========================================================================

    def extract_query_params(self, req: func.HttpRequest,
                             required_params: Optional[List[str]] = None,
                             optional_params: Optional[List[str]] = None) -> Dict[str, str]:
        """
        Extract and validate query parameters.

        Raises:
            ValueError: If required parameters are missing
        """
        params = {}
        required_params = required_params or []
        optional_params = optional_params or []
        missing_params = []

        for param_name in required_params:
            value = req.params.get(param_name)
            if not value:
                missing_params.append(param_name)
            else:
                params[param_name] = value

        for param_name in optional_params:
            value = req.params.get(param_name)
            if value:
                params[param_name] = value

        if missing_params:
            raise ValueError(f"Missing required query parameters: {', '.join(missing_params)}")

        return params

    def extract_json_body(self, req: func.HttpRequest, required: bool = True) -> Optional[Dict[str, Any]]:
        """
        Extract and parse JSON request body.

        Raises:
            ValueError: If body is required but missing, is invalid JSON, or is not an object
        """
        if not req.get_body():
            if required:
                raise ValueError("Request body is required")
            return None

        try:
            body = req.get_json()
        except ValueError as e:
            raise ValueError(f"Invalid JSON in request body: {e}") from e

        if not isinstance(body, dict):
            raise ValueError("Request body must be a JSON object")
        return body

    @staticmethod
    def parse_int(value: Any, name: str, minimum: int = 1) -> int:
        """
        Parse an id or count from a path or query string.

        Raises:
            ValueError: Not an integer or below minimum
        """
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise ValueError(f"{name} must be an integer, got {value!r}") from None
        if number < minimum:
            raise ValueError(f"{name} must be >= {minimum}")
        return number

    def get_int_param(self, req: func.HttpRequest, name: str, default: Optional[int] = None,
                      minimum: int = 0) -> Optional[int]:
        value = req.params.get(name)
        if value is None or value == "":
            return default
        return self.parse_int(value, name, minimum)

    def get_pagination(self, req: func.HttpRequest) -> Dict[str, int]:
        """limit/offset query parameters; the repository clamps limit."""
        from config.defaults import DatabaseDefaults
        return {
            "limit": self.get_int_param(req, "limit", DatabaseDefaults.DEFAULT_PAGE_SIZE, minimum=1),
            "offset": self.get_int_param(req, "offset", 0, minimum=0),
        }

    @staticmethod
    def caller_id(req: func.HttpRequest) -> Optional[str]:
        """Caller identity from the X-User-Id header."""
        return req.headers.get("X-User-Id") or None

    @staticmethod
    def serialize(record: Any) -> Any:
        """Pydantic record (or list of them) to JSON-safe data."""
        if isinstance(record, list):
            return [BaseHttpTrigger.serialize(r) for r in record]
        if isinstance(record, pydantic.BaseModel):
            return record.model_dump(mode="json")
        return record

    # ========================================================================
    # PRIVATE INFRASTRUCTURE METHODS
    # ========================================================================

    def _generate_request_id(self) -> str:
        """Generate unique request ID for tracing."""
        return str(uuid.uuid4())[:8]

    @staticmethod
    def _format_validation_errors(error: pydantic.ValidationError) -> str:
        parts = []
        for err in error.errors(include_url=False):
            loc = ".".join(str(p) for p in err.get("loc", ())) or "body"
            parts.append(f"{loc}: {err.get('msg')}")
        return "; ".join(parts)

    def _create_success_response(self, data: Dict[str, Any], request_id: str,
                                 status_code: int = 200) -> func.HttpResponse:
        """Create standardized success response."""
        response_data = {
            **data,
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

        return func.HttpResponse(
            json.dumps(response_data, default=str),
            status_code=status_code,
            mimetype="application/json",
            headers={"X-Request-ID": request_id}
        )

    def _create_error_response(self, error: str, message: str, status_code: int,
                               request_id: str, include_debug_info: bool = False,
                               details: Optional[List[Dict[str, Any]]] = None,
                               headers: Optional[Dict[str, str]] = None) -> func.HttpResponse:
        """Create standardized error response."""
        response_data = {
            "error": error,
            "message": message,
            "request_id": request_id,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
        if details:
            response_data["details"] = details

        if include_debug_info:
            response_data["debug"] = {"trigger_name": self.trigger_name}

        return func.HttpResponse(
            json.dumps(response_data, default=str),
            status_code=status_code,
            mimetype="application/json",
            headers={"X-Request-ID": request_id, **(headers or {})}
        )


# ============================================================================
# SPECIALIZED BASE CLASSES FOR COMMON PATTERNS
# ============================================================================

class CrudTrigger(BaseHttpTrigger):
    """
    One resource served on two routes:

        <collection>          GET (list), POST (create, 201)
        <collection>/{id}     GET, PATCH, DELETE

    Subclasses set id_param and implement the five operations.
    """

    id_param: str = "id"
    collection_methods = ["GET", "POST"]
    item_methods = ["GET", "PATCH", "DELETE"]

    def get_allowed_methods(self) -> List[str]:
        return sorted(set(self.collection_methods) | set(self.item_methods))

    def is_item_request(self, req: func.HttpRequest) -> bool:
        return bool(req.route_params.get(self.id_param))

    def allowed_methods_for(self, req: func.HttpRequest) -> List[str]:
        return self.item_methods if self.is_item_request(req) else self.collection_methods

    def success_status_code(self, req: func.HttpRequest, data: Optional[Dict[str, Any]] = None) -> int:
        if req.method.upper() == "POST" and not self.is_item_request(req):
            return 201
        return 200

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        method = req.method.upper()

        if not self.is_item_request(req):
            if method == "POST":
                return self.create_item(req, self.extract_json_body(req))
            return self.list_items(req)

        item_id = self.parse_int(req.route_params.get(self.id_param), self.id_param)
        if method == "GET":
            return self.get_item(req, item_id)
        if method == "PATCH":
            return self.update_item(req, item_id, self.extract_json_body(req))
        return self.delete_item(req, item_id)

    @abstractmethod
    def list_items(self, req: func.HttpRequest) -> Dict[str, Any]:
        pass

    @abstractmethod
    def create_item(self, req: func.HttpRequest, body: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def get_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        pass

    @abstractmethod
    def update_item(self, req: func.HttpRequest, item_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def delete_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        pass

    @staticmethod
    def strip_server_fields(body: Dict[str, Any], *fields: str) -> Dict[str, Any]:
        """Drop ids and timestamps the database assigns."""
        server_fields = set(fields) | {"created_at", "updated_at"}
        return {k: v for k, v in body.items() if k not in server_fields}


class PipelineTrigger(BaseHttpTrigger):
    """Base class for triggers that talk to the queues or the file drop."""

    def __init__(self, trigger_name: str, repositories: Optional[Dict[str, Any]] = None,
                 queue_repository=None, blob_repository=None):
        super().__init__(trigger_name, repositories)
        self._queue_repository = queue_repository
        self._blob_repository = blob_repository
        self._relay = None

    @property
    def queue_repository(self):
        """Lazy-loaded Service Bus repository."""
        if self._queue_repository is None:
            from infrastructure import RepositoryFactory
            self._queue_repository = RepositoryFactory.create_service_bus_repository()
        return self._queue_repository

    @property
    def blob_repository(self):
        """Lazy-loaded blob repository."""
        if self._blob_repository is None:
            from infrastructure import RepositoryFactory
            self._blob_repository = RepositoryFactory.create_blob_repository()
        return self._blob_repository

    @property
    def relay(self):
        if self._relay is None:
            from services import CustomizationEventRelay
            self._relay = CustomizationEventRelay(self.queue_repository)
        return self._relay


class SystemMonitoringTrigger(PipelineTrigger):
    """Base class for system monitoring triggers (health, dead letters)."""

    def get_system_timestamp(self) -> str:
        return datetime.now(timezone.utc).isoformat()

    def check_component_health(
        self,
        component_name: str,
        check_function,
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Standard pattern for checking component health.

        Status determination (in priority order):
        1. If check_function raises exception → "unhealthy"
        2. If result contains "status" key → use that value
        3. If result contains "error" key with truthy value → "unhealthy"
        4. Otherwise → "healthy"
        """
        try:
            result = check_function()

            if isinstance(result, dict):
                if result.get("status"):
                    status = result["status"]
                elif result.get("error"):
                    status = "unhealthy"
                else:
                    status = "healthy"
            else:
                status = "healthy"

            return {
                "component": component_name,
                "description": description or f"{component_name} health check",
                "status": status,
                "details": result,
                "checked_at": self.get_system_timestamp()
            }
        except Exception as e:
            self.logger.warning(f"⚠️ {component_name} health check failed: {type(e).__name__}: {e}")
            return {
                "component": component_name,
                "description": description or f"{component_name} health check",
                "status": "unhealthy",
                "error": str(e),
                "checked_at": self.get_system_timestamp()
            }
