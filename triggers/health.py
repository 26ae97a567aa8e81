"""
Health Check HTTP Trigger.

System health monitoring endpoint for GET /api/health.

Components Monitored:
    - Database (connectivity, schema present)
    - Service Bus (events and rejected queue counts)
    - Blob Storage (file-drop container reachable)

Returns 200 when every component is healthy, 503 otherwise.

Exports:
    HealthCheckTrigger: Health check trigger class
    health_check_trigger: Singleton trigger instance
"""

from typing import Dict, Any, List, Optional
import sys

import azure.functions as func

from config import debug_config, get_config

from .http_base import SystemMonitoringTrigger


class HealthCheckTrigger(SystemMonitoringTrigger):
    """Health check HTTP trigger implementation."""

    def __init__(self, database_repository=None, queue_repository=None, blob_repository=None):
        super().__init__("health_check", queue_repository=queue_repository, blob_repository=blob_repository)
        self._database_repository = database_repository

    def get_allowed_methods(self) -> List[str]:
        """Health check only supports GET."""
        return ["GET"]

    @property
    def database_repository(self):
        if self._database_repository is None:
            from infrastructure import RepositoryFactory
            self._database_repository = RepositoryFactory.create_database_repository()
        return self._database_repository

    def success_status_code(self, req: func.HttpRequest, data: Optional[Dict[str, Any]] = None) -> int:
        if data and data.get("status") == "healthy":
            return 200
        return 503

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        config = get_config()
        health_data = {
            "status": "healthy",
            "components": {
                "database": self._check_database(),
                "service_bus": self._check_service_bus(),
                "blob_storage": self._check_blob_storage(),
            },
            "environment": {
                "environment": config.environment,
                "schema": config.app_schema,
                "python_version": sys.version.split()[0],
            },
            "errors": [],
        }
        if config.debug_mode:
            health_data["config"] = debug_config()

        for name, component in health_data["components"].items():
            if component["status"] != "healthy":
                health_data["status"] = "unhealthy"
                error = component.get("error") or component.get("details", {}).get("error")
                health_data["errors"].append(f"{name}: {error or component['status']}")

        if health_data["errors"]:
            self.logger.warning(f"⚠️ Health check unhealthy: {health_data['errors']}")
        return health_data

    def _check_database(self) -> Dict[str, Any]:
        return self.check_component_health(
            "database",
            lambda: self.database_repository.check_health(),
            "PostgreSQL connectivity and application schema"
        )

    def _check_service_bus(self) -> Dict[str, Any]:
        def check_service_bus():
            queues = get_config().queues
            return {
                queues.events_queue: self.queue_repository.get_queue_counts(queues.events_queue),
                queues.rejected_queue: self.queue_repository.get_queue_counts(queues.rejected_queue),
            }

        return self.check_component_health(
            "service_bus", check_service_bus, "Events and rejected-events queues"
        )

    def _check_blob_storage(self) -> Dict[str, Any]:
        return self.check_component_health(
            "blob_storage",
            lambda: self.blob_repository.check_health(get_config().storage.file_drop_container),
            "Legacy file-drop container"
        )


health_check_trigger = HealthCheckTrigger()
