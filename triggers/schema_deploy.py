"""
Schema Deployment Trigger.

    GET  /api/admin/schema/deploy                 what a deploy would run
    POST /api/admin/schema/deploy                 create missing objects
    POST /api/admin/schema/deploy?rebuild=true&confirm=yes
                                                  drop the schema first (destroys data)

Exports:
    SchemaDeployTrigger: HTTP trigger class for schema deployment
    schema_deploy_trigger: Singleton instance
"""

from typing import Dict, Any, List

import azure.functions as func

from core.schema.deployer import SchemaManager

from .http_base import BaseHttpTrigger


class SchemaDeployTrigger(BaseHttpTrigger):
    """Deploy Pydantic-generated DDL using composed SQL statements."""

    def __init__(self, schema_manager=None):
        super().__init__("schema_deploy")
        self._schema_manager = schema_manager

    def get_allowed_methods(self) -> List[str]:
        return ["GET", "POST"]

    @property
    def schema_manager(self) -> SchemaManager:
        if self._schema_manager is None:
            from infrastructure import RepositoryFactory
            self._schema_manager = SchemaManager(RepositoryFactory.create_database_repository())
        return self._schema_manager

    def process_request(self, req: func.HttpRequest) -> Dict[str, Any]:
        if req.method.upper() == "GET":
            return self.schema_manager.get_schema_info()

        rebuild = req.params.get("rebuild", "false").lower() == "true"
        if rebuild and req.params.get("confirm") != "yes":
            raise ValueError("rebuild drops every table in the schema; add confirm=yes to proceed")

        if rebuild:
            self.logger.warning(f"💣 Rebuilding schema {self.schema_manager.app_schema}")
        return self.schema_manager.deploy(rebuild=rebuild)


schema_deploy_trigger = SchemaDeployTrigger()
