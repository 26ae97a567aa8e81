"""
Repository Factory - Central Creation Point

This module provides the factory for creating all repository instances.
It is the single point for repository instantiation: triggers and services
receive what it builds, and tests substitute in-memory fakes instead.

Current Support:
- PostgreSQL repositories (users, projects, floor plans, customizations, audit)
- Service Bus repository (events and rejected queues)
- Blob storage repository (file drop container)
"""

from typing import Dict, Any, Optional

from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.FACTORY, "RepositoryFactory")


# ============================================================================
# REPOSITORY FACTORY - Central creation point
# ============================================================================

class RepositoryFactory:
    """
    Factory for creating repository instances.

    Design Philosophy:
    - Single factory for all repository types
    - Configuration-driven (connection details come from config.get_config())
    - Consistent interface across all storage types
    """

    @staticmethod
    def create_repositories(
        connection_string: Optional[str] = None,
        schema_name: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Create all PostgreSQL repository instances.

        The connection string (including a managed identity token) is built
        once and shared by every repository.

        Args:
            connection_string: PostgreSQL connection string (from config if not provided)
            schema_name: Database schema name (config.app_schema if not provided)

        Returns:
            Dictionary with user_repo, project_repo, floor_plan_repo,
            customization_repo and audit_repo

        Example:
            repos = RepositoryFactory.create_repositories()
            plan = repos['floor_plan_repo'].get_floor_plan(42)
        """
        from .postgresql import (
            PostgreSQLUserRepository,
            PostgreSQLProjectRepository,
            PostgreSQLFloorPlanRepository,
            PostgreSQLCustomizationRepository,
        )
        from .audit_repository import PostgreSQLAuditRepository

        logger.info("🏭 Creating PostgreSQL repositories")
        logger.debug(f"  Connection string provided: {connection_string is not None}")

        user_repo = PostgreSQLUserRepository(connection_string, schema_name)
        shared_conn = user_repo.conn_string
        schema_name = user_repo.schema_name

        repos = {
            'user_repo': user_repo,
            'project_repo': PostgreSQLProjectRepository(shared_conn, schema_name),
            'floor_plan_repo': PostgreSQLFloorPlanRepository(shared_conn, schema_name),
            'customization_repo': PostgreSQLCustomizationRepository(shared_conn, schema_name),
            'audit_repo': PostgreSQLAuditRepository(shared_conn, schema_name),
        }

        logger.info(f"✅ All repositories created successfully (schema={schema_name})")
        return repos

    @staticmethod
    def create_database_repository(
        connection_string: Optional[str] = None,
        schema_name: Optional[str] = None
    ) -> 'PostgreSQLRepository':
        """
        Create a bare PostgreSQL repository for schema deployment and health checks.
        """
        from .postgresql import PostgreSQLRepository
        return PostgreSQLRepository(connection_string, schema_name)

    @staticmethod
    def create_service_bus_repository() -> 'ServiceBusRepository':
        """
        Create Service Bus repository.

        This is THE centralized authentication point for all queue operations.

        Returns:
            ServiceBusRepository singleton instance
        """
        from .service_bus import ServiceBusRepository

        logger.info("🚌 Creating Service Bus repository")
        service_bus_repo = ServiceBusRepository.instance()
        logger.info("✅ Service Bus repository created successfully")
        return service_bus_repo

    @staticmethod
    def create_blob_repository() -> 'BlobRepository':
        """
        Create blob storage repository.

        Uses the storage connection string when configured, otherwise
        DefaultAzureCredential against STORAGE_ACCOUNT_NAME.

        Returns:
            BlobRepository singleton instance
        """
        from .blob import BlobRepository

        logger.info("🏭 Creating Blob Storage repository")
        blob_repo = BlobRepository.instance()
        logger.info("✅ Blob repository created successfully")
        return blob_repo
