"""
PostgreSQL Database Configuration.

Provides configuration for the application database holding users,
projects, floor plans, customizations and the legacy import audit table.

Supports both password-based and Azure Managed Identity authentication.

Exports:
    DatabaseConfig: Database configuration
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import DatabaseDefaults, AzureDefaults


# ============================================================================
# DATABASE CONFIGURATION
# ============================================================================

class DatabaseConfig(BaseModel):
    """
    PostgreSQL configuration with managed identity support.
    """

    # Connection settings
    host: str = Field(
        ...,
        description="PostgreSQL server hostname",
        examples=["floorplans.postgres.database.azure.com"]
    )

    port: int = Field(
        default=DatabaseDefaults.PORT,
        description="PostgreSQL server port number"
    )

    user: Optional[str] = Field(
        default=None,
        description="""PostgreSQL username for password-based authentication.

        Only used for password authentication (local development).
        With managed identity the user is DB_ADMIN_MANAGED_IDENTITY_NAME.
        """
    )

    password: Optional[str] = Field(
        default=None,
        repr=False,
        description="PostgreSQL password from POSTGRES_PASSWORD environment variable"
    )

    database: str = Field(
        ...,
        description="PostgreSQL database name",
        examples=["floorplans"]
    )

    app_schema: str = Field(
        default=DatabaseDefaults.APP_SCHEMA,
        description="PostgreSQL schema holding all application tables"
    )

    # Managed identity settings
    use_managed_identity: bool = Field(
        default=False,
        description="""Enable Azure Managed Identity for passwordless PostgreSQL authentication.

        When True an Azure AD token for the ossrdbms scope is used as the
        password. Tokens expire after an hour, so one is fetched per
        connection.

        Environment Variable: USE_MANAGED_IDENTITY
        """
    )

    managed_identity_admin_name: Optional[str] = Field(
        default=AzureDefaults.MANAGED_IDENTITY_NAME,
        description="""PostgreSQL role name matching the managed identity.

        Must match the principal created with pgaadauth_create_principal
        exactly (case-sensitive).

        Environment Variable: DB_ADMIN_MANAGED_IDENTITY_NAME
        """
    )

    managed_identity_client_id: Optional[str] = Field(
        default=None,
        description="Client ID of a user-assigned managed identity (DB_ADMIN_MANAGED_IDENTITY_CLIENT_ID)"
    )

    connection_timeout_seconds: int = Field(
        default=DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS,
        description="Connection timeout in seconds"
    )

    @property
    def connection_string(self) -> str:
        """
        Build PostgreSQL connection string for password auth.

        With managed identity, PostgreSQLRepository builds the string itself
        because the password is a short-lived token.
        """
        if self.use_managed_identity:
            return f"host={self.host} port={self.port} dbname={self.database}"
        if not self.user:
            raise ValueError("POSTGRES_USER is required for password authentication")
        password_part = f" password={self.password}" if self.password else ""
        return (
            f"host={self.host} port={self.port} dbname={self.database} "
            f"user={self.user}{password_part} connect_timeout={self.connection_timeout_seconds}"
        )

    def debug_dict(self) -> dict:
        """Debug output with masked password."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "database": self.database,
            "password": "***MASKED***" if self.password else None,
            "managed_identity": self.use_managed_identity,
            "managed_identity_admin_name": self.managed_identity_admin_name,
            "managed_identity_client_id": self.managed_identity_client_id[:8] + "..." if self.managed_identity_client_id else None,
            "app_schema": self.app_schema,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables.

        POSTGRES_USER is optional when using managed identity authentication.
        """
        return cls(
            host=os.environ["POSTGRES_HOST"],
            port=int(os.environ.get("POSTGRES_PORT", str(DatabaseDefaults.PORT))),
            user=os.environ.get("POSTGRES_USER"),
            password=os.environ.get("POSTGRES_PASSWORD"),
            database=os.environ["POSTGRES_DATABASE"],
            app_schema=os.environ.get("APP_SCHEMA", DatabaseDefaults.APP_SCHEMA),
            use_managed_identity=os.environ.get("USE_MANAGED_IDENTITY", "false").lower() == "true",
            managed_identity_admin_name=os.environ.get("DB_ADMIN_MANAGED_IDENTITY_NAME", AzureDefaults.MANAGED_IDENTITY_NAME),
            managed_identity_client_id=os.environ.get("DB_ADMIN_MANAGED_IDENTITY_CLIENT_ID"),
            connection_timeout_seconds=int(os.environ.get("DB_CONNECTION_TIMEOUT", str(DatabaseDefaults.CONNECTION_TIMEOUT_SECONDS))),
        )
