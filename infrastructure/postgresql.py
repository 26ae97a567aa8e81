"""
PostgreSQL Repository Implementation - Direct Database Access.

This module provides PostgreSQL-specific repository implementations that inherit
from the pure BaseRepository abstract class.

Architecture:
    BaseRepository (abstract)
        |
    PostgreSQLRepository (connection, auth, query execution, CRUD helpers)
        |
    PostgreSQLUserRepository, PostgreSQLProjectRepository,
    PostgreSQLFloorPlanRepository, PostgreSQLCustomizationRepository

Key Features:
- Direct PostgreSQL access using psycopg3
- SQL composition (psycopg.sql) for injection safety
- Password or Azure Managed Identity authentication
- psycopg errors translated into the project exception hierarchy so the
  queue consumer can tell permanent failures from transient ones

Exports:
    PostgreSQLRepository: Base class with connection management
    PostgreSQLUserRepository
    PostgreSQLProjectRepository
    PostgreSQLFloorPlanRepository
    PostgreSQLCustomizationRepository
"""

import time
from contextlib import contextmanager
from enum import Enum
from typing import Dict, Any, Optional, List, Tuple, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from config import AppConfig, get_config
from config.defaults import DatabaseDefaults
from core.models import (
    UserRecord,
    ProjectRecord,
    FloorPlanRecord,
    CustomizationRecord,
    EventType,
)
from core.schema.updates import (
    UserUpdateModel,
    ProjectUpdateModel,
    FloorPlanUpdateModel,
    CustomizationUpdateModel,
)
from exceptions import (
    ConstraintViolationError,
    ContractViolationError,
    DatabaseError,
    ValidationError,
)
from utils import enforce_contract

from .base import BaseRepository
from .interface_repository import (
    IUserRepository,
    IProjectRepository,
    IFloorPlanRepository,
    ICustomizationRepository,
)


# Scope is fixed for all Azure PostgreSQL Flexible Servers
POSTGRES_TOKEN_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"


def clamp_limit(limit: int) -> int:
    """Keep a page size between 1 and the configured maximum."""
    return max(1, min(limit, DatabaseDefaults.MAX_PAGE_SIZE))


def _adapt_value(value: Any) -> Any:
    """Convert a model value into something psycopg can bind."""
    if isinstance(value, (dict, list)):
        return Jsonb(value)
    if isinstance(value, Enum):
        return value.value
    return value


# ============================================================================
# POSTGRESQL BASE REPOSITORY - Connection and common operations
# ============================================================================

class PostgreSQLRepository(BaseRepository):
    """
    PostgreSQL-specific repository base class with connection management.

    Provides:
    - Connection string management from config (password or managed identity)
    - Connection context managers with rollback on error
    - Safe SQL execution using psycopg.sql composition only
    - Generic row helpers used by the domain repositories

    Thread Safety:
    -------------
    Each operation opens its own connection, so instances are safe to share
    between concurrent function invocations.
    """

    def __init__(self, connection_string: Optional[str] = None,
                 schema_name: Optional[str] = None,
                 config: Optional[AppConfig] = None):
        """
        Initialize PostgreSQL repository with configuration.

        Priority:
        1. Explicit parameters (connection_string, schema_name)
        2. Provided AppConfig object
        3. Global configuration from get_config()

        No connection is opened here; the first query connects.

        Parameters:
        ----------
        connection_string : Optional[str]
            Explicit psycopg connection string, overrides configuration.
        schema_name : Optional[str]
            Database schema. Defaults to config.app_schema ("floorplan").
        config : Optional[AppConfig]
            Configuration object, for dependency injection in tests.
        """
        super().__init__()

        self.config = config or get_config()
        self.schema_name = schema_name or self.config.app_schema

        if connection_string:
            self.conn_string = connection_string
        else:
            self.conn_string = self._get_connection_string()

        self.logger.debug(f"✅ {self.__class__.__name__} initialized with schema: {self.schema_name}")

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    def _get_connection_string(self) -> str:
        """
        Build the psycopg connection string from configuration.

        Managed identity uses a short-lived Entra ID token as the password;
        otherwise DatabaseConfig.connection_string is used as-is.
        """
        if self.config.database.use_managed_identity:
            self.logger.info("🔐 Using Azure Managed Identity for PostgreSQL authentication")
            return self._build_managed_identity_connection_string()

        self.logger.debug("📋 Using password authentication from DatabaseConfig")
        return self.config.database.connection_string

    def _build_managed_identity_connection_string(self) -> str:
        """
        Build a connection string using an Azure Managed Identity token.

        DefaultAzureCredential tries environment credentials, managed
        identity, then the Azure CLI, so the same code works locally after
        `az login`. The token is valid for about an hour.

        Raises:
            DatabaseError: Token acquisition failed and no password is configured
        """
        from azure.identity import DefaultAzureCredential
        from azure.core.exceptions import ClientAuthenticationError

        db = self.config.database
        try:
            if db.managed_identity_client_id:
                credential = DefaultAzureCredential(managed_identity_client_id=db.managed_identity_client_id)
            else:
                credential = DefaultAzureCredential()

            token_response = credential.get_token(POSTGRES_TOKEN_SCOPE)
            token = token_response.token
            self.logger.debug(
                f"✅ Token acquired (expires in ~{token_response.expires_on - time.time():.0f}s)"
            )

        except ClientAuthenticationError as e:
            self.logger.error(f"❌ Failed to acquire managed identity token: {e}")
            if db.password and db.user:
                self.logger.warning("⚠️ Falling back to password authentication")
                return db.model_copy(update={"use_managed_identity": False}).connection_string
            raise DatabaseError(
                "Managed identity token acquisition failed and no password available. "
                "Ensure the Function App identity is registered as a PostgreSQL principal."
            ) from e

        user = db.managed_identity_admin_name
        self.logger.debug(
            f"🔗 Managed identity connection: host={db.host} dbname={db.database} "
            f"user={user} password=***TOKEN({len(token)} chars)***"
        )
        return (
            f"host={db.host} "
            f"port={db.port} "
            f"dbname={db.database} "
            f"user={user} "
            f"password={token} "
            f"sslmode=require "
            f"connect_timeout={db.connection_timeout_seconds}"
        )

    @contextmanager
    def _get_connection(self):
        """
        Context manager for PostgreSQL database connections.

        Yields a dict_row connection with autocommit off. On any exception the
        transaction is rolled back; the connection is always closed.

        Raises:
            DatabaseError: The connection could not be opened
        """
        try:
            conn = psycopg.connect(self.conn_string, row_factory=dict_row)
        except psycopg.Error as e:
            self.logger.error(f"❌ PostgreSQL connection error: {type(e).__name__}: {e}")
            if "could not translate host name" in str(e):
                self.logger.error("  🚨 DNS resolution error - check POSTGRES_HOST")
            raise DatabaseError(f"Cannot connect to PostgreSQL: {e}") from e

        try:
            yield conn
        except Exception:
            try:
                conn.rollback()
                self.logger.info("🔄 Transaction rolled back due to error")
            except psycopg.Error as rollback_error:
                self.logger.error(f"❌ ROLLBACK ALSO FAILED: {rollback_error}")
            raise
        finally:
            conn.close()

    @contextmanager
    def _translate_errors(self):
        """
        Map psycopg failures onto the project exception hierarchy.

        IntegrityError is permanent for the queue consumer; everything else
        becomes DatabaseError, which it retries.
        """
        try:
            yield
        except psycopg.errors.IntegrityError as e:
            constraint = e.diag.constraint_name if e.diag else None
            self.logger.warning(f"⚠️ Constraint violation ({constraint}): {e}")
            raise ConstraintViolationError(
                f"Constraint violation: {e.diag.message_primary if e.diag else e}",
                constraint_name=constraint
            ) from e

        except psycopg.OperationalError as e:
            self.logger.error(f"❌ Database operational error: {e}")
            raise DatabaseError(f"Database unavailable: {e}") from e

        except psycopg.Error as e:
            self.logger.error(f"❌ QUERY EXECUTION FAILED: {e}")
            self.logger.error(f"   SQL State: {getattr(e, 'sqlstate', 'unknown')}")
            raise DatabaseError(f"Query execution failed: {e}") from e

    @contextmanager
    def _transaction(self):
        """
        One connection, one transaction, several statements.

        Yields a cursor; commits when the block exits cleanly and rolls back
        otherwise.
        """
        with self._get_connection() as conn:
            with self._translate_errors():
                with conn.cursor() as cursor:
                    yield cursor
                conn.commit()

    @staticmethod
    def _check_query(query: Any, fetch: Optional[str] = None) -> None:
        if not isinstance(query, sql.Composed):
            raise ContractViolationError(f"SECURITY: Query must be sql.Composed, got {type(query).__name__}")
        if fetch not in (None, 'one', 'all'):
            raise ContractViolationError(f"Invalid fetch mode: {fetch}")

    def _execute_query(self, query: sql.Composed, params: Optional[Sequence] = None,
                       fetch: Optional[str] = None) -> Optional[Any]:
        """
        Execute one statement in its own transaction and commit.

        Parameters:
        ----------
        query : sql.Composed
            Query built with psycopg.sql composition.
        params : Optional[Sequence]
            Values for %s placeholders.
        fetch : Optional[str]
            None | 'one' | 'all'

        Returns:
        -------
        Row dict, list of row dicts, or affected row count when fetch is None.

        Raises:
        ------
        ContractViolationError
            Query is not sql.Composed or fetch mode is unknown
        ConstraintViolationError
            Unique, foreign key, check or not-null constraint rejected the write
        DatabaseError
            Any other psycopg failure (connection, timeout, syntax)
        """
        self._check_query(query, fetch)

        with self._transaction() as cursor:
            cursor.execute(query, params)
            if fetch == 'one':
                result = cursor.fetchone()
            elif fetch == 'all':
                result = cursor.fetchall()
            else:
                result = cursor.rowcount
        return result

    # ------------------------------------------------------------------
    # Query builders
    # ------------------------------------------------------------------

    def _table(self, table_name: str) -> sql.Composed:
        return sql.SQL("{}.{}").format(sql.Identifier(self.schema_name), sql.Identifier(table_name))

    def build_insert_query(self, table_name: str, columns: Sequence[str],
                           conflict_column: Optional[str] = None) -> sql.Composed:
        """
        INSERT ... RETURNING *.

        With conflict_column the statement becomes
        ON CONFLICT (conflict_column) DO NOTHING and returns no row on conflict.
        """
        query = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            self._table(table_name),
            sql.SQL(", ").join(sql.Identifier(c) for c in columns),
            sql.SQL(", ").join(sql.Placeholder() for _ in columns)
        )
        if conflict_column:
            query = query + sql.SQL(" ON CONFLICT ({}) DO NOTHING").format(sql.Identifier(conflict_column))
        return query + sql.SQL(" RETURNING *")

    def build_select_query(self, table_name: str, key_column: str) -> sql.Composed:
        return sql.SQL("SELECT * FROM {} WHERE {} = %s").format(
            self._table(table_name),
            sql.Identifier(key_column)
        )

    def build_list_query(self, table_name: str, filter_columns: Sequence[str],
                         order_by: str, descending: bool = False) -> sql.Composed:
        """SELECT with equality filters, ordering and LIMIT/OFFSET placeholders."""
        query = sql.SQL("SELECT * FROM {}").format(self._table(table_name))
        if filter_columns:
            query = query + sql.SQL(" WHERE ") + sql.SQL(" AND ").join(
                sql.SQL("{} = %s").format(sql.Identifier(c)) for c in filter_columns
            )
        direction = sql.SQL(" DESC") if descending else sql.SQL(" ASC")
        return query + sql.SQL(" ORDER BY {}").format(sql.Identifier(order_by)) + direction + \
            sql.SQL(" LIMIT %s OFFSET %s")

    def build_update_query(self, table_name: str, key_column: str,
                           columns: Sequence[str]) -> sql.Composed:
        """UPDATE only the given columns; updated_at is always refreshed."""
        set_clauses = [sql.SQL("{} = %s").format(sql.Identifier(c)) for c in columns]
        set_clauses.append(sql.SQL("{} = NOW()").format(sql.Identifier("updated_at")))
        return sql.SQL("UPDATE {} SET {} WHERE {} = %s RETURNING *").format(
            self._table(table_name),
            sql.SQL(", ").join(set_clauses),
            sql.Identifier(key_column)
        )

    def build_delete_query(self, table_name: str, key_column: str) -> sql.Composed:
        return sql.SQL("DELETE FROM {} WHERE {} = %s").format(
            self._table(table_name),
            sql.Identifier(key_column)
        )

    # ------------------------------------------------------------------
    # Row helpers
    # ------------------------------------------------------------------

    def _insert_returning(self, table_name: str, values: Dict[str, Any],
                          conflict_column: Optional[str] = None) -> Optional[Dict[str, Any]]:
        columns = list(values.keys())
        query = self.build_insert_query(table_name, columns, conflict_column)
        return self._execute_query(query, [_adapt_value(values[c]) for c in columns], fetch='one')

    def _fetch_by(self, table_name: str, key_column: str, key_value: Any) -> Optional[Dict[str, Any]]:
        query = self.build_select_query(table_name, key_column)
        return self._execute_query(query, (key_value,), fetch='one')

    def _list_rows(self, table_name: str, filters: Dict[str, Any], order_by: str,
                   limit: int, offset: int, descending: bool = False) -> List[Dict[str, Any]]:
        active = {k: v for k, v in filters.items() if v is not None}
        query = self.build_list_query(table_name, list(active.keys()), order_by, descending)
        params = [_adapt_value(v) for v in active.values()] + [clamp_limit(limit), max(0, offset)]
        return self._execute_query(query, params, fetch='all') or []

    def _update_fields(self, table_name: str, key_column: str, key_value: Any,
                       fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not fields:
            raise ValidationError("Update must change at least one field")
        columns = list(fields.keys())
        query = self.build_update_query(table_name, key_column, columns)
        params = [_adapt_value(fields[c]) for c in columns] + [key_value]
        return self._execute_query(query, params, fetch='one')

    def _delete_by(self, table_name: str, key_column: str, key_value: Any) -> bool:
        query = self.build_delete_query(table_name, key_column)
        return self._execute_query(query, (key_value,)) > 0

    @staticmethod
    def _insert_values(record, generated: Sequence[str]) -> Dict[str, Any]:
        """Model fields to insert; generated columns left unset get their DB default."""
        data = record.model_dump()
        return {k: v for k, v in data.items() if not (k in generated and v is None)}

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    def check_health(self) -> Dict[str, Any]:
        """
        Connectivity and schema check for the health endpoint.

        Returns:
            {'status': 'healthy'|'unhealthy', 'schema_exists', 'latency_ms', ['error']}
        """
        started = time.perf_counter()
        query = sql.SQL(
            "SELECT EXISTS (SELECT 1 FROM information_schema.schemata WHERE schema_name = %s) AS exists"
        ).format()
        try:
            row = self._execute_query(query, (self.schema_name,), fetch='one')
        except DatabaseError as e:
            return {"status": "unhealthy", "error": str(e), "schema": self.schema_name}

        schema_exists = bool(row and row["exists"])
        if not schema_exists:
            self.logger.warning(f"⚠️ Schema {self.schema_name} does not exist - run schema deploy")
        return {
            "status": "healthy",
            "schema": self.schema_name,
            "schema_exists": schema_exists,
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        }


# ============================================================================
# USER REPOSITORY
# ============================================================================

class PostgreSQLUserRepository(PostgreSQLRepository, IUserRepository):
    """
    PostgreSQL implementation of user repository.
    """

    TABLE = "users"

    @enforce_contract(params={'user': UserRecord}, returns=UserRecord)
    def create_user(self, user: UserRecord) -> UserRecord:
        """
        Insert a user.

        Raises:
            ConstraintViolationError: Email already registered
        """
        with self._error_context("user creation", user.email):
            values = self._insert_values(user, ("user_id", "created_at", "updated_at"))
            row = self._insert_returning(self.TABLE, values)
            created = UserRecord.model_validate(row)
            self._log_operation_result(True, "User created", created.user_id, {"role": created.role})
            return created

    @enforce_contract(params={'user_id': int}, returns=Optional[UserRecord])
    def get_user(self, user_id: int) -> Optional[UserRecord]:
        with self._error_context("user retrieval", user_id):
            row = self._fetch_by(self.TABLE, "user_id", user_id)
            return UserRecord.model_validate(row) if row else None

    @enforce_contract(params={'limit': int, 'offset': int}, returns=list)
    def list_users(self, limit: int = DatabaseDefaults.DEFAULT_PAGE_SIZE, offset: int = 0) -> List[UserRecord]:
        with self._error_context("user listing"):
            rows = self._list_rows(self.TABLE, {}, "user_id", limit, offset)
            return [UserRecord.model_validate(r) for r in rows]

    @enforce_contract(params={'user_id': int, 'updates': UserUpdateModel}, returns=Optional[UserRecord])
    def update_user(self, user_id: int, updates: UserUpdateModel) -> Optional[UserRecord]:
        with self._error_context("user update", user_id):
            fields = updates.to_dict(exclude_unset=True)
            row = self._update_fields(self.TABLE, "user_id", user_id, fields)
            self._log_operation_result(row is not None, "User updated", user_id, {"fields": list(fields)})
            return UserRecord.model_validate(row) if row else None

    @enforce_contract(params={'user_id': int}, returns=bool)
    def delete_user(self, user_id: int) -> bool:
        """Delete a user; projects, floor plans and customizations cascade."""
        with self._error_context("user deletion", user_id):
            deleted = self._delete_by(self.TABLE, "user_id", user_id)
            self._log_operation_result(deleted, "User deleted", user_id)
            return deleted


# ============================================================================
# PROJECT REPOSITORY
# ============================================================================

class PostgreSQLProjectRepository(PostgreSQLRepository, IProjectRepository):
    """
    PostgreSQL implementation of project repository.
    """

    TABLE = "projects"

    @enforce_contract(params={'project': ProjectRecord}, returns=ProjectRecord)
    def create_project(self, project: ProjectRecord) -> ProjectRecord:
        with self._error_context("project creation", project.name):
            values = self._insert_values(project, ("project_id", "created_at", "updated_at"))
            created = ProjectRecord.model_validate(self._insert_returning(self.TABLE, values))
            self._log_operation_result(True, "Project created", created.project_id, {"owner_id": created.owner_id})
            return created

    @enforce_contract(params={'project_id': int}, returns=Optional[ProjectRecord])
    def get_project(self, project_id: int) -> Optional[ProjectRecord]:
        with self._error_context("project retrieval", project_id):
            row = self._fetch_by(self.TABLE, "project_id", project_id)
            return ProjectRecord.model_validate(row) if row else None

    @enforce_contract(params={'owner_id': Optional[int], 'limit': int, 'offset': int}, returns=list)
    def list_projects(self, owner_id: Optional[int] = None,
                      limit: int = DatabaseDefaults.DEFAULT_PAGE_SIZE, offset: int = 0) -> List[ProjectRecord]:
        with self._error_context("project listing", owner_id):
            rows = self._list_rows(self.TABLE, {"owner_id": owner_id}, "project_id", limit, offset)
            return [ProjectRecord.model_validate(r) for r in rows]

    @enforce_contract(params={'project_id': int, 'updates': ProjectUpdateModel}, returns=Optional[ProjectRecord])
    def update_project(self, project_id: int, updates: ProjectUpdateModel) -> Optional[ProjectRecord]:
        with self._error_context("project update", project_id):
            fields = updates.to_dict(exclude_unset=True)
            row = self._update_fields(self.TABLE, "project_id", project_id, fields)
            self._log_operation_result(row is not None, "Project updated", project_id, {"fields": list(fields)})
            return ProjectRecord.model_validate(row) if row else None

    @enforce_contract(params={'project_id': int}, returns=bool)
    def delete_project(self, project_id: int) -> bool:
        with self._error_context("project deletion", project_id):
            deleted = self._delete_by(self.TABLE, "project_id", project_id)
            self._log_operation_result(deleted, "Project deleted", project_id)
            return deleted


# ============================================================================
# FLOOR PLAN REPOSITORY
# ============================================================================

class PostgreSQLFloorPlanRepository(PostgreSQLRepository, IFloorPlanRepository):
    """
    PostgreSQL implementation of floor plan repository.
    """

    TABLE = "floor_plans"

    @enforce_contract(params={'floor_plan': FloorPlanRecord}, returns=FloorPlanRecord)
    def create_floor_plan(self, floor_plan: FloorPlanRecord) -> FloorPlanRecord:
        with self._error_context("floor plan creation", floor_plan.name):
            values = self._insert_values(floor_plan, ("floor_plan_id", "created_at", "updated_at"))
            created = FloorPlanRecord.model_validate(self._insert_returning(self.TABLE, values))
            self._log_operation_result(
                True, "Floor plan created", created.floor_plan_id, {"project_id": created.project_id}
            )
            return created

    @enforce_contract(params={'floor_plan_id': int}, returns=Optional[FloorPlanRecord])
    def get_floor_plan(self, floor_plan_id: int) -> Optional[FloorPlanRecord]:
        with self._error_context("floor plan retrieval", floor_plan_id):
            row = self._fetch_by(self.TABLE, "floor_plan_id", floor_plan_id)
            return FloorPlanRecord.model_validate(row) if row else None

    @enforce_contract(params={'project_id': Optional[int], 'limit': int, 'offset': int}, returns=list)
    def list_floor_plans(self, project_id: Optional[int] = None,
                         limit: int = DatabaseDefaults.DEFAULT_PAGE_SIZE, offset: int = 0) -> List[FloorPlanRecord]:
        with self._error_context("floor plan listing", project_id):
            rows = self._list_rows(self.TABLE, {"project_id": project_id}, "floor_plan_id", limit, offset)
            return [FloorPlanRecord.model_validate(r) for r in rows]

    @enforce_contract(
        params={'floor_plan_id': int, 'updates': FloorPlanUpdateModel},
        returns=Optional[FloorPlanRecord]
    )
    def update_floor_plan(self, floor_plan_id: int, updates: FloorPlanUpdateModel) -> Optional[FloorPlanRecord]:
        with self._error_context("floor plan update", floor_plan_id):
            fields = updates.to_dict(exclude_unset=True)
            row = self._update_fields(self.TABLE, "floor_plan_id", floor_plan_id, fields)
            self._log_operation_result(row is not None, "Floor plan updated", floor_plan_id, {"fields": list(fields)})
            return FloorPlanRecord.model_validate(row) if row else None

    @enforce_contract(params={'floor_plan_id': int}, returns=bool)
    def delete_floor_plan(self, floor_plan_id: int) -> bool:
        with self._error_context("floor plan deletion", floor_plan_id):
            deleted = self._delete_by(self.TABLE, "floor_plan_id", floor_plan_id)
            self._log_operation_result(deleted, "Floor plan deleted", floor_plan_id)
            return deleted


# ============================================================================
# CUSTOMIZATION REPOSITORY
# ============================================================================

class PostgreSQLCustomizationRepository(PostgreSQLRepository, ICustomizationRepository):
    """
    PostgreSQL implementation of customization repository.

    The queue consumer writes through create_customization_from_event,
    which records each applied event in processed_events.
    """

    TABLE = "customizations"
    LEDGER = "processed_events"
    GENERATED = ("customization_id", "created_at", "updated_at")

    @enforce_contract(params={'customization': CustomizationRecord}, returns=CustomizationRecord)
    def create_customization(self, customization: CustomizationRecord) -> CustomizationRecord:
        with self._error_context("customization creation", customization.floor_plan_id):
            values = self._insert_values(customization, self.GENERATED)
            created = CustomizationRecord.model_validate(self._insert_returning(self.TABLE, values))
            self._log_operation_result(
                True, "Customization created", created.customization_id,
                {"floor_plan_id": created.floor_plan_id, "component_type": created.component_type}
            )
            return created

    @enforce_contract(params={'customization': CustomizationRecord}, returns=tuple)
    def create_customization_from_event(
        self,
        customization: CustomizationRecord
    ) -> Tuple[Optional[CustomizationRecord], bool]:
        """
        Idempotent insert keyed by source_event_id.

        The processed_events row and the customization are written in one
        transaction. The ledger row survives a later delete, so replaying
        the create never brings the customization back.

        Returns:
            (record, True) for a new row; (existing record, False) on
            redelivery, with None in place of the record once it was deleted

        Raises:
            ContractViolationError: source_event_id is not set
        """
        event_id = customization.source_event_id
        if not event_id:
            raise ContractViolationError("create_customization_from_event requires source_event_id")

        values = self._insert_values(customization, self.GENERATED)
        columns = list(values.keys())

        with self._error_context("customization creation from event", event_id):
            with self._transaction() as cursor:
                cursor.execute(
                    self.build_insert_query(self.LEDGER, ["event_id", "event_type"], conflict_column="event_id"),
                    (event_id, EventType.CREATED.value)
                )
                first_delivery = cursor.fetchone() is not None

                row = None
                if first_delivery:
                    # Rows created before the ledger existed still conflict on source_event_id
                    cursor.execute(
                        self.build_insert_query(self.TABLE, columns, conflict_column="source_event_id"),
                        [_adapt_value(values[c]) for c in columns]
                    )
                    row = cursor.fetchone()

                if row is not None:
                    cursor.execute(self.build_ledger_link_query(), (row["customization_id"], event_id))
                    created = CustomizationRecord.model_validate(row)
                    self.logger.info(f"✅ Customization {created.customization_id} created from event {event_id}")
                    return created, True

                cursor.execute(self.build_select_query(self.TABLE, "source_event_id"), (event_id,))
                existing = cursor.fetchone()

            if existing is None:
                self.logger.info(f"📋 Event {event_id} already applied; its customization was deleted since")
                return None, False
            self.logger.info(f"📋 Event {event_id} already applied (idempotent)")
            return CustomizationRecord.model_validate(existing), False

    def build_ledger_link_query(self) -> sql.Composed:
        """Record which customization a processed event created."""
        return sql.SQL("UPDATE {} SET {} = %s WHERE {} = %s").format(
            self._table(self.LEDGER),
            sql.Identifier("customization_id"),
            sql.Identifier("event_id")
        )

    @enforce_contract(params={'customization_id': int}, returns=Optional[CustomizationRecord])
    def get_customization(self, customization_id: int) -> Optional[CustomizationRecord]:
        with self._error_context("customization retrieval", customization_id):
            row = self._fetch_by(self.TABLE, "customization_id", customization_id)
            return CustomizationRecord.model_validate(row) if row else None

    @enforce_contract(params={'floor_plan_id': Optional[int], 'limit': int, 'offset': int}, returns=list)
    def list_customizations(self, floor_plan_id: Optional[int] = None,
                            limit: int = DatabaseDefaults.DEFAULT_PAGE_SIZE,
                            offset: int = 0) -> List[CustomizationRecord]:
        with self._error_context("customization listing", floor_plan_id):
            rows = self._list_rows(
                self.TABLE, {"floor_plan_id": floor_plan_id}, "customization_id", limit, offset
            )
            return [CustomizationRecord.model_validate(r) for r in rows]

    @enforce_contract(
        params={'customization_id': int, 'updates': CustomizationUpdateModel},
        returns=Optional[CustomizationRecord]
    )
    def update_customization(
        self,
        customization_id: int,
        updates: CustomizationUpdateModel
    ) -> Optional[CustomizationRecord]:
        with self._error_context("customization update", customization_id):
            fields = updates.to_dict(exclude_unset=True)
            row = self._update_fields(self.TABLE, "customization_id", customization_id, fields)
            self._log_operation_result(
                row is not None, "Customization updated", customization_id, {"fields": list(fields)}
            )
            return CustomizationRecord.model_validate(row) if row else None

    @enforce_contract(params={'customization_id': int}, returns=bool)
    def delete_customization(self, customization_id: int) -> bool:
        with self._error_context("customization deletion", customization_id):
            deleted = self._delete_by(self.TABLE, "customization_id", customization_id)
            self._log_operation_result(deleted, "Customization deleted", customization_id)
            return deleted
