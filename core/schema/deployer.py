"""
PostgreSQL Schema Deployment and Management.

Deploys the Pydantic-generated DDL into APP_SCHEMA and verifies the
result.

Critical Features:
    - All statements run in one transaction: either the whole schema
      lands or nothing changes
    - Idempotent without rebuild (IF NOT EXISTS, guarded enums,
      CREATE OR REPLACE functions)
    - Rebuild drops the schema first and destroys all data

Exports:
    SchemaManager: Schema deployment orchestrator
    SchemaManagementError: Schema operation error
"""

from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

import psycopg

from util_logger import LoggerFactory, ComponentType
from exceptions import DatabaseError
from .sql_generator import PydanticToSQL

logger = LoggerFactory.create_logger(ComponentType.SCHEMA, "SchemaManager")


class SchemaManagementError(DatabaseError):
    """Schema could not be deployed or verified."""
    pass


def _statement_type(stmt_lower: str) -> str:
    if 'drop schema' in stmt_lower:
        return "DROP SCHEMA"
    if 'create type' in stmt_lower:
        return "CREATE TYPE (ENUM)"
    if 'create table' in stmt_lower:
        return "CREATE TABLE"
    if 'create or replace function' in stmt_lower:
        return "CREATE FUNCTION"
    if 'create index' in stmt_lower:
        return "CREATE INDEX"
    if 'create trigger' in stmt_lower:
        return "CREATE TRIGGER"
    if 'drop trigger' in stmt_lower:
        return "DROP TRIGGER"
    if 'create schema' in stmt_lower:
        return "CREATE SCHEMA"
    if 'set search_path' in stmt_lower:
        return "SET search_path"
    return "SQL"


class SchemaManager:
    """
    PostgreSQL schema manager for the application database.

    Responsibilities:
    1. Generate DDL from the Pydantic models
    2. Execute it through PostgreSQLRepository's connection
    3. Verify every required table exists afterwards
    """

    def __init__(self, repository=None, schema_name: Optional[str] = None):
        """
        Args:
            repository: PostgreSQLRepository (created when omitted)
            schema_name: Target schema (defaults to the repository's schema)
        """
        if repository is None:
            from infrastructure.postgresql import PostgreSQLRepository
            repository = PostgreSQLRepository()
        self.repository = repository
        self.app_schema = schema_name or repository.schema_name
        self.generator = PydanticToSQL(schema_name=self.app_schema)
        logger.info(f"🏗️ SchemaManager initialized for schema: {self.app_schema}")

    def deploy(self, rebuild: bool = False) -> Dict[str, Any]:
        """
        Deploy the schema.

        Args:
            rebuild: Drop the schema first (destroys all data)

        Returns:
            Deployment summary with per-type statement counts and verification

        Raises:
            SchemaManagementError: A statement failed; the transaction was rolled back
        """
        statements = self.generator.generate_composed_statements(rebuild=rebuild)
        counts: Dict[str, int] = {}
        executed: List[str] = []

        logger.info(f"📦 Deploying {len(statements)} statements to '{self.app_schema}' (rebuild={rebuild})")

        with self.repository._get_connection() as conn:
            with conn.cursor() as cur:
                for stmt in statements:
                    stmt_str = stmt.as_string(conn)
                    stmt_type = _statement_type(stmt_str.lower())
                    stmt_preview = stmt_str[:100].replace('\n', ' ')
                    try:
                        cur.execute(stmt)
                    except psycopg.Error as e:
                        conn.rollback()
                        logger.error(f"❌ Statement failed ({stmt_type}): {e}")
                        logger.error(f"   Failed SQL (first 500 chars): {stmt_str[:500]}")
                        raise SchemaManagementError(
                            f"{stmt_type} failed: {e}. Deployment rolled back after "
                            f"{len(executed)} of {len(statements)} statements."
                        ) from e
                    counts[stmt_type] = counts.get(stmt_type, 0) + 1
                    executed.append(f"{stmt_type}: {stmt_preview}")
            conn.commit()

            verification = self._verify_tables(conn)

        logger.info(f"✅ Schema '{self.app_schema}' deployed: {counts}")
        return {
            "status": "success" if verification["all_present"] else "partial",
            "schema_name": self.app_schema,
            "rebuild": rebuild,
            "statistics": {
                "statements_executed": len(executed),
                "by_type": counts,
            },
            "verification": verification,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }

    def _verify_tables(self, conn) -> Dict[str, Any]:
        required = self.generator.table_names()
        with conn.cursor() as cur:
            cur.execute(
                "SELECT table_name FROM information_schema.tables "
                "WHERE table_schema = %s AND table_name = ANY(%s)",
                (self.app_schema, required)
            )
            rows = cur.fetchall()
        existing = sorted(row["table_name"] if isinstance(row, dict) else row[0] for row in rows)
        missing = [t for t in required if t not in existing]
        if missing:
            logger.warning(f"⚠️ Missing tables after deploy: {missing}")
        return {
            "required_tables": required,
            "existing_tables": existing,
            "missing_tables": missing,
            "all_present": not missing
        }

    def get_schema_info(self) -> Dict[str, Any]:
        """Describe what a deploy would run, without touching the database."""
        statements = self.generator.generate_composed_statements()
        return {
            "schema_name": self.app_schema,
            "tables": self.generator.table_names(),
            "enums": sorted(self.generator.enums),
            "total_statements": len(statements),
        }
