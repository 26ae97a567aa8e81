"""
Pydantic to PostgreSQL Schema Generator.

Generates PostgreSQL DDL statements from Pydantic models,
ensuring database schema always matches Python models.
Pydantic models are the single source of truth for schema.

Table layout comes from the __sql_* class attributes on each model:
    __sql_table_name    table name
    __sql_primary_key   primary key column(s)
    __sql_identity      primary key is a database-generated identity
    __sql_unique        list of unique column groups
    __sql_foreign_keys  {column: "table.column"}, always ON DELETE CASCADE
    __sql_indexes       [{"columns": [...], "name": ..., "descending": bool}]

Exports:
    PydanticToSQL: Generator class for SQL DDL from Pydantic models
    SCHEMA_MODELS: Models deployed to the application schema, in FK order

Dependencies:
    pydantic: Model introspection
    psycopg: SQL composition
"""

from typing import Dict, List, Type, get_args, get_origin, Any, Union
from datetime import datetime
from enum import Enum
import inspect
import re
from pydantic import BaseModel
from pydantic.fields import FieldInfo
from psycopg import sql
from annotated_types import MaxLen

from util_logger import LoggerFactory, ComponentType
from ..models import (
    UserRecord,
    ProjectRecord,
    FloorPlanRecord,
    CustomizationRecord,
    LegacyDataAuditRecord,
    ProcessedEventRecord,
)


# Parents before children so foreign keys resolve
SCHEMA_MODELS = (
    UserRecord,
    ProjectRecord,
    FloorPlanRecord,
    CustomizationRecord,
    LegacyDataAuditRecord,
    ProcessedEventRecord,
)

TIMESTAMP_COLUMNS = ("created_at", "updated_at", "imported_at", "processed_at")


def sql_meta(model: Type[BaseModel], key: str, default: Any = None) -> Any:
    """Read a name-mangled __sql_<key> hint from a model class."""
    return getattr(model, f"_{model.__name__}__sql_{key}", default)


class PydanticToSQL:
    """
    Convert Pydantic models to PostgreSQL DDL statements.

    Analyzes Pydantic models and generates the corresponding PostgreSQL
    CREATE TABLE statements, including data types, constraints, indexes
    and updated_at triggers.
    """

    # Type mapping from Python/Pydantic to PostgreSQL
    TYPE_MAP = {
        str: "VARCHAR",
        int: "INTEGER",
        float: "DOUBLE PRECISION",
        bool: "BOOLEAN",
        datetime: "TIMESTAMPTZ",
        dict: "JSONB",
        Dict: "JSONB",
        list: "JSONB",
        List: "JSONB",
    }

    def __init__(self, schema_name: str = "floorplan"):
        """
        Initialize the generator.

        Args:
            schema_name: PostgreSQL schema name to use
        """
        self.schema_name = schema_name
        self.enums: Dict[str, Type[Enum]] = {}
        self.logger = LoggerFactory.create_logger(ComponentType.SCHEMA, "SQLGenerator")

    @staticmethod
    def _unwrap_optional(field_type: Type) -> tuple:
        """Return (inner_type, is_optional) for Optional[X]."""
        if get_origin(field_type) is Union:
            args = get_args(field_type)
            if type(None) in args:
                inner = [a for a in args if a is not type(None)]
                return (inner[0] if inner else str), True
            return (args[0] if args else str), False
        return field_type, False

    def python_type_to_sql(self, field_type: Type, field_info: FieldInfo) -> str:
        """
        Convert Python type to PostgreSQL type.

        Args:
            field_type: Python type from Pydantic model
            field_info: Pydantic field information

        Returns:
            PostgreSQL type string (enum types return their bare type name)
        """
        actual_type, _ = self._unwrap_optional(field_type)

        origin = get_origin(actual_type)
        if origin in (dict, Dict, list, List):
            return "JSONB"

        # In Pydantic v2, max_length lives in metadata as MaxLen
        if actual_type is str:
            for constraint in field_info.metadata or []:
                if isinstance(constraint, MaxLen):
                    return f"VARCHAR({constraint.max_length})"
            return "TEXT"

        if inspect.isclass(actual_type) and issubclass(actual_type, Enum):
            # CamelCase -> snake_case for PostgreSQL
            enum_name = re.sub(r'(?<!^)(?=[A-Z])', '_', actual_type.__name__).lower()
            self.enums[enum_name] = actual_type
            return enum_name

        return self.TYPE_MAP.get(actual_type, "JSONB")

    def generate_enum(self, enum_name: str, enum_class: Type[Enum], rebuild: bool = False) -> List[sql.Composed]:
        """
        Generate a PostgreSQL ENUM.

        Without rebuild the type is created inside a DO block that ignores
        duplicate_object, so redeploying never drops the columns using it.
        With rebuild the schema has already been dropped, so a plain
        CREATE TYPE is enough.
        """
        values = sql.SQL(', ').join(sql.Literal(member.value) for member in enum_class)
        create_stmt = sql.SQL("CREATE TYPE {}.{} AS ENUM ({})").format(
            sql.Identifier(self.schema_name),
            sql.Identifier(enum_name),
            values
        )

        self.logger.debug(f"🔧 Generating ENUM {enum_name}: {[m.value for m in enum_class]}")

        if rebuild:
            return [create_stmt]

        return [sql.SQL(
            "DO $$ BEGIN {}; EXCEPTION WHEN duplicate_object THEN NULL; END $$"
        ).format(create_stmt)]

    def _column_type(self, field_name: str, field_info: FieldInfo) -> sql.Composable:
        sql_type_str = self.python_type_to_sql(field_info.annotation, field_info)
        if field_name in TIMESTAMP_COLUMNS:
            return sql.SQL("TIMESTAMPTZ")
        if sql_type_str in self.enums:
            return sql.SQL("{}.{}").format(sql.Identifier(self.schema_name), sql.Identifier(sql_type_str))
        return sql.SQL(sql_type_str)

    def _column_default(self, field_name: str, field_info: FieldInfo, column_type: sql.Composable) -> List[sql.Composable]:
        if field_name in TIMESTAMP_COLUMNS:
            return [sql.SQL(" DEFAULT NOW()")]

        default = field_info.default
        if isinstance(default, Enum):
            return [sql.SQL(" DEFAULT "), sql.Literal(default.value), sql.SQL("::"), column_type]
        if isinstance(default, bool):
            return [sql.SQL(" DEFAULT "), sql.SQL("TRUE" if default else "FALSE")]
        if isinstance(default, (str, int, float)):
            return [sql.SQL(" DEFAULT "), sql.Literal(default)]

        if field_info.default_factory is dict:
            return [sql.SQL(" DEFAULT '{}'::jsonb")]
        return []

    def generate_table_composed(self, model: Type[BaseModel]) -> sql.Composed:
        """
        Generate CREATE TABLE IF NOT EXISTS for one model.

        Args:
            model: Pydantic model class carrying __sql_* hints

        Returns:
            Composed SQL object for direct execution
        """
        table_name = sql_meta(model, "table_name")
        primary_key = sql_meta(model, "primary_key", [])
        identity = sql_meta(model, "identity", False)
        self.logger.debug(f"🔧 Generating table {table_name} from model {model.__name__}")

        columns = []
        for field_name, field_info in model.model_fields.items():
            _, is_optional = self._unwrap_optional(field_info.annotation)

            if identity and field_name in primary_key:
                columns.append(sql.SQL("{} INTEGER GENERATED BY DEFAULT AS IDENTITY").format(
                    sql.Identifier(field_name)
                ))
                continue

            column_type = self._column_type(field_name, field_info)
            parts = [sql.Identifier(field_name), sql.SQL(" "), column_type]

            # Timestamps are Optional on the model only so inserts can omit them
            if not is_optional or field_name in TIMESTAMP_COLUMNS:
                parts.append(sql.SQL(" NOT NULL"))

            parts.extend(self._column_default(field_name, field_info, column_type))
            columns.append(sql.Composed(parts))

        constraints = []
        if primary_key:
            constraints.append(sql.SQL("PRIMARY KEY ({})").format(
                sql.SQL(", ").join(sql.Identifier(c) for c in primary_key)
            ))

        for unique_columns in sql_meta(model, "unique", []):
            constraints.append(sql.SQL("UNIQUE ({})").format(
                sql.SQL(", ").join(sql.Identifier(c) for c in unique_columns)
            ))

        for column, reference in sql_meta(model, "foreign_keys", {}).items():
            ref_table, ref_column = reference.split(".")
            constraints.append(
                sql.SQL("FOREIGN KEY ({}) REFERENCES {}.{} ({}) ON DELETE CASCADE").format(
                    sql.Identifier(column),
                    sql.Identifier(self.schema_name),
                    sql.Identifier(ref_table),
                    sql.Identifier(ref_column)
                )
            )

        composed = sql.SQL("CREATE TABLE IF NOT EXISTS {}.{} ({})").format(
            sql.Identifier(self.schema_name),
            sql.Identifier(table_name),
            sql.SQL(", ").join(columns + constraints)
        )

        self.logger.debug(f"✅ Table {table_name} composed with {len(columns)} columns and {len(constraints)} constraints")
        return composed

    def generate_indexes_composed(self, model: Type[BaseModel]) -> List[sql.Composed]:
        """Generate CREATE INDEX IF NOT EXISTS statements from __sql_indexes."""
        table_name = sql_meta(model, "table_name")
        indexes = []
        for index in sql_meta(model, "indexes", []):
            direction = sql.SQL(" DESC") if index.get("descending") else sql.SQL("")
            indexes.append(
                sql.SQL("CREATE INDEX IF NOT EXISTS {} ON {}.{} ({}{})").format(
                    sql.Identifier(index["name"]),
                    sql.Identifier(self.schema_name),
                    sql.Identifier(table_name),
                    sql.SQL(", ").join(sql.Identifier(c) for c in index["columns"]),
                    direction
                )
            )
        return indexes

    def generate_static_functions(self) -> List[sql.Composed]:
        """The updated_at trigger function shared by every CRUD table."""
        return [sql.SQL("""
CREATE OR REPLACE FUNCTION {}.{}()
RETURNS TRIGGER
LANGUAGE plpgsql
AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$""").format(
            sql.Identifier(self.schema_name),
            sql.Identifier("update_updated_at_column")
        )]

    def generate_triggers_composed(self) -> List[sql.Composed]:
        """DROP + CREATE an updated_at trigger for every table that has the column."""
        triggers = []
        for model in SCHEMA_MODELS:
            if "updated_at" not in model.model_fields:
                continue
            table_name = sql_meta(model, "table_name")
            trigger_name = f"update_{table_name}_updated_at"
            triggers.append(
                sql.SQL("DROP TRIGGER IF EXISTS {} ON {}.{}").format(
                    sql.Identifier(trigger_name),
                    sql.Identifier(self.schema_name),
                    sql.Identifier(table_name)
                )
            )
            triggers.append(
                sql.SQL("CREATE TRIGGER {} BEFORE UPDATE ON {}.{} FOR EACH ROW EXECUTE FUNCTION {}.{}()").format(
                    sql.Identifier(trigger_name),
                    sql.Identifier(self.schema_name),
                    sql.Identifier(table_name),
                    sql.Identifier(self.schema_name),
                    sql.Identifier("update_updated_at_column")
                )
            )
        return triggers

    def generate_composed_statements(self, rebuild: bool = False) -> List[sql.Composed]:
        """
        Generate the full application schema as composed SQL statements.

        Args:
            rebuild: Prepend DROP SCHEMA ... CASCADE (destroys all data)

        Returns:
            List of sql.Composed objects for direct execution, in order
        """
        self.logger.info(f"🚀 Composing schema '{self.schema_name}' (rebuild={rebuild})")
        self.enums = {}
        composed: List[sql.Composed] = []

        if rebuild:
            composed.append(sql.SQL("DROP SCHEMA IF EXISTS {} CASCADE").format(
                sql.Identifier(self.schema_name)
            ))

        composed.append(sql.SQL("CREATE SCHEMA IF NOT EXISTS {}").format(
            sql.Identifier(self.schema_name)
        ))
        composed.append(sql.SQL("SET search_path TO {}, public").format(
            sql.Identifier(self.schema_name)
        ))

        # Tables first so every enum they reference is registered
        tables = [self.generate_table_composed(model) for model in SCHEMA_MODELS]
        for enum_name, enum_class in self.enums.items():
            composed.extend(self.generate_enum(enum_name, enum_class, rebuild=rebuild))
        composed.extend(tables)

        for model in SCHEMA_MODELS:
            composed.extend(self.generate_indexes_composed(model))

        composed.extend(self.generate_static_functions())
        composed.extend(self.generate_triggers_composed())

        self.logger.info(
            f"✅ SQL composition complete: {len(composed)} statements "
            f"({len(self.enums)} enums, {len(tables)} tables)"
        )
        return composed

    @staticmethod
    def table_names() -> List[str]:
        return [sql_meta(model, "table_name") for model in SCHEMA_MODELS]
