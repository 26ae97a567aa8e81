"""
PostgreSQL repository execution — psycopg error mapping and the
processed-events transaction, against a stub connection.
"""

from datetime import datetime, timezone

import psycopg
import pytest
from psycopg import sql

from core.logic import classify_failure
from core.models import CustomizationRecord, FailureKind
from exceptions import ConstraintViolationError, ContractViolationError, DatabaseError
from infrastructure.postgresql import PostgreSQLCustomizationRepository, PostgreSQLRepository

SELECT_ONE = sql.SQL("SELECT {}").format(sql.Literal(1))


class StubCursor:
    def __init__(self, connection):
        self.connection = connection
        self.rowcount = 1

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, query, params=None):
        self.connection.executed.append((query, params))
        if self.connection.error is not None:
            raise self.connection.error

    def fetchone(self):
        return self.connection.rows.pop(0)

    def fetchall(self):
        return list(self.connection.rows)


class StubConnection:
    """Stands in for psycopg.Connection; rows are served to fetchone in order."""

    def __init__(self, error=None, rows=None):
        self.error = error
        self.rows = list(rows or [])
        self.executed = []
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self):
        return StubCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


@pytest.fixture
def connect(monkeypatch):
    """Install a StubConnection factory; returns a setter for the next connection."""
    state = {}

    def use(connection):
        state["connection"] = connection
        return connection

    monkeypatch.setattr(psycopg, "connect", lambda *args, **kwargs: state["connection"])
    return use


@pytest.fixture
def repo():
    return PostgreSQLRepository(connection_string="postgresql://localhost/testdb", schema_name="floorplan")


class TestErrorMapping:

    def test_unique_violation_is_constraint_violation(self, repo, connect):
        conn = connect(StubConnection(error=psycopg.errors.UniqueViolation("duplicate key")))
        with pytest.raises(ConstraintViolationError) as exc_info:
            repo._execute_query(SELECT_ONE, fetch='one')

        assert classify_failure(exc_info.value) == FailureKind.PERMANENT
        assert conn.rolled_back
        assert not conn.committed
        assert conn.closed

    def test_foreign_key_violation_is_constraint_violation(self, repo, connect):
        connect(StubConnection(error=psycopg.errors.ForeignKeyViolation("missing parent")))
        with pytest.raises(ConstraintViolationError):
            repo._execute_query(SELECT_ONE)

    def test_operational_error_is_transient(self, repo, connect):
        conn = connect(StubConnection(error=psycopg.OperationalError("server closed the connection")))
        with pytest.raises(DatabaseError) as exc_info:
            repo._execute_query(SELECT_ONE, fetch='one')

        assert not isinstance(exc_info.value, ConstraintViolationError)
        assert "Database unavailable" in str(exc_info.value)
        assert classify_failure(exc_info.value) == FailureKind.TRANSIENT
        assert conn.rolled_back

    def test_other_psycopg_errors_are_database_errors(self, repo, connect):
        connect(StubConnection(error=psycopg.errors.UndefinedTable("relation does not exist")))
        with pytest.raises(DatabaseError) as exc_info:
            repo._execute_query(SELECT_ONE, fetch='all')
        assert "Query execution failed" in str(exc_info.value)
        assert classify_failure(exc_info.value) == FailureKind.TRANSIENT

    def test_connection_failure(self, repo, monkeypatch):
        def refuse(*args, **kwargs):
            raise psycopg.OperationalError("connection refused")

        monkeypatch.setattr(psycopg, "connect", refuse)
        with pytest.raises(DatabaseError, match="Cannot connect"):
            repo._execute_query(SELECT_ONE)

    def test_success_commits_and_closes(self, repo, connect):
        conn = connect(StubConnection(rows=[{"value": 1}]))
        assert repo._execute_query(SELECT_ONE, fetch='one') == {"value": 1}
        assert conn.committed
        assert conn.closed

    def test_rowcount_without_fetch(self, repo, connect):
        connect(StubConnection())
        assert repo._execute_query(SELECT_ONE) == 1


class TestQueryContract:

    def test_bare_sql_rejected(self, repo, connect):
        conn = connect(StubConnection())
        with pytest.raises(ContractViolationError):
            repo._execute_query(sql.SQL("SELECT 1"))
        assert conn.executed == []

    def test_plain_string_rejected(self, repo):
        with pytest.raises(ContractViolationError):
            repo._execute_query("SELECT 1")

    def test_unknown_fetch_mode_rejected(self, repo):
        with pytest.raises(ContractViolationError):
            repo._execute_query(SELECT_ONE, fetch='many')


def _customization_row(customization_id=7, event_id="evt-1"):
    now = datetime.now(timezone.utc)
    return {
        "customization_id": customization_id,
        "floor_plan_id": 3,
        "component_type": "wall",
        "properties": {},
        "position_x": 1.0,
        "position_y": 2.0,
        "source_event_id": event_id,
        "created_at": now,
        "updated_at": now,
    }


class TestCreateFromEvent:

    @pytest.fixture
    def customizations(self):
        return PostgreSQLCustomizationRepository(
            connection_string="postgresql://localhost/testdb", schema_name="floorplan"
        )

    @pytest.fixture
    def record(self):
        return CustomizationRecord(
            floor_plan_id=3, component_type="wall", position_x=1.0, position_y=2.0, source_event_id="evt-1"
        )

    def test_first_delivery_records_event_and_row(self, customizations, record, connect):
        conn = connect(StubConnection(rows=[{"event_id": "evt-1"}, _customization_row()]))
        saved, created = customizations.create_customization_from_event(record)

        assert created
        assert saved.customization_id == 7
        statements = [q.as_string(None) for q, _ in conn.executed]
        assert statements[0].startswith('INSERT INTO "floorplan"."processed_events"')
        assert statements[1].startswith('INSERT INTO "floorplan"."customizations"')
        assert statements[2].startswith('UPDATE "floorplan"."processed_events"')
        assert conn.executed[2][1] == (7, "evt-1")
        assert conn.committed

    def test_redelivery_returns_existing_row(self, customizations, record, connect):
        connect(StubConnection(rows=[None, _customization_row()]))
        saved, created = customizations.create_customization_from_event(record)
        assert not created
        assert saved.customization_id == 7

    def test_redelivery_after_delete_does_not_insert(self, customizations, record, connect):
        conn = connect(StubConnection(rows=[None, None]))
        saved, created = customizations.create_customization_from_event(record)

        assert saved is None
        assert not created
        statements = [q.as_string(None) for q, _ in conn.executed]
        assert not any(s.startswith('INSERT INTO "floorplan"."customizations"') for s in statements)

    def test_row_from_before_the_ledger_is_duplicate(self, customizations, record, connect):
        conn = connect(StubConnection(rows=[{"event_id": "evt-1"}, None, _customization_row()]))
        saved, created = customizations.create_customization_from_event(record)

        assert not created
        assert saved.customization_id == 7
        assert conn.committed

    def test_requires_event_id(self, customizations):
        record = CustomizationRecord(floor_plan_id=3, component_type="wall", position_x=0, position_y=0)
        with pytest.raises(ContractViolationError):
            customizations.create_customization_from_event(record)
