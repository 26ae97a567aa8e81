"""
Failure classification and import status rules.
"""

import json

import pytest
from pydantic import ValidationError as PydanticValidationError

from core.logic import classify_failure, determine_import_status, is_final_attempt
from core.models import FailureKind, ImportStatus
from core.schema.queue import CustomizationEventMessage
from exceptions import (
    ConstraintViolationError,
    ContractViolationError,
    DatabaseError,
    ResourceNotFoundError,
    ServiceBusError,
    ValidationError,
)


def _pydantic_error() -> PydanticValidationError:
    try:
        CustomizationEventMessage.model_validate({"event_type": "created"})
    except PydanticValidationError as e:
        return e
    raise AssertionError("expected a validation error")


class TestClassifyFailure:

    @pytest.mark.parametrize("error", [
        json.JSONDecodeError("Expecting value", "", 0),
        ValidationError("customization belongs to another plan"),
        ResourceNotFoundError("floor plan 9 does not exist"),
        ConstraintViolationError("duplicate", "customizations_source_event_id_key"),
        ContractViolationError("dict passed instead of record"),
    ])
    def test_permanent(self, error):
        assert classify_failure(error) == FailureKind.PERMANENT

    def test_schema_violation_is_permanent(self):
        assert classify_failure(_pydantic_error()) == FailureKind.PERMANENT

    @pytest.mark.parametrize("error", [
        DatabaseError("connection reset"),
        ServiceBusError("namespace unreachable"),
        TimeoutError("timed out"),
        RuntimeError("unexpected"),
    ])
    def test_transient(self, error):
        assert classify_failure(error) == FailureKind.TRANSIENT


class TestFinalAttempt:

    def test_before_limit(self):
        assert not is_final_attempt(4, 5)

    def test_at_limit(self):
        assert is_final_attempt(5, 5)

    def test_past_limit(self):
        assert is_final_attempt(6, 5)


class TestImportStatus:

    def test_all_published(self):
        assert determine_import_status(10, 0) == ImportStatus.SUCCESS

    def test_some_rejected(self):
        assert determine_import_status(8, 2) == ImportStatus.PARTIAL

    def test_nothing_published(self):
        assert determine_import_status(0, 5) == ImportStatus.FAILED

    def test_empty_file(self):
        assert determine_import_status(0, 0) == ImportStatus.FAILED
