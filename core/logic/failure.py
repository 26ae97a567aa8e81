"""
Failure Classification for Queue Processing.

Decides whether a failed event should be retried (transient) or parked
in the rejected-events queue (permanent).

Exports:
    classify_failure: Map an exception to FailureKind
    is_final_attempt: Whether Service Bus will dead-letter after this delivery

Dependencies:
    core.models.enums: FailureKind
    exceptions: Project exception hierarchy
"""

import json

import pydantic

from exceptions import (
    ContractViolationError,
    ConstraintViolationError,
    ResourceNotFoundError,
    ValidationError,
)
from ..models.enums import FailureKind


# Retrying any of these reproduces the same failure
PERMANENT_ERRORS = (
    json.JSONDecodeError,
    UnicodeDecodeError,
    pydantic.ValidationError,
    ValidationError,
    ResourceNotFoundError,
    ConstraintViolationError,
    ContractViolationError,
)


def classify_failure(error: BaseException) -> FailureKind:
    """
    Classify a processing failure.

    Args:
        error: Exception raised while applying an event

    Returns:
        FailureKind.PERMANENT for malformed or semantically invalid events,
        FailureKind.TRANSIENT for everything else (database outages,
        Service Bus errors, unknown exceptions)
    """
    if isinstance(error, PERMANENT_ERRORS):
        return FailureKind.PERMANENT
    return FailureKind.TRANSIENT


def is_final_attempt(delivery_count: int, max_delivery_count: int) -> bool:
    """
    Check if this delivery is the last one Service Bus will make.

    Args:
        delivery_count: Delivery count reported by the trigger (1-based)
        max_delivery_count: MaxDeliveryCount configured on the queue

    Returns:
        True if a transient failure now sends the message to the dead-letter sub-queue
    """
    return delivery_count >= max_delivery_count
