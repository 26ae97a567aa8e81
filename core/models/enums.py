"""
Pure Enumeration Types for Core Framework.

Defines valid values for roles, import statuses and pipeline events.
No business logic - pure type definitions only.

Exports:
    UserRole: Account role
    DataType: Legacy batch file format
    ImportStatus: Outcome of one legacy import
    EventType: Customization event kind
    EventSource: Where an event entered the pipeline
    ProcessingOutcome: What the consumer did with an event
    FailureKind: Permanent vs transient processing failure
    DeadLetterSource: Which failed-event store to inspect
"""

from enum import Enum


class UserRole(str, Enum):
    """Account role. Only used for display and filtering today."""

    CUSTOMER = "customer"
    DESIGNER = "designer"
    ADMIN = "admin"


class DataType(str, Enum):
    """Format of a legacy batch file."""

    CSV = "csv"
    JSON = "json"


class ImportStatus(str, Enum):
    """
    Outcome of one legacy file import.

    - SUCCESS: every row was published
    - PARTIAL: some rows were rejected, the rest published
    - FAILED: nothing was published
    """

    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


class EventType(str, Enum):
    """Customization change carried by a queue message."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class EventSource(str, Enum):
    """Entry point that produced an event."""

    API = "api"
    FILE_DROP = "file_drop"


class ProcessingOutcome(str, Enum):
    """
    Result of applying one event.

    DUPLICATE covers redelivery: the create already happened or the
    row is already gone.
    """

    APPLIED = "applied"
    DUPLICATE = "duplicate"
    REJECTED = "rejected"


class FailureKind(str, Enum):
    """
    Classification of a processing failure.

    PERMANENT failures go to the rejected-events queue and are never
    retried. TRANSIENT failures are re-raised so Service Bus redelivers.
    """

    PERMANENT = "permanent"
    TRANSIENT = "transient"


class DeadLetterSource(str, Enum):
    """Failed-event store inspected by the admin endpoints."""

    DLQ = "dlq"
    REJECTED = "rejected"
