"""
Core Data Models Package.

Contains pure data structures without business logic.
All business logic is in the core.logic package.

Exports:
    UserRecord, ProjectRecord, FloorPlanRecord, CustomizationRecord: CRUD models
    LegacyDataAuditRecord: Legacy import audit model
    ProcessedEventRecord: Applied create events, kept after deletes
    UserRole, DataType, ImportStatus, EventType, EventSource,
    ProcessingOutcome, FailureKind, DeadLetterSource: Enums
"""

# Enums
from .enums import (
    UserRole,
    DataType,
    ImportStatus,
    EventType,
    EventSource,
    ProcessingOutcome,
    FailureKind,
    DeadLetterSource
)

# Ownership chain: User -> Project -> FloorPlan -> Customization
from .user import UserRecord
from .project import ProjectRecord
from .floor_plan import FloorPlanRecord
from .customization import CustomizationRecord

# Audit
from .audit import LegacyDataAuditRecord

# Consumer idempotency ledger
from .processed_event import ProcessedEventRecord

__all__ = [
    'UserRole',
    'DataType',
    'ImportStatus',
    'EventType',
    'EventSource',
    'ProcessingOutcome',
    'FailureKind',
    'DeadLetterSource',
    'UserRecord',
    'ProjectRecord',
    'FloorPlanRecord',
    'CustomizationRecord',
    'LegacyDataAuditRecord',
    'ProcessedEventRecord',
]
