"""
Core Database Schema Management Package.

Contains SQL DDL generation, schema deployment, queue message schemas
and repository update contracts.

Exports:
    PydanticToSQL: SQL DDL generator from Pydantic models
    SchemaManager: Schema deployment
    CustomizationEventMessage, RejectedEventMessage: Queue message schemas
    UserUpdateModel, ProjectUpdateModel, FloorPlanUpdateModel,
    CustomizationUpdateModel: Partial update contracts
"""

from .sql_generator import PydanticToSQL, SCHEMA_MODELS
from .deployer import SchemaManager, SchemaManagementError

from .queue import (
    CustomizationEventMessage,
    RejectedEventMessage
)

from .updates import (
    UserUpdateModel,
    ProjectUpdateModel,
    FloorPlanUpdateModel,
    CustomizationUpdateModel
)

__all__ = [
    'PydanticToSQL',
    'SCHEMA_MODELS',
    'SchemaManager',
    'SchemaManagementError',
    'CustomizationEventMessage',
    'RejectedEventMessage',
    'UserUpdateModel',
    'ProjectUpdateModel',
    'FloorPlanUpdateModel',
    'CustomizationUpdateModel',
]
