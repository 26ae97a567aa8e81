"""
Customization Database Model - Persistence Boundary.

A customization is one placed or edited component on a floor plan:
a wall, a door, a window. Its property bag is stored as JSONB and is
never inspected.

Exports:
    CustomizationRecord: Row in the customizations table
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict, field_validator


class CustomizationRecord(BaseModel):
    """
    Database representation of a customization.

    source_event_id is the event_id of the queue message that created
    the row. It is unique, which makes a redelivered create a no-op.
    Rows created directly through the CRUD API leave it NULL.
    """

    model_config = ConfigDict(validate_assignment=True)

    __sql_table_name: ClassVar[str] = "customizations"
    __sql_primary_key: ClassVar[List[str]] = ["customization_id"]
    __sql_identity: ClassVar[bool] = True
    __sql_unique: ClassVar[List[List[str]]] = [["source_event_id"]]
    __sql_foreign_keys: ClassVar[Dict[str, str]] = {"floor_plan_id": "floor_plans.floor_plan_id"}
    __sql_indexes: ClassVar[List[Dict[str, Any]]] = [
        {"columns": ["floor_plan_id"], "name": "idx_customizations_floor_plan"},
        {"columns": ["component_type"], "name": "idx_customizations_component"},
    ]

    customization_id: Optional[int] = Field(default=None, description="Identity primary key")
    floor_plan_id: int = Field(..., gt=0, description="Parent floor plan")
    component_type: str = Field(..., min_length=1, max_length=50, description="wall, door, window, ...")
    properties: Dict[str, Any] = Field(default_factory=dict, description="Opaque component properties")
    position_x: float = Field(..., description="X position on the plan")
    position_y: float = Field(..., description="Y position on the plan")
    source_event_id: Optional[str] = Field(default=None, max_length=64, description="Event that created the row")

    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    @field_validator('component_type')
    @classmethod
    def normalize_component_type(cls, v: str) -> str:
        v = v.strip().lower()
        if not v:
            raise ValueError("component_type cannot be blank")
        return v
