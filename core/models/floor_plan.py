"""
Floor Plan Database Model - Persistence Boundary.

Exports:
    FloorPlanRecord: Row in the floor_plans table
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict


class FloorPlanRecord(BaseModel):
    """
    Database representation of a floor plan.

    file_path and thumbnail_path point at the layout assets in blob
    storage; this service never reads them.
    """

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    __sql_table_name: ClassVar[str] = "floor_plans"
    __sql_primary_key: ClassVar[List[str]] = ["floor_plan_id"]
    __sql_identity: ClassVar[bool] = True
    __sql_unique: ClassVar[List[List[str]]] = []
    __sql_foreign_keys: ClassVar[Dict[str, str]] = {"project_id": "projects.project_id"}
    __sql_indexes: ClassVar[List[Dict[str, Any]]] = [
        {"columns": ["project_id"], "name": "idx_floor_plans_project"},
    ]

    floor_plan_id: Optional[int] = Field(default=None, description="Identity primary key")
    project_id: int = Field(..., gt=0, description="Parent project")
    name: str = Field(..., min_length=1, max_length=200)
    file_path: Optional[str] = Field(default=None, max_length=500, description="Layout asset path")
    thumbnail_path: Optional[str] = Field(default=None, max_length=500, description="Thumbnail asset path")

    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)
