"""
Project Database Model - Persistence Boundary.

Exports:
    ProjectRecord: Row in the projects table
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict


class ProjectRecord(BaseModel):
    """
    Database representation of a project.

    A project belongs to exactly one user (owner_id). Deleting the user
    deletes the project and everything under it.
    """

    model_config = ConfigDict(validate_assignment=True, str_strip_whitespace=True)

    __sql_table_name: ClassVar[str] = "projects"
    __sql_primary_key: ClassVar[List[str]] = ["project_id"]
    __sql_identity: ClassVar[bool] = True
    __sql_unique: ClassVar[List[List[str]]] = []
    __sql_foreign_keys: ClassVar[Dict[str, str]] = {"owner_id": "users.user_id"}
    __sql_indexes: ClassVar[List[Dict[str, Any]]] = [
        {"columns": ["owner_id"], "name": "idx_projects_owner"},
    ]

    project_id: Optional[int] = Field(default=None, description="Identity primary key")
    owner_id: int = Field(..., gt=0, description="Owning user")
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(default=None)

    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)
