"""
Repository Update Models - Contract Enforcement

Strongly-typed Pydantic models for partial updates (HTTP PATCH and
"updated" queue events). Only the fields a caller actually sends are
written: repositories build their SET clause from
to_dict(exclude_unset=True).

Identity and parent keys (user_id, owner_id, project_id, floor_plan_id)
are not updatable. extra='forbid' turns an attempt into a validation
error.
"""

from typing import Dict, Any, Optional, Tuple, ClassVar
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator

from ..models import UserRole


class _UpdateModel(BaseModel):
    """Shared configuration and serialization for update contracts."""

    model_config = ConfigDict(
        use_enum_values=True,  # Auto-convert enums to their string values
        validate_assignment=True,  # Validate on field assignment
        extra='forbid'  # Prevent unknown fields
    )

    # Columns that are NOT NULL in the table; an explicit null is rejected
    non_nullable: ClassVar[Tuple[str, ...]] = ()

    @model_validator(mode='after')
    def reject_null_for_required_columns(self):
        for name in self.model_fields_set:
            if name in self.non_nullable and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self

    def to_dict(self, exclude_unset: bool = True) -> Dict[str, Any]:
        """Convert to dictionary for SQL operations."""
        return self.model_dump(exclude_unset=exclude_unset, mode='json')

    def is_empty(self) -> bool:
        return not self.to_dict()


class UserUpdateModel(_UpdateModel):
    """Fields a user may change on their account."""

    non_nullable: ClassVar[Tuple[str, ...]] = ("name", "email", "role")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, min_length=3, max_length=255)
    role: Optional[UserRole] = None

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if '@' not in v:
            raise ValueError(f"invalid email address: {v!r}")
        return v


class ProjectUpdateModel(_UpdateModel):
    non_nullable: ClassVar[Tuple[str, ...]] = ("name",)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None


class FloorPlanUpdateModel(_UpdateModel):
    non_nullable: ClassVar[Tuple[str, ...]] = ("name",)

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    file_path: Optional[str] = Field(None, max_length=500)
    thumbnail_path: Optional[str] = Field(None, max_length=500)


class CustomizationUpdateModel(_UpdateModel):
    """
    Partial customization update.

    properties replaces the whole bag; there is no key-level merge.
    """

    non_nullable: ClassVar[Tuple[str, ...]] = ("component_type", "properties", "position_x", "position_y")

    component_type: Optional[str] = Field(None, min_length=1, max_length=50)
    properties: Optional[Dict[str, Any]] = None
    position_x: Optional[float] = None
    position_y: Optional[float] = None

    @field_validator('component_type')
    @classmethod
    def normalize_component_type(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v


__all__ = [
    'UserUpdateModel',
    'ProjectUpdateModel',
    'FloorPlanUpdateModel',
    'CustomizationUpdateModel'
]
