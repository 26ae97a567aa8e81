"""
User Database Model - Persistence Boundary.

Exports:
    UserRecord: Row in the users table
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict, field_validator

from .enums import UserRole


class UserRecord(BaseModel):
    """
    Database representation of a user.

    user_id is assigned by the database; leave it None when creating.
    Emails are stored lower-cased and are unique.
    """

    model_config = ConfigDict(
        use_enum_values=True,
        validate_assignment=True,
        str_strip_whitespace=True
    )

    # DDL generation hints (ClassVar = not a model field)
    __sql_table_name: ClassVar[str] = "users"
    __sql_primary_key: ClassVar[List[str]] = ["user_id"]
    __sql_identity: ClassVar[bool] = True
    __sql_unique: ClassVar[List[List[str]]] = [["email"]]
    __sql_foreign_keys: ClassVar[Dict[str, str]] = {}
    __sql_indexes: ClassVar[List[Dict[str, Any]]] = [
        {"columns": ["role"], "name": "idx_users_role"},
    ]

    user_id: Optional[int] = Field(default=None, description="Identity primary key")
    name: str = Field(..., min_length=1, max_length=100, description="Display name")
    email: str = Field(..., min_length=3, max_length=255, description="Unique login email")
    role: UserRole = Field(default=UserRole.CUSTOMER, description="Account role")

    created_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)

    @field_validator('email')
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip().lower()
        local, _, domain = v.partition('@')
        if not local or not domain:
            raise ValueError(f"invalid email address: {v!r}")
        return v
