"""
Processed Event Model - Persistence Boundary.

Ledger of create events the queue consumer has applied. Rows outlive the
customization they created, so a create replayed after the customization
was deleted is still recognised as a duplicate.

Exports:
    ProcessedEventRecord: Row in the processed_events table
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, ClassVar
from pydantic import BaseModel, Field, ConfigDict

from .enums import EventType


class ProcessedEventRecord(BaseModel):
    """
    One applied event.

    No foreign key to customizations: deleting the customization must
    leave the ledger entry in place.
    """

    model_config = ConfigDict(use_enum_values=True)

    __sql_table_name: ClassVar[str] = "processed_events"
    __sql_primary_key: ClassVar[List[str]] = ["event_id"]
    __sql_identity: ClassVar[bool] = False
    __sql_unique: ClassVar[List[List[str]]] = []
    __sql_foreign_keys: ClassVar[Dict[str, str]] = {}
    __sql_indexes: ClassVar[List[Dict[str, Any]]] = [
        {"columns": ["processed_at"], "name": "idx_processed_events_processed_at", "descending": True},
    ]

    event_id: str = Field(..., min_length=1, max_length=64)
    event_type: EventType = Field(...)
    customization_id: Optional[int] = Field(default=None, description="Customization the event created")
    processed_at: Optional[datetime] = Field(default=None)
