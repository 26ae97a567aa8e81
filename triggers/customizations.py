"""
Customization HTTP Triggers (synchronous CRUD).

Collection routes hang off the parent floor plan:

    GET    /api/floorplans/{floor_plan_id}/customizations   list
    POST   /api/floorplans/{floor_plan_id}/customizations   create (201)
    GET    /api/customizations/{customization_id}
    PATCH  /api/customizations/{customization_id}
    DELETE /api/customizations/{customization_id}

Asynchronous changes go through POST /api/customizations/events instead
(triggers.customization_events).

Exports:
    CustomizationTrigger
    customization_trigger: Singleton instance
"""

from typing import Dict, Any

import azure.functions as func

from core.models import CustomizationRecord
from core.schema.updates import CustomizationUpdateModel
from exceptions import ResourceNotFoundError

from .http_base import CrudTrigger


class CustomizationTrigger(CrudTrigger):
    id_param = "customization_id"

    def __init__(self, repositories=None):
        super().__init__("customizations", repositories)

    @property
    def customizations(self):
        return self.repositories["customization_repo"]

    def _require_floor_plan(self, req: func.HttpRequest) -> int:
        floor_plan_id = self.parse_int(req.route_params.get("floor_plan_id"), "floor_plan_id")
        if self.repositories["floor_plan_repo"].get_floor_plan(floor_plan_id) is None:
            raise ResourceNotFoundError(f"Floor plan {floor_plan_id} not found")
        return floor_plan_id

    def list_items(self, req: func.HttpRequest) -> Dict[str, Any]:
        floor_plan_id = self._require_floor_plan(req)
        page = self.get_pagination(req)
        items = self.customizations.list_customizations(floor_plan_id=floor_plan_id, **page)
        return {
            "floor_plan_id": floor_plan_id,
            "customizations": self.serialize(items),
            "count": len(items),
            **page,
        }

    def create_item(self, req: func.HttpRequest, body: Dict[str, Any]) -> Dict[str, Any]:
        floor_plan_id = self._require_floor_plan(req)
        data = self.strip_server_fields(body, "customization_id", "source_event_id", "floor_plan_id")
        record = CustomizationRecord.model_validate({**data, "floor_plan_id": floor_plan_id})
        created = self.customizations.create_customization(record)
        self.logger.info(
            f"🧩 Created {created.component_type} customization {created.customization_id} "
            f"on floor plan {floor_plan_id}"
        )
        return {"customization": self.serialize(created)}

    def get_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        item = self.customizations.get_customization(item_id)
        if item is None:
            raise ResourceNotFoundError(f"Customization {item_id} not found")
        return {"customization": self.serialize(item)}

    def update_item(self, req: func.HttpRequest, item_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        updated = self.customizations.update_customization(item_id, CustomizationUpdateModel.model_validate(body))
        if updated is None:
            raise ResourceNotFoundError(f"Customization {item_id} not found")
        return {"customization": self.serialize(updated)}

    def delete_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        if not self.customizations.delete_customization(item_id):
            raise ResourceNotFoundError(f"Customization {item_id} not found")
        self.logger.info(f"🗑️ Deleted customization {item_id}")
        return {"deleted": True, "customization_id": item_id}


customization_trigger = CustomizationTrigger()
