"""
Floor Plan HTTP Triggers.

    POST   /api/floorplans                     create (project must exist)
    GET    /api/floorplans?project_id=         list
    GET    /api/floorplans/{floor_plan_id}
    PATCH  /api/floorplans/{floor_plan_id}
    DELETE /api/floorplans/{floor_plan_id}     cascades to customizations

A plan's customizations are served by triggers.customizations.

Exports:
    FloorPlanTrigger
    floor_plan_trigger: Singleton instance
"""

from typing import Dict, Any

import azure.functions as func

from core.models import FloorPlanRecord
from core.schema.updates import FloorPlanUpdateModel
from exceptions import ResourceNotFoundError, ValidationError

from .http_base import CrudTrigger


class FloorPlanTrigger(CrudTrigger):
    id_param = "floor_plan_id"

    def __init__(self, repositories=None):
        super().__init__("floor_plans", repositories)

    @property
    def floor_plans(self):
        return self.repositories["floor_plan_repo"]

    def list_items(self, req: func.HttpRequest) -> Dict[str, Any]:
        page = self.get_pagination(req)
        project_id = self.get_int_param(req, "project_id", minimum=1)
        plans = self.floor_plans.list_floor_plans(project_id=project_id, **page)
        return {"floor_plans": self.serialize(plans), "count": len(plans), "project_id": project_id, **page}

    def create_item(self, req: func.HttpRequest, body: Dict[str, Any]) -> Dict[str, Any]:
        plan = FloorPlanRecord.model_validate(self.strip_server_fields(body, "floor_plan_id"))
        if self.repositories["project_repo"].get_project(plan.project_id) is None:
            raise ValidationError(f"Project {plan.project_id} does not exist")
        created = self.floor_plans.create_floor_plan(plan)
        self.logger.info(f"📐 Created floor plan {created.floor_plan_id} in project {created.project_id}")
        return {"floor_plan": self.serialize(created)}

    def get_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        plan = self.floor_plans.get_floor_plan(item_id)
        if plan is None:
            raise ResourceNotFoundError(f"Floor plan {item_id} not found")
        return {"floor_plan": self.serialize(plan)}

    def update_item(self, req: func.HttpRequest, item_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        updated = self.floor_plans.update_floor_plan(item_id, FloorPlanUpdateModel.model_validate(body))
        if updated is None:
            raise ResourceNotFoundError(f"Floor plan {item_id} not found")
        return {"floor_plan": self.serialize(updated)}

    def delete_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        if not self.floor_plans.delete_floor_plan(item_id):
            raise ResourceNotFoundError(f"Floor plan {item_id} not found")
        self.logger.info(f"🗑️ Deleted floor plan {item_id}")
        return {"deleted": True, "floor_plan_id": item_id}


floor_plan_trigger = FloorPlanTrigger()
