"""
Project HTTP Triggers.

    POST   /api/projects                  create (owner must exist)
    GET    /api/projects?owner_id=        list
    GET    /api/projects/{project_id}
    PATCH  /api/projects/{project_id}
    DELETE /api/projects/{project_id}     cascades to floor plans

Exports:
    ProjectTrigger
    project_trigger: Singleton instance
"""

from typing import Dict, Any

import azure.functions as func

from core.models import ProjectRecord
from core.schema.updates import ProjectUpdateModel
from exceptions import ResourceNotFoundError, ValidationError

from .http_base import CrudTrigger


class ProjectTrigger(CrudTrigger):
    id_param = "project_id"

    def __init__(self, repositories=None):
        super().__init__("projects", repositories)

    @property
    def projects(self):
        return self.repositories["project_repo"]

    def list_items(self, req: func.HttpRequest) -> Dict[str, Any]:
        page = self.get_pagination(req)
        owner_id = self.get_int_param(req, "owner_id", minimum=1)
        projects = self.projects.list_projects(owner_id=owner_id, **page)
        return {"projects": self.serialize(projects), "count": len(projects), "owner_id": owner_id, **page}

    def create_item(self, req: func.HttpRequest, body: Dict[str, Any]) -> Dict[str, Any]:
        project = ProjectRecord.model_validate(self.strip_server_fields(body, "project_id"))
        if self.repositories["user_repo"].get_user(project.owner_id) is None:
            raise ValidationError(f"Owner {project.owner_id} does not exist")
        created = self.projects.create_project(project)
        self.logger.info(f"📁 Created project {created.project_id} for user {created.owner_id}")
        return {"project": self.serialize(created)}

    def get_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        project = self.projects.get_project(item_id)
        if project is None:
            raise ResourceNotFoundError(f"Project {item_id} not found")
        return {"project": self.serialize(project)}

    def update_item(self, req: func.HttpRequest, item_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        updated = self.projects.update_project(item_id, ProjectUpdateModel.model_validate(body))
        if updated is None:
            raise ResourceNotFoundError(f"Project {item_id} not found")
        return {"project": self.serialize(updated)}

    def delete_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        if not self.projects.delete_project(item_id):
            raise ResourceNotFoundError(f"Project {item_id} not found")
        self.logger.info(f"🗑️ Deleted project {item_id}")
        return {"deleted": True, "project_id": item_id}


project_trigger = ProjectTrigger()
