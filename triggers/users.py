"""
User HTTP Triggers.

    POST   /api/users                 create (201)
    GET    /api/users?limit=&offset=  list
    GET    /api/users/{user_id}       read
    PATCH  /api/users/{user_id}       partial update
    DELETE /api/users/{user_id}       delete (cascades to projects)

Exports:
    UserTrigger
    user_trigger: Singleton instance
"""

from typing import Dict, Any

import azure.functions as func

from core.models import UserRecord
from core.schema.updates import UserUpdateModel
from exceptions import ResourceNotFoundError

from .http_base import CrudTrigger


class UserTrigger(CrudTrigger):
    id_param = "user_id"

    def __init__(self, repositories=None):
        super().__init__("users", repositories)

    @property
    def users(self):
        return self.repositories["user_repo"]

    def list_items(self, req: func.HttpRequest) -> Dict[str, Any]:
        page = self.get_pagination(req)
        users = self.users.list_users(limit=page["limit"], offset=page["offset"])
        return {"users": self.serialize(users), "count": len(users), **page}

    def create_item(self, req: func.HttpRequest, body: Dict[str, Any]) -> Dict[str, Any]:
        user = UserRecord.model_validate(self.strip_server_fields(body, "user_id"))
        created = self.users.create_user(user)
        self.logger.info(f"👤 Created user {created.user_id}")
        return {"user": self.serialize(created)}

    def get_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        user = self.users.get_user(item_id)
        if user is None:
            raise ResourceNotFoundError(f"User {item_id} not found")
        return {"user": self.serialize(user)}

    def update_item(self, req: func.HttpRequest, item_id: int, body: Dict[str, Any]) -> Dict[str, Any]:
        updated = self.users.update_user(item_id, UserUpdateModel.model_validate(body))
        if updated is None:
            raise ResourceNotFoundError(f"User {item_id} not found")
        return {"user": self.serialize(updated)}

    def delete_item(self, req: func.HttpRequest, item_id: int) -> Dict[str, Any]:
        if not self.users.delete_user(item_id):
            raise ResourceNotFoundError(f"User {item_id} not found")
        self.logger.info(f"🗑️ Deleted user {item_id}")
        return {"deleted": True, "user_id": item_id}


user_trigger = UserTrigger()
