"""Permission Repository - Step-scoped permission rules joined to actor roles"""
from typing import List, Optional
from pymongo.collection import Collection
from pymongo.database import Database

from .mongo_client import get_collection
from ..domain.models import WorkflowActor, WorkflowPermission
from ..utils.logger import get_logger

logger = get_logger(__name__)


class PermissionRepository:
    """Repository for workflow_permissions and the workflow_actors they reference"""

    def __init__(self, db: Optional[Database] = None):
        self._actors: Collection = get_collection("workflow_actors", db)
        self._permissions: Collection = get_collection("workflow_permissions", db)

    def get_active_permissions(self, workflow_step_id: str, actor_role: str) -> List[WorkflowPermission]:
        """
        Get active permission rules for a step, restricted to an actor role

        The role name lives on workflow_actors; rules reference actors by id.
        """
        actors = [
            WorkflowActor.model_validate(doc)
            for doc in self._actors.find({"name": actor_role})
        ]
        actor_ids = [actor.actor_id for actor in actors]
        if not actor_ids:
            return []

        cursor = self._permissions.find({
            "workflow_step_id": workflow_step_id,
            "workflow_actor_id": {"$in": actor_ids},
            "is_active": True
        })

        permissions = []
        for doc in cursor:
            doc.pop("_id", None)
            doc["actor_role"] = actor_role
            permissions.append(WorkflowPermission.model_validate(doc))
        return permissions
