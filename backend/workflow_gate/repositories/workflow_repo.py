"""Workflow Repository - Data access for workflows and their steps"""
from typing import Dict, List, Optional
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo import ASCENDING

from .mongo_client import get_collection
from ..domain.models import Workflow, WorkflowStep, WorkflowWithSteps
from ..domain.errors import WorkflowNotFoundError, StepNotFoundError
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowRepository:
    """Repository for the workflow catalog (read-only for the engine)"""

    def __init__(self, db: Optional[Database] = None):
        self._workflows: Collection = get_collection("workflows", db)
        self._steps: Collection = get_collection("workflow_steps", db)

    # =========================================================================
    # Workflows
    # =========================================================================

    def get_active_workflow(self, workflow_id: str) -> Optional[Workflow]:
        """Get workflow by ID if it exists and is active"""
        doc = self._workflows.find_one({"workflow_id": workflow_id, "is_active": True})
        if doc:
            doc.pop("_id", None)
            return Workflow.model_validate(doc)
        return None

    def get_active_workflow_or_raise(self, workflow_id: str) -> Workflow:
        """Get active workflow by ID or raise error"""
        workflow = self.get_active_workflow(workflow_id)
        if not workflow:
            raise WorkflowNotFoundError(
                "Workflow not found or inactive",
                details={"workflow_id": workflow_id}
            )
        return workflow

    def list_active_workflows(self) -> List[WorkflowWithSteps]:
        """List active workflows ordered by name, each with its active steps"""
        workflows = []
        for doc in self._workflows.find({"is_active": True}).sort("name", ASCENDING):
            doc.pop("_id", None)
            workflows.append(WorkflowWithSteps.model_validate(doc))

        if not workflows:
            return workflows

        steps_by_workflow: Dict[str, List[WorkflowStep]] = {}
        cursor = self._steps.find({
            "workflow_id": {"$in": [w.workflow_id for w in workflows]},
            "is_active": True
        }).sort("step_order", ASCENDING)
        for doc in cursor:
            doc.pop("_id", None)
            step = WorkflowStep.model_validate(doc)
            steps_by_workflow.setdefault(step.workflow_id, []).append(step)

        for workflow in workflows:
            workflow.steps = steps_by_workflow.get(workflow.workflow_id, [])
        return workflows

    # =========================================================================
    # Steps
    # =========================================================================

    def get_first_active_step(self, workflow_id: str) -> Optional[WorkflowStep]:
        """Get the active step with the lowest ordering index"""
        cursor = self._steps.find(
            {"workflow_id": workflow_id, "is_active": True}
        ).sort("step_order", ASCENDING).limit(1)
        for doc in cursor:
            doc.pop("_id", None)
            return WorkflowStep.model_validate(doc)
        return None

    def get_active_step_by_name(self, workflow_id: str, step_name: str) -> Optional[WorkflowStep]:
        """Get an active step of the workflow by its name"""
        doc = self._steps.find_one({
            "workflow_id": workflow_id,
            "step_name": step_name,
            "is_active": True
        })
        if doc:
            doc.pop("_id", None)
            return WorkflowStep.model_validate(doc)
        return None

    def get_active_step_by_name_or_raise(self, workflow_id: str, step_name: str) -> WorkflowStep:
        """Get active step by name or raise error"""
        step = self.get_active_step_by_name(workflow_id, step_name)
        if not step:
            raise StepNotFoundError(
                "Target workflow step not found",
                details={"workflow_id": workflow_id, "step_name": step_name}
            )
        return step
