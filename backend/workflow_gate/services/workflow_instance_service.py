"""Workflow Instance Service - Business operations over workflow instances"""
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from pymongo.database import Database

from ..config.settings import settings
from ..domain.models import (
    ActorContext, WorkflowInstance, WorkflowHistoryEntry, WorkflowWithSteps,
    PermissionResult, TransitionResult
)
from ..domain.enums import InstanceStatus
from ..engine.time_constraint_evaluator import TimeConstraintEvaluator
from ..engine.condition_evaluator import ConditionEvaluator
from ..engine.permission_evaluator import PermissionEvaluator
from ..engine.audit_writer import AuditWriter
from ..engine.transition_executor import TransitionExecutor
from ..engine.lifecycle_controller import InstanceLifecycleController
from ..repositories.mongo_client import get_database
from ..repositories.workflow_repo import WorkflowRepository
from ..repositories.permission_repo import PermissionRepository
from ..repositories.organization_repo import OrganizationRepository
from ..repositories.instance_repo import InstanceRepository
from ..repositories.audit_repo import AuditRepository
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class WorkflowInstanceService:
    """Service wiring the engine components over one database"""

    def __init__(
        self,
        db: Optional[Database] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        if db is None:
            db = get_database()

        self.workflow_repo = WorkflowRepository(db)
        self.instance_repo = InstanceRepository(db)
        self.audit_repo = AuditRepository(db)

        self.permission_evaluator = PermissionEvaluator(
            organization_repo=OrganizationRepository(db),
            permission_repo=PermissionRepository(db),
            condition_evaluator=ConditionEvaluator(TimeConstraintEvaluator(clock=clock))
        )
        audit_writer = AuditWriter(self.audit_repo)
        self.executor = TransitionExecutor(
            instance_repo=self.instance_repo,
            workflow_repo=self.workflow_repo,
            permission_evaluator=self.permission_evaluator,
            audit_writer=audit_writer,
            clock=clock
        )
        self.lifecycle = InstanceLifecycleController(
            instance_repo=self.instance_repo,
            workflow_repo=self.workflow_repo,
            audit_writer=audit_writer,
            clock=clock
        )

    # =========================================================================
    # Mutations
    # =========================================================================

    def create_instance(
        self,
        workflow_id: str,
        organization_id: str,
        actor: ActorContext,
        initial_context: Optional[Dict[str, Any]] = None
    ) -> WorkflowInstance:
        """Create a workflow instance"""
        return self.lifecycle.create_instance(workflow_id, organization_id, actor, initial_context)

    def transition(
        self,
        instance_id: str,
        target_state: str,
        actor_role: str,
        actor: ActorContext,
        context: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None
    ) -> TransitionResult:
        """Transition an instance to a target step"""
        return self.executor.transition(
            instance_id=instance_id,
            target_state=target_state,
            actor_role=actor_role,
            actor=actor,
            context=context,
            reason=reason
        )

    def pause_instance(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        return self.lifecycle.pause(instance_id, actor)

    def resume_instance(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        return self.lifecycle.resume(instance_id, actor)

    def cancel_instance(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        return self.lifecycle.cancel(instance_id, actor)

    # =========================================================================
    # Queries
    # =========================================================================

    def check_permission(
        self,
        workflow_step_id: str,
        actor_role: str,
        actor: ActorContext,
        context: Optional[Dict[str, Any]] = None
    ) -> PermissionResult:
        """Dry-run the permission evaluator; nothing is written"""
        return self.permission_evaluator.evaluate(
            actor.user_id, workflow_step_id, actor_role, dict(context or {})
        )

    def get_instance(self, instance_id: str) -> WorkflowInstance:
        return self.instance_repo.get_instance_or_raise(instance_id)

    def list_instances(
        self,
        organization_id: Optional[str] = None,
        status: Optional[InstanceStatus] = None,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[WorkflowInstance]:
        """List instances newest first, limit clamped to the configured maximum"""
        if limit is None:
            limit = settings.default_page_size
        limit = max(1, min(limit, settings.max_page_size))
        return self.instance_repo.list_instances(
            organization_id=organization_id,
            status=status,
            skip=max(0, offset),
            limit=limit
        )

    def count_instances(
        self,
        organization_id: Optional[str] = None,
        status: Optional[InstanceStatus] = None
    ) -> int:
        return self.instance_repo.count_instances(organization_id=organization_id, status=status)

    def list_history(self, instance_id: str) -> List[WorkflowHistoryEntry]:
        """History of an instance, most recent first"""
        return self.instance_repo.list_history(instance_id)

    def list_workflows(self) -> List[WorkflowWithSteps]:
        """Active workflows with their active steps"""
        return self.workflow_repo.list_active_workflows()
