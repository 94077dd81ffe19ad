"""Instance Lifecycle Controller - Creation and status changes outside the step graph"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..config.settings import settings
from ..domain.models import ActorContext, WorkflowInstance
from ..domain.enums import InstanceStatus
from ..repositories.instance_repo import InstanceRepository
from ..repositories.workflow_repo import WorkflowRepository
from .audit_writer import AuditWriter
from ..utils.idgen import generate_instance_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


class InstanceLifecycleController:
    """
    Create instances and pause / resume / cancel them

    Status changes are not permission-evaluated; they are audited.
    """

    def __init__(
        self,
        instance_repo: Optional[InstanceRepository] = None,
        workflow_repo: Optional[WorkflowRepository] = None,
        audit_writer: Optional[AuditWriter] = None,
        initial_state_fallback: Optional[str] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.instance_repo = instance_repo or InstanceRepository()
        self.workflow_repo = workflow_repo or WorkflowRepository()
        self.audit_writer = audit_writer or AuditWriter()
        self.initial_state_fallback = initial_state_fallback or settings.initial_state_fallback
        self._clock = clock

    def create_instance(
        self,
        workflow_id: str,
        organization_id: str,
        actor: ActorContext,
        initial_context: Optional[Dict[str, Any]] = None
    ) -> WorkflowInstance:
        """
        Start a new instance of an active workflow

        The initial state is the first active step by ordering index, or the
        configured fallback when the workflow has no steps.

        Raises:
            WorkflowNotFoundError: Workflow missing or inactive
        """
        workflow = self.workflow_repo.get_active_workflow_or_raise(workflow_id)

        first_step = self.workflow_repo.get_first_active_step(workflow.workflow_id)
        initial_state = first_step.step_name if first_step else self.initial_state_fallback

        now = self._clock()
        instance = WorkflowInstance(
            instance_id=generate_instance_id(),
            workflow_id=workflow.workflow_id,
            current_state=initial_state,
            status=InstanceStatus.ACTIVE,
            context_data=dict(initial_context or {}),
            organization_id=organization_id,
            initiator_user_id=actor.user_id,
            created_at=now,
            updated_at=now,
            version=1
        )
        instance = self.instance_repo.create_instance(instance)

        self.audit_writer.write_instance_created(
            instance_id=instance.instance_id,
            actor=actor,
            workflow_id=workflow.workflow_id,
            organization_id=organization_id,
            initial_context=initial_context,
            timestamp=now
        )
        return instance

    def pause(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        """Pause an instance"""
        return self._change_status(instance_id, actor, InstanceStatus.PAUSED)

    def resume(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        """Resume a paused instance"""
        return self._change_status(instance_id, actor, InstanceStatus.ACTIVE)

    def cancel(self, instance_id: str, actor: ActorContext) -> WorkflowInstance:
        """Cancel an instance"""
        return self._change_status(instance_id, actor, InstanceStatus.CANCELLED)

    def _change_status(
        self,
        instance_id: str,
        actor: ActorContext,
        status: InstanceStatus
    ) -> WorkflowInstance:
        current = self.instance_repo.get_instance_or_raise(instance_id)
        now = self._clock()

        updated = self.instance_repo.update_instance(
            instance_id,
            {"status": status.value, "updated_at": now},
            expected_version=current.version
        )

        self.audit_writer.write_status_change(
            instance_id=instance_id,
            actor=actor,
            status=status,
            previous_status=current.status,
            timestamp=now
        )
        logger.info(
            f"Instance status changed {current.status.value} -> {status.value}",
            extra={"instance_id": instance_id, "actor_id": actor.user_id, "status": status.value}
        )
        return updated
