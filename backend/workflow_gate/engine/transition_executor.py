"""Transition Executor - Permission-gated state changes of workflow instances"""
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..domain.models import ActorContext, WorkflowHistoryEntry, TransitionResult, PermissionResult
from ..domain.enums import InstanceStatus, HistoryAction
from ..domain.errors import InvalidStateError, PermissionDeniedError
from ..repositories.instance_repo import InstanceRepository
from ..repositories.workflow_repo import WorkflowRepository
from .permission_evaluator import PermissionEvaluator
from .audit_writer import AuditWriter
from ..utils.idgen import generate_history_id
from ..utils.time import utc_now
from ..utils.logger import get_logger

logger = get_logger(__name__)


def merge_context(*layers: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Shallow union of context mappings; later layers win per key"""
    merged: Dict[str, Any] = {}
    for layer in layers:
        if layer:
            merged.update(layer)
    return merged


class TransitionExecutor:
    """
    Move an instance to a requested step

    Flow:
    1. Load instance (must exist and be active)
    2. Load the target step by name within the instance's workflow
    3. Evaluate permission against instance context + request context
    4. Denied -> audit entry only, instance untouched
    5. Allowed -> compare-and-swap update, history entry, audit entry

    Any active step of the same workflow is reachable; no transition graph
    is consulted.
    """

    def __init__(
        self,
        instance_repo: Optional[InstanceRepository] = None,
        workflow_repo: Optional[WorkflowRepository] = None,
        permission_evaluator: Optional[PermissionEvaluator] = None,
        audit_writer: Optional[AuditWriter] = None,
        clock: Callable[[], datetime] = utc_now
    ):
        self.instance_repo = instance_repo or InstanceRepository()
        self.workflow_repo = workflow_repo or WorkflowRepository()
        self.permission_evaluator = permission_evaluator or PermissionEvaluator()
        self.audit_writer = audit_writer or AuditWriter()
        self._clock = clock

    def transition(
        self,
        instance_id: str,
        target_state: str,
        actor_role: str,
        actor: ActorContext,
        context: Optional[Dict[str, Any]] = None,
        reason: Optional[str] = None
    ) -> TransitionResult:
        """
        Transition an instance to target_state

        Raises:
            InstanceNotFoundError: Instance does not exist
            InvalidStateError: Instance is not active
            StepNotFoundError: No active step named target_state in the workflow
            PermissionDeniedError: Evaluator refused (reasons in details)
            ConcurrencyError: Instance changed between read and write
        """
        request_context = dict(context or {})
        log_extra = {"instance_id": instance_id, "actor_id": actor.user_id, "actor_role": actor_role}

        instance = self.instance_repo.get_instance_or_raise(instance_id)

        if instance.status != InstanceStatus.ACTIVE:
            raise InvalidStateError(
                "Workflow instance is not in active state",
                details={"instance_id": instance_id, "status": instance.status.value}
            )

        target_step = self.workflow_repo.get_active_step_by_name_or_raise(
            instance.workflow_id, target_state
        )

        permission = self.permission_evaluator.evaluate(
            actor.user_id,
            target_step.step_id,
            actor_role,
            merge_context(instance.context_data, request_context)
        )

        if not permission.allowed:
            self.audit_writer.write_permission_denied(
                instance_id=instance_id,
                workflow_step_id=target_step.step_id,
                actor=actor,
                actor_role=actor_role,
                reasons=permission.reasons,
                context=request_context
            )
            logger.info(
                f"Transition to '{target_state}' denied",
                extra={**log_extra, "step_id": target_step.step_id, "result": "denied"}
            )
            raise PermissionDeniedError(
                "Permission denied",
                reasons=permission.reasons,
                details={"instance_id": instance_id, "target_state": target_state}
            )

        now = self._clock()
        updated_context = merge_context(
            instance.context_data,
            request_context,
            self._transition_metadata(actor, actor_role, permission, reason)
        )

        updated = self.instance_repo.update_instance(
            instance_id,
            {
                "current_state": target_state,
                "context_data": updated_context,
                "updated_at": now,
            },
            expected_version=instance.version
        )

        self.instance_repo.append_history(WorkflowHistoryEntry(
            history_id=generate_history_id(),
            instance_id=instance_id,
            from_state=instance.current_state,
            to_state=target_state,
            action=HistoryAction.TRANSITION,
            context_data=request_context,
            performed_by=actor.user_id,
            actor_role=actor_role,
            reason=reason,
            performed_at=now,
            sequence=updated.version
        ))

        self.audit_writer.write_transition(
            instance_id=instance_id,
            actor=actor,
            from_state=instance.current_state,
            to_state=target_state,
            actor_role=actor_role,
            context=request_context,
            timestamp=now
        )

        logger.info(
            f"Transitioned {instance.current_state} -> {target_state}",
            extra={**log_extra, "workflow_id": instance.workflow_id, "result": "success"}
        )

        return TransitionResult(
            instance_id=instance_id,
            new_state=target_state,
            context=updated_context,
            timestamp=now
        )

    def _transition_metadata(
        self,
        actor: ActorContext,
        actor_role: str,
        permission: PermissionResult,
        reason: Optional[str]
    ) -> Dict[str, Any]:
        """Keys the executor records in the context on every committed transition"""
        return {
            "performed_by": actor.user_id,
            "actor_role": actor_role,
            "permission_context": [
                matched.model_dump(mode="json") for matched in permission.matched_permissions
            ],
            "transition_reason": reason,
        }
