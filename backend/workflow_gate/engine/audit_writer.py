"""Audit Writer - Append-only audit log entries"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..domain.models import AuditLogEntry, ActorContext
from ..domain.enums import AuditEventType, AuditResult, AuditResourceType, InstanceStatus
from ..repositories.audit_repo import AuditRepository
from ..utils.idgen import generate_audit_id
from ..utils.time import utc_now
from ..utils.logger import get_correlation_id


class AuditWriter:
    """
    Write audit entries (append-only)

    Every creation, transition attempt and status change produces an entry.
    """

    def __init__(self, repo: Optional[AuditRepository] = None):
        self.repo = repo or AuditRepository()

    def write_entry(
        self,
        event_type: AuditEventType,
        actor: ActorContext,
        resource_type: AuditResourceType,
        resource_id: str,
        action: str,
        result: AuditResult,
        instance_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None
    ) -> AuditLogEntry:
        """Write a single audit entry"""
        entry = AuditLogEntry(
            audit_id=generate_audit_id(),
            event_type=event_type,
            user_id=actor.user_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=action,
            result=result,
            details=details or {},
            workflow_instance_id=instance_id,
            timestamp=timestamp or utc_now(),
            correlation_id=get_correlation_id()
        )

        return self.repo.create_entry(entry)

    def write_instance_created(
        self,
        instance_id: str,
        actor: ActorContext,
        workflow_id: str,
        organization_id: str,
        initial_context: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None
    ) -> AuditLogEntry:
        """Write instance creation entry"""
        return self.write_entry(
            event_type=AuditEventType.WORKFLOW_INSTANCE_CREATED,
            actor=actor,
            resource_type=AuditResourceType.WORKFLOW_INSTANCE,
            resource_id=instance_id,
            action="create",
            result=AuditResult.SUCCESS,
            instance_id=instance_id,
            details={
                "workflow_id": workflow_id,
                "organization_id": organization_id,
                "initial_context": initial_context or {},
            },
            timestamp=timestamp
        )

    def write_transition(
        self,
        instance_id: str,
        actor: ActorContext,
        from_state: str,
        to_state: str,
        actor_role: str,
        context: Optional[Dict[str, Any]] = None,
        timestamp: Optional[datetime] = None
    ) -> AuditLogEntry:
        """Write successful transition entry"""
        return self.write_entry(
            event_type=AuditEventType.WORKFLOW_TRANSITION,
            actor=actor,
            resource_type=AuditResourceType.WORKFLOW_INSTANCE,
            resource_id=instance_id,
            action=f"transition_{from_state}_to_{to_state}",
            result=AuditResult.SUCCESS,
            instance_id=instance_id,
            details={
                "from_state": from_state,
                "to_state": to_state,
                "actor_role": actor_role,
                "context": context or {},
            },
            timestamp=timestamp
        )

    def write_permission_denied(
        self,
        instance_id: str,
        workflow_step_id: str,
        actor: ActorContext,
        actor_role: str,
        reasons: List[str],
        context: Optional[Dict[str, Any]] = None
    ) -> AuditLogEntry:
        """Write denied transition entry (the resource is the target step)"""
        return self.write_entry(
            event_type=AuditEventType.PERMISSION_DENIED,
            actor=actor,
            resource_type=AuditResourceType.WORKFLOW_STEP,
            resource_id=workflow_step_id,
            action=actor_role,
            result=AuditResult.DENIED,
            instance_id=instance_id,
            details={
                "reasons": reasons,
                "context": context or {},
            }
        )

    def write_status_change(
        self,
        instance_id: str,
        actor: ActorContext,
        status: InstanceStatus,
        previous_status: Optional[InstanceStatus] = None,
        timestamp: Optional[datetime] = None
    ) -> AuditLogEntry:
        """Write instance status change entry"""
        return self.write_entry(
            event_type=AuditEventType.WORKFLOW_STATUS_CHANGE,
            actor=actor,
            resource_type=AuditResourceType.WORKFLOW_INSTANCE,
            resource_id=instance_id,
            action=f"status_change_to_{status.value}",
            result=AuditResult.SUCCESS,
            instance_id=instance_id,
            details={
                "previous_status": previous_status.value if previous_status else None,
                "status": status.value,
            },
            timestamp=timestamp
        )
