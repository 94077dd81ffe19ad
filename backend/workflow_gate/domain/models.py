"""Domain Models - Pydantic schemas for all entities"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, ConfigDict

from .enums import (
    InstanceStatus, GroupType, PermissionType, MatchType,
    AuditEventType, AuditResult, AuditResourceType, HistoryAction
)


# ============================================================================
# Identity
# ============================================================================

class ActorContext(BaseModel):
    """Current actor context from the bearer token"""
    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., description="Stable identity of the caller")
    email: Optional[str] = Field(None, description="User email if the token carries one")
    display_name: Optional[str] = Field(None, description="User display name")


# ============================================================================
# Workflow Catalog
# ============================================================================

class WorkflowStep(BaseModel):
    """A named state within a workflow (not a graph node)"""
    model_config = ConfigDict(extra="ignore")

    step_id: str
    workflow_id: str
    step_name: str = Field(..., description="Unique within the workflow")
    step_order: int = Field(default=0, description="Ordering index")
    is_active: bool = True


class Workflow(BaseModel):
    """Workflow template"""
    model_config = ConfigDict(extra="ignore")

    workflow_id: str
    name: str
    description: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class WorkflowWithSteps(Workflow):
    """Workflow with its active steps, used by the catalog listing"""
    steps: List[WorkflowStep] = Field(default_factory=list)


class WorkflowActor(BaseModel):
    """Role under which users act on workflow steps (e.g. 'approver')"""
    model_config = ConfigDict(extra="ignore")

    actor_id: str
    name: str


class WorkflowPermission(BaseModel):
    """Step-scoped authorization rule"""
    model_config = ConfigDict(extra="ignore")

    permission_id: str
    workflow_step_id: str
    workflow_actor_id: str
    actor_role: Optional[str] = Field(None, description="Joined actor role name")
    group_type: GroupType
    group_id: str
    designation_id: Optional[str] = None
    permission_type: PermissionType
    conditions: Dict[str, Any] = Field(default_factory=dict)
    is_active: bool = True


# ============================================================================
# Organization
# ============================================================================

class ActorPosition(BaseModel):
    """A user's active assignment to a department or team"""
    model_config = ConfigDict(extra="ignore")

    position_id: Optional[str] = None
    user_id: Optional[str] = None
    group_type: GroupType
    group_id: str
    designation_id: Optional[str] = None
    job_level: Optional[int] = None
    is_active: bool = True


class OrganizationTeam(BaseModel):
    """Team and its parent department"""
    model_config = ConfigDict(extra="ignore")

    team_id: str
    department_id: Optional[str] = None
    name: Optional[str] = None


# ============================================================================
# Instances
# ============================================================================

class WorkflowInstance(BaseModel):
    """Running occurrence of a workflow"""
    model_config = ConfigDict(extra="ignore")

    instance_id: str
    workflow_id: str
    current_state: str
    status: InstanceStatus = InstanceStatus.ACTIVE
    context_data: Dict[str, Any] = Field(default_factory=dict)
    organization_id: str
    initiator_user_id: str
    created_at: datetime
    updated_at: datetime
    version: int = Field(default=1, description="Compare-and-swap counter")


class WorkflowHistoryEntry(BaseModel):
    """Immutable record of a completed transition"""
    model_config = ConfigDict(extra="ignore")

    history_id: str
    instance_id: str
    from_state: str
    to_state: str
    action: HistoryAction = HistoryAction.TRANSITION
    context_data: Dict[str, Any] = Field(default_factory=dict)
    performed_by: str
    actor_role: str
    reason: Optional[str] = None
    performed_at: datetime
    sequence: int = Field(default=0, description="Instance version this transition produced")


class AuditLogEntry(BaseModel):
    """Audit entry (append-only)"""
    model_config = ConfigDict(extra="ignore")

    audit_id: str
    event_type: AuditEventType
    user_id: str
    resource_type: AuditResourceType
    resource_id: str
    action: str
    result: AuditResult
    details: Dict[str, Any] = Field(default_factory=dict)
    workflow_instance_id: Optional[str] = None
    timestamp: datetime
    correlation_id: Optional[str] = None


# ============================================================================
# Evaluation Results
# ============================================================================

class PermissionMatch(BaseModel):
    """Outcome of matching one rule against one position"""
    matches: bool
    match_type: MatchType = MatchType.NONE
    condition_results: Dict[str, bool] = Field(default_factory=dict)


class MatchedPermission(BaseModel):
    """A required/optional rule the actor satisfied"""
    permission: WorkflowPermission
    position: ActorPosition
    match_type: MatchType
    conditions: Dict[str, bool] = Field(default_factory=dict)


class PermissionResult(BaseModel):
    """Result of a permission evaluation"""
    allowed: bool
    reasons: List[str] = Field(default_factory=list)
    matched_permissions: List[MatchedPermission] = Field(default_factory=list)
    positions: List[ActorPosition] = Field(default_factory=list)


class TransitionResult(BaseModel):
    """Payload returned after a committed transition"""
    instance_id: str
    new_state: str
    context: Dict[str, Any]
    timestamp: datetime
