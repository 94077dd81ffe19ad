"""Domain Enumerations - All status and type definitions"""
from enum import Enum


class InstanceStatus(str, Enum):
    """Lifecycle status of a workflow instance"""
    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class GroupType(str, Enum):
    """Organizational group a position or permission rule refers to"""
    DEPARTMENT = "department"
    TEAM = "team"


class PermissionType(str, Enum):
    """Effect of a matched permission rule"""
    REQUIRED = "required"
    OPTIONAL = "optional"
    FORBIDDEN = "forbidden"  # Vetoes the whole evaluation when matched


class MatchType(str, Enum):
    """How a position matched a permission rule (informational)"""
    EXACT = "exact"  # Rule named a designation
    GROUP = "group"  # Group-level match only
    NONE = "none"


class ConditionKey(str, Enum):
    """Recognized condition keys on a permission rule"""
    MIN_JOB_LEVEL = "min_job_level"
    MAX_JOB_LEVEL = "max_job_level"
    WORKFLOW_AMOUNT_LIMIT = "workflow_amount_limit"
    TIME_CONSTRAINT = "time_constraint"


class AuditResult(str, Enum):
    """Outcome recorded on an audit entry"""
    SUCCESS = "success"
    DENIED = "denied"


class AuditEventType(str, Enum):
    """Types of audit events"""
    WORKFLOW_INSTANCE_CREATED = "workflow_instance_created"
    WORKFLOW_TRANSITION = "workflow_transition"
    PERMISSION_DENIED = "permission_denied"
    WORKFLOW_STATUS_CHANGE = "workflow_status_change"


class AuditResourceType(str, Enum):
    """Resource an audit entry refers to"""
    WORKFLOW_INSTANCE = "workflow_instance"
    WORKFLOW_STEP = "workflow_step"


class HistoryAction(str, Enum):
    """Action recorded on a history entry"""
    TRANSITION = "transition"


class Operation(str, Enum):
    """Closed set of operations exposed at the service boundary"""
    CREATE_INSTANCE = "create-instance"
    TRANSITION = "transition"
    CHECK_PERMISSION = "check-permission"
    PAUSE_INSTANCE = "pause-instance"
    RESUME_INSTANCE = "resume-instance"
    CANCEL_INSTANCE = "cancel-instance"
    LIST_INSTANCES = "instances"
    GET_INSTANCE = "instance"
    LIST_HISTORY = "history"
    LIST_WORKFLOWS = "workflows"
