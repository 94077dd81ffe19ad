"""Repository modules - Data access layer"""
from .mongo_client import get_database, get_collection
from .workflow_repo import WorkflowRepository
from .permission_repo import PermissionRepository
from .organization_repo import OrganizationRepository
from .instance_repo import InstanceRepository
from .audit_repo import AuditRepository

__all__ = [
    "get_database",
    "get_collection",
    "WorkflowRepository",
    "PermissionRepository",
    "OrganizationRepository",
    "InstanceRepository",
    "AuditRepository",
]
