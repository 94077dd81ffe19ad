"""Service modules - Business logic layer"""
from .workflow_instance_service import WorkflowInstanceService
from .operations import OperationDispatcher

__all__ = [
    "WorkflowInstanceService",
    "OperationDispatcher",
]
