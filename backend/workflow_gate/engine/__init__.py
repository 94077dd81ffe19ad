"""Workflow Engine - Authorization and state changes of workflow instances"""
from .time_constraint_evaluator import TimeConstraintEvaluator
from .condition_evaluator import ConditionEvaluator
from .permission_evaluator import PermissionEvaluator
from .audit_writer import AuditWriter
from .transition_executor import TransitionExecutor, merge_context
from .lifecycle_controller import InstanceLifecycleController

__all__ = [
    "TimeConstraintEvaluator",
    "ConditionEvaluator",
    "PermissionEvaluator",
    "AuditWriter",
    "TransitionExecutor",
    "merge_context",
    "InstanceLifecycleController",
]
