"""
Pytest Configuration and Fixtures

Shared fixtures for all tests: an in-memory MongoDB (mongomock) seeded with
a small organization and a purchase approval workflow, a controllable clock,
and the engine components wired over that database.
"""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import mongomock
import pytest

from workflow_gate.domain.models import ActorContext
from workflow_gate.engine import (
    TimeConstraintEvaluator, ConditionEvaluator, PermissionEvaluator,
    AuditWriter, TransitionExecutor, InstanceLifecycleController
)
from workflow_gate.repositories import (
    WorkflowRepository, PermissionRepository, OrganizationRepository,
    InstanceRepository, AuditRepository
)
from workflow_gate.repositories.mongo_client import create_indexes

# Tuesday, inside business hours
FIXED_NOW = datetime(2024, 1, 9, 10, 0, tzinfo=timezone.utc)

WORKFLOW_ID = "WF-PURCHASE"
INACTIVE_WORKFLOW_ID = "WF-RETIRED"
EMPTY_WORKFLOW_ID = "WF-EMPTY"

STEP_DRAFT = "STEP-DRAFT"
STEP_REVIEW = "STEP-REVIEW"
STEP_APPROVED = "STEP-APPROVED"
STEP_ARCHIVED = "STEP-ARCHIVED"

ACTOR_APPROVER = "ACT-APPROVER"
ACTOR_VIEWER = "ACT-VIEWER"

DEPT_FINANCE = "dept-finance"
DEPT_LEGAL = "dept-legal"
TEAM_PAYABLES = "team-payables"
TEAM_ORPHAN = "team-orphan"
DESIG_MANAGER = "desig-manager"


class Clock:
    """Controllable clock; advances one second per reading unless frozen"""

    def __init__(self, start: datetime = FIXED_NOW, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now

    def set(self, value: datetime) -> None:
        self.current = value


def _position(user_id, group_type, group_id, job_level, designation_id=None, is_active=True):
    return {
        "position_id": f"POS-{user_id}-{group_id}",
        "user_id": user_id,
        "group_type": group_type,
        "group_id": group_id,
        "designation_id": designation_id,
        "job_level": job_level,
        "is_active": is_active,
    }


def _permission(permission_id, step_id, group_type, group_id, permission_type="required",
                conditions=None, designation_id=None, actor_id=ACTOR_APPROVER, is_active=True):
    return {
        "permission_id": permission_id,
        "workflow_step_id": step_id,
        "workflow_actor_id": actor_id,
        "group_type": group_type,
        "group_id": group_id,
        "designation_id": designation_id,
        "permission_type": permission_type,
        "conditions": conditions or {},
        "is_active": is_active,
    }


def seed_database(db) -> None:
    """Seed the catalog, permission rules and organization"""
    db["workflows"].insert_many([
        {"workflow_id": WORKFLOW_ID, "name": "Purchase Approval", "is_active": True},
        {"workflow_id": INACTIVE_WORKFLOW_ID, "name": "Retired Process", "is_active": False},
        {"workflow_id": EMPTY_WORKFLOW_ID, "name": "Ad-hoc Request", "is_active": True},
    ])
    db["workflow_steps"].insert_many([
        {"step_id": STEP_DRAFT, "workflow_id": WORKFLOW_ID, "step_name": "draft", "step_order": 1, "is_active": True},
        {"step_id": STEP_REVIEW, "workflow_id": WORKFLOW_ID, "step_name": "review", "step_order": 2, "is_active": True},
        {"step_id": STEP_APPROVED, "workflow_id": WORKFLOW_ID, "step_name": "approved", "step_order": 3, "is_active": True},
        {"step_id": STEP_ARCHIVED, "workflow_id": WORKFLOW_ID, "step_name": "archived", "step_order": 4, "is_active": False},
    ])
    db["workflow_actors"].insert_many([
        {"actor_id": ACTOR_APPROVER, "name": "approver"},
        {"actor_id": ACTOR_VIEWER, "name": "viewer"},
    ])
    db["workflow_permissions"].insert_many([
        _permission("PERM-DRAFT-TEAM", STEP_DRAFT, "team", TEAM_PAYABLES),
        _permission("PERM-REVIEW", STEP_REVIEW, "department", DEPT_FINANCE, conditions={"min_job_level": 3}),
        _permission(
            "PERM-APPROVE", STEP_APPROVED, "department", DEPT_FINANCE,
            conditions={"min_job_level": 3, "workflow_amount_limit": 1000}
        ),
        _permission("PERM-APPROVE-LEGAL", STEP_APPROVED, "department", DEPT_LEGAL, permission_type="forbidden"),
        _permission("PERM-APPROVE-OLD", STEP_APPROVED, "department", DEPT_FINANCE, is_active=False),
    ])
    db["organization_teams"].insert_many([
        {"team_id": TEAM_PAYABLES, "department_id": DEPT_FINANCE, "name": "Payables"},
        {"team_id": TEAM_ORPHAN, "department_id": None, "name": "Skunkworks"},
    ])
    db["organization_positions"].insert_many([
        _position("alice", "department", DEPT_FINANCE, 5, designation_id=DESIG_MANAGER),
        _position("bob", "team", TEAM_PAYABLES, 3),
        _position("carol", "department", DEPT_FINANCE, 5),
        _position("carol", "department", DEPT_LEGAL, 2),
        _position("dave", "team", TEAM_ORPHAN, 9),
        _position("eve", "department", DEPT_FINANCE, 9, is_active=False),
        _position("frank", "department", DEPT_FINANCE, 1),
    ])


@pytest.fixture
def db():
    """In-memory database with indexes and seed data"""
    database = mongomock.MongoClient()["workflow_gate_test"]
    create_indexes(database)
    seed_database(database)
    return database


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def alice():
    return ActorContext(user_id="alice", email="alice@example.com", display_name="Alice")


@pytest.fixture
def frank():
    return ActorContext(user_id="frank", email="frank@example.com", display_name="Frank")


@pytest.fixture
def repos(db):
    return SimpleNamespace(
        workflows=WorkflowRepository(db),
        permissions=PermissionRepository(db),
        organization=OrganizationRepository(db),
        instances=InstanceRepository(db),
        audit=AuditRepository(db),
    )


@pytest.fixture
def permission_evaluator(repos, clock):
    time_evaluator = TimeConstraintEvaluator(timezone_name="UTC", clock=clock)
    return PermissionEvaluator(
        organization_repo=repos.organization,
        permission_repo=repos.permissions,
        condition_evaluator=ConditionEvaluator(time_evaluator)
    )


@pytest.fixture
def audit_writer(repos):
    return AuditWriter(repos.audit)


@pytest.fixture
def lifecycle(repos, audit_writer, clock):
    return InstanceLifecycleController(
        instance_repo=repos.instances,
        workflow_repo=repos.workflows,
        audit_writer=audit_writer,
        initial_state_fallback="initial",
        clock=clock
    )


@pytest.fixture
def executor(repos, permission_evaluator, audit_writer, clock):
    return TransitionExecutor(
        instance_repo=repos.instances,
        workflow_repo=repos.workflows,
        permission_evaluator=permission_evaluator,
        audit_writer=audit_writer,
        clock=clock
    )


@pytest.fixture
def instance(lifecycle, alice):
    """Active instance of the purchase workflow, in its first step"""
    return lifecycle.create_instance(WORKFLOW_ID, "org-1", alice, {"amount": 250, "title": "Laptops"})
