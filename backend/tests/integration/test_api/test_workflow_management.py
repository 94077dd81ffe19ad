"""API tests for the workflow management endpoints"""

import jwt
import pytest
from fastapi.testclient import TestClient
from pymongo.errors import ServerSelectionTimeoutError

from workflow_gate.main import app
from workflow_gate.api.deps import get_current_user_dep, get_dispatcher_dep
from workflow_gate.domain.models import ActorContext
from workflow_gate.services import WorkflowInstanceService, OperationDispatcher

from tests.conftest import WORKFLOW_ID, STEP_REVIEW, Clock

BASE = "/api/v1/workflow-management"


@pytest.fixture
def current_user():
    return {"actor": ActorContext(user_id="alice", email="alice@example.com")}


@pytest.fixture
def client(db, current_user):
    service = WorkflowInstanceService(db=db, clock=Clock())
    app.dependency_overrides[get_dispatcher_dep] = lambda: OperationDispatcher(service)
    app.dependency_overrides[get_current_user_dep] = lambda: current_user["actor"]
    yield TestClient(app)
    app.dependency_overrides.clear()


def create_instance(client, **context):
    response = client.post(f"{BASE}/create-instance", json={
        "workflowId": WORKFLOW_ID,
        "organizationId": "org-1",
        "initialContext": context,
    })
    assert response.status_code == 201
    return response.json()["data"]


class TestCreateInstance:

    def test_created(self, client):
        data = create_instance(client, amount=100)

        assert data["current_state"] == "draft"
        assert data["status"] == "active"
        assert data["initiator_user_id"] == "alice"

    def test_unknown_workflow(self, client):
        response = client.post(f"{BASE}/create-instance", json={
            "workflow_id": "WF-UNKNOWN", "organization_id": "org-1"
        })

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "WORKFLOW_NOT_FOUND"

    def test_missing_fields(self, client, db):
        response = client.post(f"{BASE}/create-instance", json={"organizationId": "org-1"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"
        assert db["workflow_instances"].count_documents({}) == 0


class TestTransition:

    def test_allowed(self, client):
        instance = create_instance(client, amount=100)

        response = client.post(f"{BASE}/transition", json={
            "instanceId": instance["instance_id"],
            "targetState": "review",
            "actorRole": "approver",
            "context": {"note": "ok"},
        })

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["new_state"] == "review"
        assert body["data"]["context"]["note"] == "ok"

    def test_denied(self, client, current_user):
        instance = create_instance(client)
        current_user["actor"] = ActorContext(user_id="frank")

        response = client.post(f"{BASE}/transition", json={
            "instance_id": instance["instance_id"],
            "target_state": "review",
            "actor_role": "approver",
        })

        assert response.status_code == 403
        error = response.json()["error"]
        assert error["code"] == "PERMISSION_DENIED"
        assert error["details"]["reasons"] == [
            "User does not match any required permissions for this workflow step"
        ]

    def test_paused_instance(self, client):
        instance = create_instance(client)
        client.post(f"{BASE}/pause-instance", json={"instanceId": instance["instance_id"]})

        response = client.post(f"{BASE}/transition", json={
            "instanceId": instance["instance_id"], "targetState": "review", "actorRole": "approver"
        })

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATE"

    def test_unknown_step(self, client):
        instance = create_instance(client)

        response = client.post(f"{BASE}/transition", json={
            "instanceId": instance["instance_id"], "targetState": "shipped", "actorRole": "approver"
        })

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "STEP_NOT_FOUND"


class TestLifecycle:

    @pytest.mark.parametrize("operation, status", [
        ("pause-instance", "paused"),
        ("cancel-instance", "cancelled"),
    ])
    def test_status_change(self, client, operation, status):
        instance = create_instance(client)

        response = client.post(f"{BASE}/{operation}", json={"instanceId": instance["instance_id"]})

        assert response.status_code == 200
        assert response.json()["data"]["status"] == status

    def test_resume(self, client):
        instance = create_instance(client)
        client.post(f"{BASE}/pause-instance", json={"instanceId": instance["instance_id"]})

        response = client.post(f"{BASE}/resume-instance", json={"instanceId": instance["instance_id"]})
        assert response.json()["data"]["status"] == "active"

    def test_missing_instance(self, client):
        response = client.post(f"{BASE}/cancel-instance", json={"instanceId": "WFI-MISSING"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "INSTANCE_NOT_FOUND"


class TestReads:

    def test_check_permission(self, client):
        response = client.post(f"{BASE}/check-permission", json={
            "workflowStepId": STEP_REVIEW, "actorRole": "approver"
        })

        assert response.status_code == 200
        assert response.json()["data"]["allowed"] is True

    def test_get_and_list_instances(self, client):
        first = create_instance(client)
        second = create_instance(client)

        response = client.get(f"{BASE}/instances/{first['instance_id']}")
        assert response.json()["data"]["instance_id"] == first["instance_id"]

        response = client.get(f"{BASE}/instances", params={"organization_id": "org-1", "limit": 1})
        data = response.json()["data"]
        assert data["total"] == 2
        assert [i["instance_id"] for i in data["items"]] == [second["instance_id"]]

    def test_list_instances_rejects_bad_query(self, client):
        response = client.get(f"{BASE}/instances", params={"limit": 0})
        assert response.status_code == 400

    def test_get_missing_instance(self, client):
        response = client.get(f"{BASE}/instances/WFI-MISSING")
        assert response.status_code == 404

    def test_history(self, client):
        instance = create_instance(client)
        client.post(f"{BASE}/transition", json={
            "instanceId": instance["instance_id"], "targetState": "review", "actorRole": "approver"
        })

        response = client.get(f"{BASE}/history", params={"instance_id": instance["instance_id"]})

        assert response.status_code == 200
        assert [h["to_state"] for h in response.json()["data"]] == ["review"]

    def test_workflows(self, client):
        response = client.get(f"{BASE}/workflows")

        assert response.status_code == 200
        assert "Purchase Approval" in [w["name"] for w in response.json()["data"]]


class TestCorrelation:

    def test_header_is_echoed_and_audited(self, client, db):
        response = client.post(
            f"{BASE}/create-instance",
            json={"workflowId": WORKFLOW_ID, "organizationId": "org-1"},
            headers={"X-Correlation-Id": "corr-abc"}
        )

        assert response.headers["X-Correlation-Id"] == "corr-abc"
        audit = db["audit_logs"].find_one({"workflow_instance_id": response.json()["data"]["instance_id"]})
        assert audit["correlation_id"] == "corr-abc"

    def test_generated_when_absent(self, client):
        response = client.get(f"{BASE}/workflows")
        assert response.headers["X-Correlation-Id"]

    def test_error_responses_carry_header(self, client):
        response = client.get(f"{BASE}/instances/WFI-MISSING", headers={"X-Correlation-Id": "corr-404"})
        assert response.headers["X-Correlation-Id"] == "corr-404"


class TestAuthentication:

    @pytest.fixture
    def unauthenticated_client(self, db):
        service = WorkflowInstanceService(db=db, clock=Clock())
        app.dependency_overrides[get_dispatcher_dep] = lambda: OperationDispatcher(service)
        yield TestClient(app)
        app.dependency_overrides.clear()

    def test_missing_header(self, unauthenticated_client):
        response = unauthenticated_client.get(f"{BASE}/workflows")
        assert response.status_code == 401

    def test_development_token(self, unauthenticated_client):
        token = jwt.encode({"sub": "alice"}, "dev-secret-not-verified-in-development", algorithm="HS256")

        response = unauthenticated_client.get(
            f"{BASE}/workflows", headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 200


class TestStoreFailures:

    class UnreachableStoreDispatcher:
        def dispatch(self, operation, actor, payload=None):
            raise ServerSelectionTimeoutError("mongo-0:27017: connection refused")

    def test_store_failure_is_opaque(self, client):
        app.dependency_overrides[get_dispatcher_dep] = lambda: self.UnreachableStoreDispatcher()

        response = client.get(f"{BASE}/workflows")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "STORE_ERROR"
        assert "mongo-0" not in response.text
