"""HTTP tests for the FastAPI app over in-memory services."""

from __future__ import annotations

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from reviewflow.api.app import create_app
from reviewflow.api.guard import GrantAccessGuard
from reviewflow.engine import ReviewServices

ADMIN = {"x-user-id": "admin", "x-workspace-id": "w1"}
PEER = {"x-user-id": "peer", "x-workspace-id": "w1"}
LEAD = {"x-user-id": "lead", "x-workspace-id": "w1"}

WORKFLOW_BODY = {
    "name": "Doc review",
    "steps": [
        {"index": 0, "name": "Peer", "assignees": [{"assignee_id": "peer"}], "sla_hours": 1},
        {"index": 1, "name": "Lead", "assignees": [{"assignee_id": "lead"}]},
    ],
}


@pytest.fixture
def services(definitions, engine, scheduler):
    return ReviewServices(definitions=definitions, reviews=engine, escalations=scheduler)


@pytest.fixture
def client(services):
    return TestClient(create_app(services=services))


@pytest.fixture
def workflow_id(client):
    return client.post("/workflows", json=WORKFLOW_BODY, headers=ADMIN).json()["id"]


@pytest.fixture
def request_id(client, workflow_id):
    resp = client.post(f"/workflows/{workflow_id}/start", json={"knowledge_id": "k1"}, headers=ADMIN)
    return resp.json()["id"]


class TestHealth:
    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}

    def test_ready(self, client):
        assert client.get("/ready").json() == {"status": "ready"}


class TestCallerHeaders:
    def test_missing_user(self, client):
        assert client.get("/workflows", headers={"x-workspace-id": "w1"}).status_code == 401

    def test_missing_workspace(self, client):
        resp = client.get("/workflows", headers={"x-user-id": "u1"})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Workspace context required"

    def test_guard_denies(self, services):
        guard = GrantAccessGuard({"peer": {"review:read", "review:decide"}})
        client = TestClient(create_app(services=services, guard=guard))
        assert client.post("/workflows", json=WORKFLOW_BODY, headers=PEER).status_code == 403
        assert client.get("/workflows", headers=PEER).status_code == 200


class TestWorkflows:
    def test_create_and_get(self, client, workflow_id):
        resp = client.get(f"/workflows/{workflow_id}", headers=ADMIN)
        assert resp.status_code == 200
        assert [s["name"] for s in resp.json()["steps"]] == ["Peer", "Lead"]
        assert [w["id"] for w in client.get("/workflows", headers=ADMIN).json()] == [workflow_id]

    def test_validation_error_names_field(self, client):
        body = {"name": "Bad", "steps": [{"index": 1, "name": "Peer", "assignees": [{"assignee_id": "u"}]}]}
        resp = client.post("/workflows", json=body, headers=ADMIN)
        assert resp.status_code == 400
        assert resp.json()["field"] == "steps.index"

    def test_other_workspace_sees_404(self, client, workflow_id):
        resp = client.get(f"/workflows/{workflow_id}", headers={"x-user-id": "x", "x-workspace-id": "w2"})
        assert resp.status_code == 404

    def test_start_unknown_workflow(self, client):
        resp = client.post("/workflows/nope/start", json={"knowledge_id": "k1"}, headers=ADMIN)
        assert resp.status_code == 404


class TestReviews:
    def test_start_returns_in_progress(self, client, workflow_id):
        resp = client.post(f"/workflows/{workflow_id}/start", json={"knowledge_id": "k1"}, headers=ADMIN)
        assert resp.status_code == 201
        assert resp.json()["status"] == "IN_PROGRESS"
        assert resp.json()["initiator_id"] == "admin"

    def test_two_step_approval(self, client, request_id):
        resp = client.post(f"/reviews/{request_id}/decide", json={"decision": "APPROVE"}, headers=PEER)
        assert resp.json() == {"status": "IN_PROGRESS", "advanced": True}
        resp = client.post(f"/reviews/{request_id}/decide", json={"decision": "APPROVE"}, headers=LEAD)
        assert resp.json() == {"status": "APPROVED", "advanced": True}

        assignments = client.get(f"/reviews/{request_id}/assignments", params={"step": 1}, headers=ADMIN).json()
        assert [a["assignee_id"] for a in assignments] == ["lead"]

    def test_not_assignee_is_403(self, client, request_id):
        resp = client.post(f"/reviews/{request_id}/decide", json={"decision": "APPROVE"}, headers=LEAD)
        assert resp.status_code == 403
        assert resp.json()["error"] == "NotAssigneeError"

    def test_unknown_decision_is_422(self, client, request_id):
        resp = client.post(f"/reviews/{request_id}/decide", json={"decision": "MAYBE"}, headers=PEER)
        assert resp.status_code == 422

    def test_decide_after_reject_is_409(self, client, request_id):
        client.post(f"/reviews/{request_id}/decide", json={"decision": "REJECT", "comment": "no"}, headers=PEER)
        resp = client.post(f"/reviews/{request_id}/decide", json={"decision": "APPROVE"}, headers=PEER)
        assert resp.status_code == 409
        assert client.get(f"/reviews/{request_id}", headers=ADMIN).json()["status"] == "REJECTED"

    def test_request_changes_and_reopen(self, client, request_id):
        body = {"version_from_id": "v1", "version_to_id": "v2", "summary": "typos"}
        resp = client.post(f"/reviews/{request_id}/request-changes", json=body, headers=PEER)
        assert resp.status_code == 201
        assert resp.json()["requested_by"] == "peer"

        changes = client.get(f"/reviews/{request_id}/change-requests", headers=ADMIN).json()
        assert [c["summary"] for c in changes] == ["typos"]

        resp = client.post(f"/reviews/{request_id}/reopen", headers=ADMIN)
        assert resp.status_code == 200
        assert resp.json()["status"] == "IN_PROGRESS"

        assert client.post(f"/reviews/{request_id}/reopen", headers=ADMIN).status_code == 409

    def test_list_filters_by_status(self, client, request_id):
        assert [r["id"] for r in client.get("/reviews", headers=ADMIN).json()] == [request_id]
        assert client.get("/reviews", params={"status": "APPROVED"}, headers=ADMIN).json() == []

    def test_other_workspace_sees_404(self, client, request_id):
        resp = client.get(f"/reviews/{request_id}", headers={"x-user-id": "x", "x-workspace-id": "w2"})
        assert resp.status_code == 404

    def test_events(self, client, request_id):
        events = client.get(f"/reviews/{request_id}/events", headers=ADMIN).json()
        assert [e["type"] for e in events] == ["review.started", "step.assigned"]


class TestEscalate:
    def test_escalates_overdue(self, client, request_id, clock):
        clock.advance(timedelta(hours=2))
        resp = client.post("/reviews/escalate", headers=ADMIN)
        assert resp.json() == {"escalated": 1, "failed": []}
        assert client.post("/reviews/escalate", headers=ADMIN).json()["escalated"] == 0

        (assignment,) = client.get(f"/reviews/{request_id}/assignments", headers=ADMIN).json()
        assert assignment["status"] == "ESCALATED"

    def test_explicit_now(self, client, request_id):
        resp = client.post("/reviews/escalate", params={"now": "2025-09-17T12:30:00Z"}, headers=ADMIN)
        assert resp.json()["escalated"] == 0
        resp = client.post("/reviews/escalate", params={"now": "2025-09-17T13:30:00Z"}, headers=ADMIN)
        assert resp.json()["escalated"] == 1

    def test_requires_escalate_grant(self, services):
        guard = GrantAccessGuard({"peer": {"review:read"}})
        client = TestClient(create_app(services=services, guard=guard))
        assert client.post("/reviews/escalate", headers=PEER).status_code == 403
