"""Unit tests for the in-memory repositories."""

from __future__ import annotations

from datetime import timedelta

import pytest

from reviewflow.core.exceptions import ConcurrentModificationError, PersistenceError
from reviewflow.models.review import Assignment, AssignmentStatus, RequestUpdate, ReviewRequest, ReviewStatus
from reviewflow.models.workflow import StepAssignee, Workflow, WorkflowStep
from tests.fakes import FIXED_NOW, MemoryReviewRequestRepository, MemoryWorkflowRepository


def _workflow(id_: str = "wf1", workspace_id: str = "w1") -> Workflow:
    return Workflow(
        id=id_, workspace_id=workspace_id, name="Review", created_at=FIXED_NOW,
        steps=[WorkflowStep(index=0, name="Peer", assignees=[StepAssignee(assignee_id="u1")])],
    )


def _request(version: int = 1, **overrides) -> ReviewRequest:
    fields = dict(
        id="r1", workspace_id="w1", knowledge_id="k1", workflow_id="wf1", initiator_id="u1",
        status=ReviewStatus.IN_PROGRESS, version=version, created_at=FIXED_NOW, updated_at=FIXED_NOW,
    )
    fields.update(overrides)
    return ReviewRequest(**fields)


def _assignment(id_: str = "a1", due_in=timedelta(hours=1)) -> Assignment:
    return Assignment(
        id=id_, request_id="r1", step_index=0, assignee_id="peer",
        due_at=FIXED_NOW + due_in if due_in is not None else None, created_at=FIXED_NOW,
    )


class TestMemoryWorkflowRepository:
    def test_returns_copies(self):
        repo = MemoryWorkflowRepository()
        repo.add(_workflow())
        loaded = repo.get("wf1")
        loaded.steps[0].name = "mutated"
        assert repo.get("wf1").steps[0].name == "Peer"

    def test_duplicate_add(self):
        repo = MemoryWorkflowRepository()
        repo.add(_workflow())
        with pytest.raises(PersistenceError):
            repo.add(_workflow())

    def test_list_by_workspace(self):
        repo = MemoryWorkflowRepository()
        repo.add(_workflow("a"))
        repo.add(_workflow("b", workspace_id="w2"))
        assert [w.id for w in repo.list_by_workspace("w1")] == ["a"]


class TestMemoryReviewRequestRepository:
    def test_commit_checks_version(self):
        repo = MemoryReviewRequestRepository()
        repo.commit(RequestUpdate(request=_request(), expected_version=0))
        with pytest.raises(ConcurrentModificationError):
            repo.commit(RequestUpdate(request=_request(), expected_version=0))
        with pytest.raises(ConcurrentModificationError):
            repo.commit(RequestUpdate(request=_request(version=3), expected_version=2))
        repo.commit(RequestUpdate(request=_request(version=2), expected_version=1))
        assert repo.get("r1").version == 2

    def test_update_on_missing_request_conflicts(self):
        repo = MemoryReviewRequestRepository()
        with pytest.raises(ConcurrentModificationError):
            repo.commit(RequestUpdate(request=_request(version=2), expected_version=1))

    def test_due_assignments_only_pending(self):
        repo = MemoryReviewRequestRepository()
        a1, a2, a3 = _assignment("a1"), _assignment("a2"), _assignment("a3", due_in=None)
        repo.commit(RequestUpdate(request=_request(), expected_version=0, assignments=[a1, a2, a3]))
        later = FIXED_NOW + timedelta(hours=2)
        assert repo.transition_assignment(a2, AssignmentStatus.PENDING, AssignmentStatus.ESCALATED, at=later)
        assert [a.id for a in repo.list_due_assignments(later)] == ["a1"]

    def test_transition_back_clears_escalated_at(self):
        repo = MemoryReviewRequestRepository()
        a = _assignment()
        repo.commit(RequestUpdate(request=_request(), expected_version=0, assignments=[a]))
        repo.transition_assignment(a, AssignmentStatus.PENDING, AssignmentStatus.ESCALATED, at=FIXED_NOW)
        assert repo.transition_assignment(a, AssignmentStatus.ESCALATED, AssignmentStatus.PENDING)
        (stored,) = repo.list_assignments("r1")
        assert (stored.status, stored.escalated_at) == (AssignmentStatus.PENDING, None)

    def test_transition_unknown_assignment(self):
        repo = MemoryReviewRequestRepository()
        assert not repo.transition_assignment(_assignment(), AssignmentStatus.PENDING, AssignmentStatus.ESCALATED)
