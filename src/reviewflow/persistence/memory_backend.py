"""In-memory backends: dict-backed implementations for tests and single-process use."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Optional

from reviewflow.core.exceptions import ConcurrentModificationError, PersistenceError
from reviewflow.models.events import ReviewEvent
from reviewflow.models.review import (
    Assignment,
    AssignmentStatus,
    ChangeRequestRecord,
    RequestUpdate,
    ReviewRequest,
    ReviewStatus,
)
from reviewflow.models.workflow import Workflow


class MemoryWorkflowRepository:
    """Dict-backed IWorkflowRepository."""

    def __init__(self) -> None:
        self._workflows: dict[str, Workflow] = {}

    def add(self, workflow: Workflow) -> None:
        if workflow.id in self._workflows:
            raise PersistenceError(f"Workflow {workflow.id!r} already exists")
        self._workflows[workflow.id] = workflow.model_copy(deep=True)

    def get(self, workflow_id: str) -> Optional[Workflow]:
        wf = self._workflows.get(workflow_id)
        return wf.model_copy(deep=True) if wf else None

    def list_by_workspace(self, workspace_id: str) -> list[Workflow]:
        return [
            wf.model_copy(deep=True)
            for wf in self._workflows.values()
            if wf.workspace_id == workspace_id
        ]


class MemoryReviewRequestRepository:
    """Dict-backed IReviewRequestRepository.

    A single lock serializes commits and assignment transitions, which gives
    the same compare-and-swap semantics as the DynamoDB backend.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._requests: dict[str, ReviewRequest] = {}
        self._assignments: dict[str, Assignment] = {}
        self._changes: dict[str, ChangeRequestRecord] = {}
        self._events: list[ReviewEvent] = []

    def get(self, request_id: str) -> Optional[ReviewRequest]:
        req = self._requests.get(request_id)
        return req.model_copy(deep=True) if req else None

    def list_by_workspace(
        self, workspace_id: str, status: Optional[ReviewStatus] = None
    ) -> list[ReviewRequest]:
        out = [
            r.model_copy(deep=True)
            for r in self._requests.values()
            if r.workspace_id == workspace_id and (status is None or r.status == status)
        ]
        return sorted(out, key=lambda r: r.created_at)

    def list_assignments(
        self, request_id: str, step_index: Optional[int] = None
    ) -> list[Assignment]:
        return [
            a.model_copy(deep=True)
            for a in self._assignments.values()
            if a.request_id == request_id and (step_index is None or a.step_index == step_index)
        ]

    def list_change_requests(self, request_id: str) -> list[ChangeRequestRecord]:
        return [c.model_copy(deep=True) for c in self._changes.values() if c.request_id == request_id]

    def list_events(self, request_id: str) -> list[ReviewEvent]:
        return [e.model_copy(deep=True) for e in self._events if e.request_id == request_id]

    def commit(self, update: RequestUpdate) -> None:
        with self._lock:
            stored = self._requests.get(update.request.id)
            current_version = stored.version if stored else 0
            if stored is None and update.expected_version != 0:
                raise ConcurrentModificationError(update.request.id, update.expected_version)
            if stored is not None and current_version != update.expected_version:
                raise ConcurrentModificationError(update.request.id, update.expected_version)
            self._requests[update.request.id] = update.request.model_copy(deep=True)
            for a in update.assignments:
                self._assignments[a.id] = a.model_copy(deep=True)
            for c in update.change_requests:
                self._changes[c.id] = c.model_copy(deep=True)
            self._events.extend(e.model_copy(deep=True) for e in update.events)

    def list_due_assignments(self, now: datetime) -> list[Assignment]:
        return [
            a.model_copy(deep=True)
            for a in self._assignments.values()
            if a.status == AssignmentStatus.PENDING and a.due_at is not None and a.due_at <= now
        ]

    def transition_assignment(
        self,
        assignment: Assignment,
        expected: AssignmentStatus,
        new: AssignmentStatus,
        at: Optional[datetime] = None,
    ) -> bool:
        with self._lock:
            a = self._assignments.get(assignment.id)
            if a is None or a.status != expected:
                return False
            a.status = new
            if new == AssignmentStatus.ESCALATED:
                a.escalated_at = at
            elif new == AssignmentStatus.PENDING:
                a.escalated_at = None
            return True

    def append_event(self, event: ReviewEvent) -> None:
        with self._lock:
            self._events.append(event.model_copy(deep=True))


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)
