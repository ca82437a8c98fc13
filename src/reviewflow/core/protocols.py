"""Protocol interfaces for all ReviewFlow abstractions.

The engine depends only on these Protocols, so every collaborator can be
swapped for an in-memory fake in tests.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, runtime_checkable

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


# ---------------------------------------------------------------------------
# Clock
# ---------------------------------------------------------------------------

@runtime_checkable
class IClock(Protocol):
    """Injected time source."""

    def now(self) -> datetime: ...


# ---------------------------------------------------------------------------
# Persistence: Workflow definitions
# ---------------------------------------------------------------------------

@runtime_checkable
class IWorkflowRepository(Protocol):
    """Storage for read-only workflow templates."""

    def add(self, workflow: Workflow) -> None: ...

    def get(self, workflow_id: str) -> Optional[Workflow]: ...

    def list_by_workspace(self, workspace_id: str) -> list[Workflow]: ...


# ---------------------------------------------------------------------------
# Persistence: Review requests
# ---------------------------------------------------------------------------

@runtime_checkable
class IReviewRequestRepository(Protocol):
    """Storage for review requests and everything hanging off them.

    ``commit`` must apply a ``RequestUpdate`` atomically and raise
    ``ConcurrentModificationError`` when the stored request version differs
    from ``update.expected_version``.
    """

    def get(self, request_id: str) -> Optional[ReviewRequest]: ...

    def list_by_workspace(
        self, workspace_id: str, status: Optional[ReviewStatus] = None
    ) -> list[ReviewRequest]: ...

    def list_assignments(
        self, request_id: str, step_index: Optional[int] = None
    ) -> list[Assignment]: ...

    def list_change_requests(self, request_id: str) -> list[ChangeRequestRecord]: ...

    def list_events(self, request_id: str) -> list[ReviewEvent]: ...

    def commit(self, update: RequestUpdate) -> None: ...

    def list_due_assignments(self, now: datetime) -> list[Assignment]: ...

    def transition_assignment(
        self,
        assignment: Assignment,
        expected: AssignmentStatus,
        new: AssignmentStatus,
        at: Optional[datetime] = None,
    ) -> bool: ...

    def append_event(self, event: ReviewEvent) -> None: ...


# ---------------------------------------------------------------------------
# Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Notifications
# ---------------------------------------------------------------------------

@runtime_checkable
class INotificationEmitter(Protocol):
    """Fire-and-forget delivery of review events to people."""

    def emit(self, event: ReviewEvent) -> None: ...


# ---------------------------------------------------------------------------
# Role membership
# ---------------------------------------------------------------------------

@runtime_checkable
class IRoleResolver(Protocol):
    """Expands a role assignee into concrete user IDs."""

    def resolve(self, role_id: str, workspace_id: str) -> list[str]: ...


# ---------------------------------------------------------------------------
# Access control
# ---------------------------------------------------------------------------

@runtime_checkable
class IAccessGuard(Protocol):
    """Authorizes a caller before a mutating operation reaches the engine."""

    def authorize(
        self, user_id: str, workspace_id: str, action: str, resource_id: Optional[str] = None
    ) -> bool: ...
