"""Review request, assignment, decision and change-request models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field, RootModel

from reviewflow.models.events import ReviewEvent


class ReviewStatus(StrEnum):
    PENDING = "PENDING"
    IN_PROGRESS = "IN_PROGRESS"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    CHANGES_REQUESTED = "CHANGES_REQUESTED"

    @property
    def is_terminal(self) -> bool:
        return self in (ReviewStatus.APPROVED, ReviewStatus.REJECTED)


class AssignmentStatus(StrEnum):
    PENDING = "PENDING"
    DECIDED = "DECIDED"
    ESCALATED = "ESCALATED"


class DecisionType(StrEnum):
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    REQUEST_CHANGES = "REQUEST_CHANGES"


class ChangeRequestStatus(StrEnum):
    OPEN = "OPEN"
    ADDRESSED = "ADDRESSED"


# ---------------------------------------------------------------------------
# Decisions: closed tagged union keyed on "decision"
# ---------------------------------------------------------------------------

class Approve(BaseModel):
    decision: Literal["APPROVE"] = "APPROVE"
    comment: Optional[str] = None


class Reject(BaseModel):
    decision: Literal["REJECT"] = "REJECT"
    comment: Optional[str] = None


class RequestChanges(BaseModel):
    decision: Literal["REQUEST_CHANGES"] = "REQUEST_CHANGES"
    comment: Optional[str] = None


Decision = Annotated[Union[Approve, Reject, RequestChanges], Field(discriminator="decision")]


class RecordedDecision(BaseModel):
    """Decision as stored on an assignment."""

    decision: DecisionType
    comment: Optional[str] = None
    decided_at: datetime


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------

class ReviewRequest(BaseModel):
    """One instantiation of a workflow against a knowledge document."""

    id: str
    workspace_id: str
    knowledge_id: str
    workflow_id: str
    initiator_id: str
    status: ReviewStatus = ReviewStatus.PENDING
    current_step_index: int = 0
    cycle: int = 0
    version: int = 0
    created_at: datetime
    updated_at: datetime


class Assignment(BaseModel):
    """One assignee's task within one step and cycle of a request."""

    id: str
    request_id: str
    step_index: int
    cycle: int = 0
    assignee_id: str
    status: AssignmentStatus = AssignmentStatus.PENDING
    due_at: Optional[datetime] = None
    decision: Optional[RecordedDecision] = None
    created_at: datetime
    escalated_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        """ESCALATED is advisory, so escalated assignments still accept a decision."""
        return self.status in (AssignmentStatus.PENDING, AssignmentStatus.ESCALATED)


class ChangeRequestRecord(BaseModel):
    """A reviewer-initiated pause asking for document revisions."""

    id: str
    request_id: str
    step_index: int
    version_from_id: Optional[str] = None
    version_to_id: Optional[str] = None
    summary: Optional[str] = None
    requested_by: Optional[str] = None
    status: ChangeRequestStatus = ChangeRequestStatus.OPEN
    created_at: datetime


# ---------------------------------------------------------------------------
# Operation inputs / outputs
# ---------------------------------------------------------------------------

class DecisionResult(BaseModel):
    status: ReviewStatus
    advanced: bool


class StartReviewInput(BaseModel):
    knowledge_id: str


class DecisionBody(RootModel[Decision]):
    """JSON body for recording a decision."""


class ChangeRequestInput(BaseModel):
    version_from_id: str
    version_to_id: str
    summary: Optional[str] = None


class RequestUpdate(BaseModel):
    """Everything one engine operation changes, committed as a single unit.

    ``request`` carries the new state; it is written only if the stored
    version still equals ``expected_version``.
    """

    request: ReviewRequest
    expected_version: int
    assignments: list[Assignment] = Field(default_factory=list)
    change_requests: list[ChangeRequestRecord] = Field(default_factory=list)
    events: list[ReviewEvent] = Field(default_factory=list)
