"""Audit and notification events emitted by the engine."""

from __future__ import annotations

from datetime import datetime, timedelta
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field


class EventType(StrEnum):
    WORKFLOW_CREATED = "workflow.created"
    REVIEW_STARTED = "review.started"
    STEP_ASSIGNED = "step.assigned"
    DECISION_RECORDED = "decision.recorded"
    STEP_ADVANCED = "step.advanced"
    REVIEW_APPROVED = "review.approved"
    REVIEW_REJECTED = "review.rejected"
    CHANGES_REQUESTED = "review.changes_requested"
    REVIEW_REOPENED = "review.reopened"
    ESCALATION_TRIGGERED = "escalation.triggered"


class ReviewEvent(BaseModel):
    """A single audit entry; also the payload handed to notification emitters."""

    id: str
    type: EventType
    request_id: Optional[str] = None
    workflow_id: Optional[str] = None
    step_index: Optional[int] = None
    actor_id: Optional[str] = None
    assignee_id: Optional[str] = None
    overdue_by: Optional[timedelta] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class EscalationReport(BaseModel):
    """Outcome of one escalation sweep."""

    escalated: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)

    @property
    def escalated_count(self) -> int:
        return len(self.escalated)
