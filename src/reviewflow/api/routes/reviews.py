"""Review request endpoints: decisions, change requests, reopen, escalation sweep."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from reviewflow.api.deps import get_services
from reviewflow.api.guard import Action, Caller, require
from reviewflow.core.exceptions import NotFoundError
from reviewflow.engine import ReviewServices
from reviewflow.models.events import ReviewEvent
from reviewflow.models.review import (
    Assignment,
    ChangeRequestInput,
    ChangeRequestRecord,
    DecisionBody,
    DecisionResult,
    ReviewRequest,
    ReviewStatus,
)

router = APIRouter(tags=["reviews"])


class EscalationResponse(BaseModel):
    escalated: int
    failed: list[str]


def _in_workspace(services: ReviewServices, request_id: str, caller: Caller) -> ReviewRequest:
    req = services.reviews.get_request(request_id)
    if req.workspace_id != caller.workspace_id:
        raise NotFoundError("ReviewRequest", request_id)
    return req


# Declared before "/{request_id}" routes so "escalate" is not taken for an ID.
@router.post("/escalate", response_model=EscalationResponse)
def run_escalations(
    now: Optional[datetime] = None,
    caller: Caller = Depends(require(Action.REVIEW_ESCALATE)),
    services: ReviewServices = Depends(get_services),
) -> EscalationResponse:
    """Sweep overdue assignments across all in-progress reviews."""
    report = services.escalations.sweep(now)
    return EscalationResponse(escalated=report.escalated_count, failed=report.failed)


@router.get("", response_model=list[ReviewRequest])
def list_reviews(
    status: Optional[ReviewStatus] = None,
    caller: Caller = Depends(require(Action.REVIEW_READ)),
    services: ReviewServices = Depends(get_services),
) -> list[ReviewRequest]:
    return services.reviews.list_requests(caller.workspace_id, status)


@router.get("/{request_id}", response_model=ReviewRequest)
def get_review(
    request_id: str,
    caller: Caller = Depends(require(Action.REVIEW_READ)),
    services: ReviewServices = Depends(get_services),
) -> ReviewRequest:
    return _in_workspace(services, request_id, caller)


@router.get("/{request_id}/assignments", response_model=list[Assignment])
def list_assignments(
    request_id: str,
    step: Optional[int] = None,
    caller: Caller = Depends(require(Action.REVIEW_READ)),
    services: ReviewServices = Depends(get_services),
) -> list[Assignment]:
    _in_workspace(services, request_id, caller)
    return services.reviews.list_assignments(request_id, step)


@router.get("/{request_id}/change-requests", response_model=list[ChangeRequestRecord])
def list_change_requests(
    request_id: str,
    caller: Caller = Depends(require(Action.REVIEW_READ)),
    services: ReviewServices = Depends(get_services),
) -> list[ChangeRequestRecord]:
    _in_workspace(services, request_id, caller)
    return services.reviews.list_change_requests(request_id)


@router.get("/{request_id}/events", response_model=list[ReviewEvent])
def list_events(
    request_id: str,
    caller: Caller = Depends(require(Action.REVIEW_READ)),
    services: ReviewServices = Depends(get_services),
) -> list[ReviewEvent]:
    _in_workspace(services, request_id, caller)
    return services.reviews.list_events(request_id)


@router.post("/{request_id}/decide", response_model=DecisionResult)
def decide(
    request_id: str,
    body: DecisionBody,
    caller: Caller = Depends(require(Action.REVIEW_DECIDE)),
    services: ReviewServices = Depends(get_services),
) -> DecisionResult:
    """Record the caller's decision on their assignment in the current step."""
    _in_workspace(services, request_id, caller)
    return services.reviews.record_decision(request_id, caller.user_id, body.root)


@router.post("/{request_id}/request-changes", status_code=201, response_model=ChangeRequestRecord)
def request_changes(
    request_id: str,
    body: ChangeRequestInput,
    caller: Caller = Depends(require(Action.REVIEW_REQUEST_CHANGES)),
    services: ReviewServices = Depends(get_services),
) -> ChangeRequestRecord:
    _in_workspace(services, request_id, caller)
    return services.reviews.request_changes(
        request_id,
        body.version_from_id,
        body.version_to_id,
        summary=body.summary,
        requested_by=caller.user_id,
    )


@router.post("/{request_id}/reopen", response_model=ReviewRequest)
def reopen(
    request_id: str,
    caller: Caller = Depends(require(Action.REVIEW_REOPEN)),
    services: ReviewServices = Depends(get_services),
) -> ReviewRequest:
    _in_workspace(services, request_id, caller)
    return services.reviews.reopen(request_id, actor_id=caller.user_id)
