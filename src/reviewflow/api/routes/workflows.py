"""Workflow template endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from reviewflow.api.deps import get_services
from reviewflow.api.guard import Action, Caller, require
from reviewflow.core.exceptions import NotFoundError
from reviewflow.engine import ReviewServices
from reviewflow.models.review import ReviewRequest, StartReviewInput
from reviewflow.models.workflow import CreateWorkflowInput, Workflow

router = APIRouter(tags=["workflows"])


@router.post("", status_code=201, response_model=Workflow)
def create_workflow(
    body: CreateWorkflowInput,
    caller: Caller = Depends(require(Action.WORKFLOW_MANAGE)),
    services: ReviewServices = Depends(get_services),
) -> Workflow:
    """Create a reusable workflow in the caller's workspace."""
    return services.definitions.create_workflow(
        caller.workspace_id, body.name, body.steps, description=body.description,
    )


@router.get("", response_model=list[Workflow])
def list_workflows(
    caller: Caller = Depends(require(Action.REVIEW_READ)),
    services: ReviewServices = Depends(get_services),
) -> list[Workflow]:
    return services.definitions.list_workflows(caller.workspace_id)


@router.get("/{workflow_id}", response_model=Workflow)
def get_workflow(
    workflow_id: str,
    caller: Caller = Depends(require(Action.REVIEW_READ)),
    services: ReviewServices = Depends(get_services),
) -> Workflow:
    workflow = services.definitions.get_workflow(workflow_id)
    if workflow.workspace_id != caller.workspace_id:
        raise NotFoundError("Workflow", workflow_id)
    return workflow


@router.post("/{workflow_id}/start", status_code=201, response_model=ReviewRequest)
def start_review(
    workflow_id: str,
    body: StartReviewInput,
    caller: Caller = Depends(require(Action.REVIEW_START)),
    services: ReviewServices = Depends(get_services),
) -> ReviewRequest:
    """Start a review of a knowledge document; the caller becomes the initiator."""
    return services.reviews.start_review(
        caller.workspace_id, body.knowledge_id, workflow_id, caller.user_id,
    )
