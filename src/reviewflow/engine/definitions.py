"""WorkflowDefinitionStore: validates and stores reusable workflow templates."""

from __future__ import annotations

import logging
import math
import uuid
from typing import Optional

from reviewflow.core.clock import SystemClock
from reviewflow.core.exceptions import NotFoundError, ValidationError
from reviewflow.core.protocols import IClock, INotificationEmitter, IWorkflowRepository
from reviewflow.models.events import EventType, ReviewEvent
from reviewflow.models.workflow import Workflow, WorkflowStep, WorkflowStepInput

logger = logging.getLogger(__name__)

# Upper bounds keep a step within one storage transaction and due dates
# within datetime range.
MAX_STEP_ASSIGNEES = 50
MAX_SLA_HOURS = 87_600


def validate_steps(steps: list[WorkflowStepInput]) -> list[WorkflowStep]:
    """Check a step list and return it as ordered ``WorkflowStep``s.

    Raises:
        ValidationError: naming the first offending field.
    """
    if not steps:
        raise ValidationError("steps", "at least one step is required")

    indices = sorted(s.index for s in steps)
    if indices != list(range(len(steps))):
        raise ValidationError(
            "steps.index",
            f"step indices must be 0..{len(steps) - 1} without gaps or duplicates, got {indices}",
        )

    ordered = sorted(steps, key=lambda s: s.index)
    for step in ordered:
        prefix = f"steps[{step.index}]"
        if not step.name.strip():
            raise ValidationError(f"{prefix}.name", "must not be blank")
        if not step.assignees:
            raise ValidationError(f"{prefix}.assignees", "at least one assignee is required")
        if len(step.assignees) > MAX_STEP_ASSIGNEES:
            raise ValidationError(f"{prefix}.assignees", f"at most {MAX_STEP_ASSIGNEES} assignees per step")
        for pos, assignee in enumerate(step.assignees):
            if not assignee.assignee_id.strip():
                raise ValidationError(f"{prefix}.assignees[{pos}].assignee_id", "must not be blank")
        if step.sla_hours is not None:
            if not math.isfinite(step.sla_hours) or step.sla_hours <= 0:
                raise ValidationError(f"{prefix}.sla_hours", "must be a positive number")
            if step.sla_hours > MAX_SLA_HOURS:
                raise ValidationError(f"{prefix}.sla_hours", f"must not exceed {MAX_SLA_HOURS} hours")

    return [WorkflowStep(**s.model_dump()) for s in ordered]


class WorkflowDefinitionStore:
    """Creates and serves read-only ``Workflow`` templates."""

    def __init__(
        self,
        repository: IWorkflowRepository,
        *,
        clock: Optional[IClock] = None,
        emitter: Optional[INotificationEmitter] = None,
    ) -> None:
        self._repo = repository
        self._clock = clock or SystemClock()
        self._emitter = emitter

    def create_workflow(
        self,
        workspace_id: str,
        name: str,
        steps: list[WorkflowStepInput],
        description: Optional[str] = None,
    ) -> Workflow:
        if not workspace_id:
            raise ValidationError("workspace_id", "must not be blank")
        if not name.strip():
            raise ValidationError("name", "must not be blank")
        validated = validate_steps(steps)

        now = self._clock.now()
        workflow = Workflow(
            id=str(uuid.uuid4()),
            workspace_id=workspace_id,
            name=name,
            description=description,
            steps=validated,
            created_at=now,
        )
        self._repo.add(workflow)
        logger.info(
            "workflow_created",
            extra={"workflow_id": workflow.id, "workspace_id": workspace_id, "steps": len(validated)},
        )

        if self._emitter is not None:
            event = ReviewEvent(
                id=str(uuid.uuid4()),
                type=EventType.WORKFLOW_CREATED,
                workflow_id=workflow.id,
                metadata={"workspace_id": workspace_id, "name": name},
                created_at=now,
            )
            try:
                self._emitter.emit(event)
            except Exception:
                logger.warning(
                    "workflow_created_notify_failed", extra={"workflow_id": workflow.id}, exc_info=True,
                )
        return workflow

    def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = self._repo.get(workflow_id)
        if workflow is None:
            raise NotFoundError("Workflow", workflow_id)
        return workflow

    def list_workflows(self, workspace_id: str) -> list[Workflow]:
        return sorted(self._repo.list_by_workspace(workspace_id), key=lambda w: w.created_at)
