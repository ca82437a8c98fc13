"""Workflow template models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field


class StepType(StrEnum):
    SINGLE_APPROVAL = "SINGLE_APPROVAL"
    ALL_APPROVAL = "ALL_APPROVAL"
    MAJORITY = "MAJORITY"


class AssigneeType(StrEnum):
    USER = "USER"
    ROLE = "ROLE"


class StepAssignee(BaseModel):
    """A user or a role expected to act on a step."""

    assignee_type: AssigneeType = AssigneeType.USER
    assignee_id: str


class WorkflowStepInput(BaseModel):
    """Step definition as submitted by an administrator (not yet validated)."""

    index: int
    type: StepType = StepType.SINGLE_APPROVAL
    name: str
    description: Optional[str] = None
    assignees: list[StepAssignee] = Field(default_factory=list)
    sla_hours: Optional[float] = None


class WorkflowStep(BaseModel):
    """One stage of approval inside a workflow."""

    index: int
    type: StepType = StepType.SINGLE_APPROVAL
    name: str
    description: Optional[str] = None
    assignees: list[StepAssignee]
    sla_hours: Optional[float] = None


class Workflow(BaseModel):
    """Reusable, read-only template of ordered approval steps."""

    id: str
    workspace_id: str
    name: str
    description: Optional[str] = None
    version: int = 1
    is_active: bool = True
    steps: list[WorkflowStep]
    created_at: datetime

    @property
    def last_step_index(self) -> int:
        return len(self.steps) - 1

    def step(self, index: int) -> WorkflowStep:
        return self.steps[index]


class CreateWorkflowInput(BaseModel):
    """Request body for workflow creation."""

    name: str
    description: Optional[str] = None
    steps: list[WorkflowStepInput] = Field(default_factory=list)
