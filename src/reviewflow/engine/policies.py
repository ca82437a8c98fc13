"""Step quorum policies, dispatched on the step's type."""

from __future__ import annotations

from typing import assert_never

from reviewflow.models.review import Assignment, AssignmentStatus, DecisionType
from reviewflow.models.workflow import StepType


def _approvals(assignments: list[Assignment]) -> int:
    return sum(
        1 for a in assignments
        if a.status == AssignmentStatus.DECIDED
        and a.decision is not None
        and a.decision.decision == DecisionType.APPROVE
    )


def quorum_reached(step_type: StepType, assignments: list[Assignment]) -> bool:
    """Whether the current cycle's assignments satisfy the step.

    ``assignments`` must already be narrowed to one step and one cycle.
    """
    approvals = _approvals(assignments)
    match step_type:
        case StepType.SINGLE_APPROVAL:
            return approvals >= 1
        case StepType.ALL_APPROVAL:
            return bool(assignments) and approvals == len(assignments)
        case StepType.MAJORITY:
            return approvals * 2 > len(assignments)
        case _:
            assert_never(step_type)
