"""Shared test doubles: re-export memory backends plus a few failure-injecting fakes."""

from __future__ import annotations

from datetime import datetime, timezone

from reviewflow.core.exceptions import NotificationError
from reviewflow.models.events import EventType, ReviewEvent
from reviewflow.models.workflow import StepAssignee, StepType, WorkflowStepInput
from reviewflow.notifications.emitters import RecordingNotificationEmitter
from reviewflow.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryReviewRequestRepository,
    MemoryWorkflowRepository,
)

FIXED_NOW = datetime(2025, 9, 17, 12, 0, tzinfo=timezone.utc)


def step(index: int, name: str, *assignees: str, sla_hours: float | None = None,
         type_: StepType = StepType.SINGLE_APPROVAL) -> WorkflowStepInput:
    """Build a step input with USER assignees."""
    return WorkflowStepInput(
        index=index,
        type=type_,
        name=name,
        sla_hours=sla_hours,
        assignees=[StepAssignee(assignee_id=a) for a in assignees],
    )


class FailingNotificationEmitter:
    """Raises for selected event types (all when none given).

    ``error`` picks the exception class; NotificationError unless a test
    needs an emitter that breaks its contract.
    """

    def __init__(self, *types: EventType, fail_times: int | None = None,
                 error: type[Exception] = NotificationError) -> None:
        self._types = set(types)
        self._error = error
        self._remaining = fail_times
        self.delivered: list[ReviewEvent] = []

    def emit(self, event: ReviewEvent) -> None:
        matches = not self._types or event.type in self._types
        if matches and (self._remaining is None or self._remaining > 0):
            if self._remaining is not None:
                self._remaining -= 1
            raise self._error(f"emitter down for {event.type.value}")
        self.delivered.append(event)


class StaticRoleResolver:
    """Role membership from a fixed mapping."""

    def __init__(self, members: dict[str, list[str]]) -> None:
        self._members = members

    def resolve(self, role_id: str, workspace_id: str) -> list[str]:
        return list(self._members.get(role_id, []))


__all__ = [
    "FIXED_NOW",
    "FailingNotificationEmitter",
    "MemoryCacheBackend",
    "MemoryReviewRequestRepository",
    "MemoryWorkflowRepository",
    "RecordingNotificationEmitter",
    "StaticRoleResolver",
    "step",
]
