"""EscalationScheduler: flags assignments that outlived their step SLA."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from reviewflow.core.clock import SystemClock
from reviewflow.core.protocols import IClock, INotificationEmitter, IReviewRequestRepository
from reviewflow.models.events import EscalationReport, EventType, ReviewEvent
from reviewflow.models.review import Assignment, AssignmentStatus, ReviewRequest, ReviewStatus
from reviewflow.notifications.emitters import NullNotificationEmitter

logger = logging.getLogger(__name__)


class EscalationScheduler:
    """One bounded sweep per call; triggered externally (cron, admin endpoint).

    Escalation is advisory: it never changes the request status and never
    blocks a later decision on the escalated assignment.
    """

    def __init__(
        self,
        requests: IReviewRequestRepository,
        *,
        clock: Optional[IClock] = None,
        emitter: Optional[INotificationEmitter] = None,
    ) -> None:
        self._requests = requests
        self._clock = clock or SystemClock()
        self._emitter = emitter or NullNotificationEmitter()

    def run_escalations(self, now: Optional[datetime] = None) -> int:
        """Escalate every overdue assignment and return how many were escalated."""
        return self.sweep(now).escalated_count

    def sweep(self, now: Optional[datetime] = None) -> EscalationReport:
        now = now or self._clock.now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)

        report = EscalationReport()
        requests: dict[str, Optional[ReviewRequest]] = {}
        due = sorted(self._requests.list_due_assignments(now), key=lambda a: (a.due_at, a.id))

        for assignment in due:
            if assignment.request_id not in requests:
                requests[assignment.request_id] = self._requests.get(assignment.request_id)
            req = requests[assignment.request_id]
            if req is None or not self._is_active(req, assignment):
                continue

            # Conditional write; a decision that landed first wins.
            if not self._requests.transition_assignment(
                assignment, AssignmentStatus.PENDING, AssignmentStatus.ESCALATED, at=now,
            ):
                continue

            event = ReviewEvent(
                id=str(uuid.uuid4()),
                type=EventType.ESCALATION_TRIGGERED,
                request_id=req.id,
                workflow_id=req.workflow_id,
                step_index=assignment.step_index,
                assignee_id=assignment.assignee_id,
                overdue_by=now - assignment.due_at,
                metadata={"assignment_id": assignment.id, "due_at": assignment.due_at.isoformat()},
                created_at=now,
            )
            try:
                self._emitter.emit(event)
                self._requests.append_event(event)
            except Exception:
                logger.warning(
                    "escalation_failed",
                    extra={"request_id": req.id, "assignment_id": assignment.id},
                    exc_info=True,
                )
                self._requests.transition_assignment(
                    assignment, AssignmentStatus.ESCALATED, AssignmentStatus.PENDING,
                )
                report.failed.append(assignment.id)
                continue

            report.escalated.append(assignment.id)

        logger.info(
            "escalation_sweep_finished",
            extra={"escalated": report.escalated_count, "failed": len(report.failed), "scanned": len(due)},
        )
        return report

    @staticmethod
    def _is_active(req: ReviewRequest, assignment: Assignment) -> bool:
        return (
            req.status == ReviewStatus.IN_PROGRESS
            and assignment.step_index == req.current_step_index
            and assignment.cycle == req.cycle
        )
