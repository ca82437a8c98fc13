"""ReviewEngine: the review request state machine.

Every mutating operation follows the same shape: load the request, validate
the transition, build a ``RequestUpdate`` and commit it against the version
that was read. A concurrent writer makes the commit fail, in which case the
operation is replayed on fresh state, so a step can only advance once.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timedelta
from typing import Callable, Optional, TypeVar, assert_never

from reviewflow.core.clock import SystemClock
from reviewflow.core.exceptions import (
    AlreadyDecidedError,
    ConcurrentModificationError,
    InvalidTransitionError,
    NotAssigneeError,
    NotFoundError,
    ValidationError,
)
from reviewflow.core.protocols import (
    IClock,
    INotificationEmitter,
    IReviewRequestRepository,
    IRoleResolver,
)
from reviewflow.engine.definitions import MAX_STEP_ASSIGNEES, WorkflowDefinitionStore
from reviewflow.engine.policies import quorum_reached
from reviewflow.models.events import EventType, ReviewEvent
from reviewflow.models.review import (
    Approve,
    Assignment,
    AssignmentStatus,
    ChangeRequestRecord,
    ChangeRequestStatus,
    Decision,
    DecisionResult,
    DecisionType,
    RecordedDecision,
    Reject,
    RequestChanges,
    RequestUpdate,
    ReviewRequest,
    ReviewStatus,
)
from reviewflow.models.workflow import AssigneeType, WorkflowStep
from reviewflow.notifications.emitters import NullNotificationEmitter

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _new_id() -> str:
    return str(uuid.uuid4())


class ReviewEngine:
    """Starts reviews and moves them through their steps."""

    def __init__(
        self,
        definitions: WorkflowDefinitionStore,
        requests: IReviewRequestRepository,
        *,
        clock: Optional[IClock] = None,
        emitter: Optional[INotificationEmitter] = None,
        role_resolver: Optional[IRoleResolver] = None,
        max_commit_attempts: int = 3,
    ) -> None:
        self._definitions = definitions
        self._requests = requests
        self._clock = clock or SystemClock()
        self._emitter = emitter or NullNotificationEmitter()
        self._roles = role_resolver
        self._max_attempts = max(1, max_commit_attempts)

    # ---- reads ----

    def get_request(self, request_id: str) -> ReviewRequest:
        req = self._requests.get(request_id)
        if req is None:
            raise NotFoundError("ReviewRequest", request_id)
        return req

    def list_requests(
        self, workspace_id: str, status: Optional[ReviewStatus] = None
    ) -> list[ReviewRequest]:
        return self._requests.list_by_workspace(workspace_id, status)

    def list_assignments(self, request_id: str, step_index: Optional[int] = None) -> list[Assignment]:
        self.get_request(request_id)
        return self._requests.list_assignments(request_id, step_index)

    def list_change_requests(self, request_id: str) -> list[ChangeRequestRecord]:
        self.get_request(request_id)
        return self._requests.list_change_requests(request_id)

    def list_events(self, request_id: str) -> list[ReviewEvent]:
        self.get_request(request_id)
        return sorted(self._requests.list_events(request_id), key=lambda e: e.created_at)

    # ---- operations ----

    def start_review(
        self, workspace_id: str, knowledge_id: str, workflow_id: str, initiator_id: str
    ) -> ReviewRequest:
        workflow = self._definitions.get_workflow(workflow_id)
        if workflow.workspace_id != workspace_id:
            raise NotFoundError("Workflow", workflow_id)

        now = self._clock.now()
        request = ReviewRequest(
            id=_new_id(),
            workspace_id=workspace_id,
            knowledge_id=knowledge_id,
            workflow_id=workflow_id,
            initiator_id=initiator_id,
            status=ReviewStatus.IN_PROGRESS,
            version=1,
            created_at=now,
            updated_at=now,
        )

        step = workflow.step(0)
        assignments = self._seed(request, step, now)
        events = [
            self._event(EventType.REVIEW_STARTED, request, now, actor_id=initiator_id,
                        metadata={"knowledge_id": knowledge_id}),
            *self._assigned_events(request, assignments, now),
        ]
        update = RequestUpdate(request=request, expected_version=0, assignments=assignments, events=events)
        self._requests.commit(update)
        logger.info(
            "review_started",
            extra={"request_id": request.id, "workflow_id": workflow_id, "assignees": len(assignments)},
        )
        self._notify(events)
        return request

    def record_decision(self, request_id: str, assignee_id: str, decision: Decision) -> DecisionResult:
        def apply(req: ReviewRequest) -> tuple[RequestUpdate, DecisionResult]:
            if req.status != ReviewStatus.IN_PROGRESS:
                raise InvalidTransitionError(req.id, req.status, "record a decision on")
            workflow = self._definitions.get_workflow(req.workflow_id)
            step_index = req.current_step_index
            current = self._current_assignments(req)
            mine = [a for a in current if a.assignee_id == assignee_id]
            if not mine:
                raise NotAssigneeError(req.id, assignee_id, step_index)
            open_ = [a for a in mine if a.is_open]
            if not open_:
                raise AlreadyDecidedError(req.id, assignee_id, step_index)

            now = self._clock.now()
            assignment = open_[0]
            assignment.status = AssignmentStatus.DECIDED
            assignment.decision = RecordedDecision(
                decision=DecisionType(decision.decision), comment=decision.comment, decided_at=now,
            )
            new = self._bump(req, now)
            update = RequestUpdate(request=new, expected_version=req.version, assignments=[assignment])
            update.events.append(self._event(
                EventType.DECISION_RECORDED, new, now, step_index=step_index, actor_id=assignee_id,
                metadata={"decision": decision.decision, "comment": decision.comment},
            ))

            advanced = False
            match decision:
                case Reject():
                    new.status = ReviewStatus.REJECTED
                    update.events.append(self._event(EventType.REVIEW_REJECTED, new, now,
                                                     step_index=step_index, actor_id=assignee_id))
                case RequestChanges():
                    new.status = ReviewStatus.CHANGES_REQUESTED
                    record = ChangeRequestRecord(
                        id=_new_id(), request_id=req.id, step_index=step_index,
                        summary=decision.comment, requested_by=assignee_id, created_at=now,
                    )
                    update.change_requests.append(record)
                    update.events.append(self._event(EventType.CHANGES_REQUESTED, new, now,
                                                     step_index=step_index, actor_id=assignee_id,
                                                     metadata={"change_request_id": record.id}))
                case Approve():
                    step = workflow.step(step_index)
                    decided = [assignment if a.id == assignment.id else a for a in current]
                    if quorum_reached(step.type, decided):
                        advanced = True
                        if step_index >= workflow.last_step_index:
                            new.status = ReviewStatus.APPROVED
                            update.events.append(self._event(EventType.REVIEW_APPROVED, new, now,
                                                             step_index=step_index))
                        else:
                            new.current_step_index = step_index + 1
                            seeded = self._seed(new, workflow.step(new.current_step_index), now)
                            update.assignments.extend(seeded)
                            update.events.append(self._event(
                                EventType.STEP_ADVANCED, new, now, step_index=new.current_step_index,
                                metadata={"from_step": step_index},
                            ))
                            update.events.extend(self._assigned_events(new, seeded, now))
                case _:
                    assert_never(decision)

            return update, DecisionResult(status=new.status, advanced=advanced)

        result = self._apply(request_id, apply)
        logger.info(
            "decision_recorded",
            extra={
                "request_id": request_id,
                "assignee_id": assignee_id,
                "decision": decision.decision,
                "status": result.status.value,
                "advanced": result.advanced,
            },
        )
        return result

    def request_changes(
        self,
        request_id: str,
        version_from_id: str,
        version_to_id: str,
        summary: Optional[str] = None,
        requested_by: Optional[str] = None,
    ) -> ChangeRequestRecord:
        def apply(req: ReviewRequest) -> tuple[RequestUpdate, ChangeRequestRecord]:
            if req.status != ReviewStatus.IN_PROGRESS:
                raise InvalidTransitionError(req.id, req.status, "request changes on")
            now = self._clock.now()
            new = self._bump(req, now)
            new.status = ReviewStatus.CHANGES_REQUESTED
            record = ChangeRequestRecord(
                id=_new_id(),
                request_id=req.id,
                step_index=req.current_step_index,
                version_from_id=version_from_id,
                version_to_id=version_to_id,
                summary=summary,
                requested_by=requested_by,
                created_at=now,
            )
            event = self._event(
                EventType.CHANGES_REQUESTED, new, now, step_index=req.current_step_index,
                actor_id=requested_by,
                metadata={"change_request_id": record.id, "from": version_from_id, "to": version_to_id},
            )
            update = RequestUpdate(
                request=new, expected_version=req.version, change_requests=[record], events=[event],
            )
            return update, record

        record = self._apply(request_id, apply)
        logger.info("changes_requested", extra={"request_id": request_id, "change_request_id": record.id})
        return record

    def reopen(self, request_id: str, actor_id: Optional[str] = None) -> ReviewRequest:
        def apply(req: ReviewRequest) -> tuple[RequestUpdate, ReviewRequest]:
            if req.status != ReviewStatus.CHANGES_REQUESTED:
                raise InvalidTransitionError(req.id, req.status, "reopen")
            workflow = self._definitions.get_workflow(req.workflow_id)
            now = self._clock.now()
            new = self._bump(req, now)
            new.status = ReviewStatus.IN_PROGRESS
            new.cycle = req.cycle + 1

            addressed = []
            for record in self._requests.list_change_requests(req.id):
                if record.status == ChangeRequestStatus.OPEN:
                    record.status = ChangeRequestStatus.ADDRESSED
                    addressed.append(record)

            seeded = self._seed(new, workflow.step(new.current_step_index), now)
            events = [
                self._event(EventType.REVIEW_REOPENED, new, now, step_index=new.current_step_index,
                            actor_id=actor_id, metadata={"cycle": new.cycle}),
                *self._assigned_events(new, seeded, now),
            ]
            update = RequestUpdate(
                request=new, expected_version=req.version, assignments=seeded,
                change_requests=addressed, events=events,
            )
            return update, new

        reopened = self._apply(request_id, apply)
        logger.info(
            "review_reopened",
            extra={"request_id": request_id, "step_index": reopened.current_step_index, "cycle": reopened.cycle},
        )
        return reopened

    # ---- internals ----

    def _apply(self, request_id: str, build: Callable[[ReviewRequest], tuple[RequestUpdate, T]]) -> T:
        """Build and commit an update, replaying on concurrent modification."""
        attempt = 0
        while True:
            attempt += 1
            req = self.get_request(request_id)
            update, result = build(req)
            try:
                self._requests.commit(update)
            except ConcurrentModificationError:
                logger.warning(
                    "review_commit_conflict",
                    extra={"request_id": request_id, "attempt": attempt, "version": req.version},
                )
                if attempt >= self._max_attempts:
                    raise
                continue
            self._notify(update.events)
            return result

    def _current_assignments(self, req: ReviewRequest) -> list[Assignment]:
        """Assignments of the active step in the active cycle; earlier cycles are superseded."""
        return [
            a for a in self._requests.list_assignments(req.id, req.current_step_index)
            if a.cycle == req.cycle
        ]

    def _resolve(self, step: WorkflowStep, workspace_id: str) -> list[str]:
        users: list[str] = []
        for assignee in step.assignees:
            if assignee.assignee_type == AssigneeType.ROLE and self._roles is not None:
                resolved = self._roles.resolve(assignee.assignee_id, workspace_id)
            else:
                resolved = [assignee.assignee_id]
            for user_id in resolved:
                if user_id not in users:
                    users.append(user_id)
        return users

    def _seed(self, req: ReviewRequest, step: WorkflowStep, now: datetime) -> list[Assignment]:
        users = self._resolve(step, req.workspace_id)
        if not users:
            raise ValidationError(f"steps[{step.index}].assignees", "no users resolved for step")
        if len(users) > MAX_STEP_ASSIGNEES:
            raise ValidationError(
                f"steps[{step.index}].assignees",
                f"resolved to {len(users)} users, at most {MAX_STEP_ASSIGNEES} per step",
            )
        due_at = now + timedelta(hours=step.sla_hours) if step.sla_hours else None
        return [
            Assignment(
                id=_new_id(),
                request_id=req.id,
                step_index=step.index,
                cycle=req.cycle,
                assignee_id=user_id,
                due_at=due_at,
                created_at=now,
            )
            for user_id in users
        ]

    @staticmethod
    def _bump(req: ReviewRequest, now: datetime) -> ReviewRequest:
        new = req.model_copy()
        new.version = req.version + 1
        new.updated_at = now
        return new

    @staticmethod
    def _event(
        type_: EventType,
        req: ReviewRequest,
        now: datetime,
        *,
        step_index: Optional[int] = None,
        actor_id: Optional[str] = None,
        assignee_id: Optional[str] = None,
        metadata: Optional[dict] = None,
    ) -> ReviewEvent:
        return ReviewEvent(
            id=_new_id(),
            type=type_,
            request_id=req.id,
            workflow_id=req.workflow_id,
            step_index=req.current_step_index if step_index is None else step_index,
            actor_id=actor_id,
            assignee_id=assignee_id,
            metadata=metadata or {},
            created_at=now,
        )

    def _assigned_events(self, req: ReviewRequest, assignments: list[Assignment], now: datetime) -> list[ReviewEvent]:
        return [
            self._event(
                EventType.STEP_ASSIGNED, req, now, step_index=a.step_index, assignee_id=a.assignee_id,
                metadata={"assignment_id": a.id, "due_at": a.due_at.isoformat() if a.due_at else None},
            )
            for a in assignments
        ]

    def _notify(self, events: list[ReviewEvent]) -> None:
        """Deliver committed events; a failing emitter never undoes the commit."""
        for event in events:
            try:
                self._emitter.emit(event)
            except Exception:
                logger.warning(
                    "review_notify_failed",
                    extra={"event_type": event.type.value, "request_id": event.request_id},
                    exc_info=True,
                )
