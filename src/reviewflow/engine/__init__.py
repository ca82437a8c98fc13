"""Review workflow engine services and their wiring."""

from __future__ import annotations

from dataclasses import dataclass

from reviewflow.core.clock import SystemClock
from reviewflow.core.config import AppSettings
from reviewflow.core.protocols import IClock, INotificationEmitter, IRoleResolver
from reviewflow.engine.definitions import WorkflowDefinitionStore
from reviewflow.engine.escalation import EscalationScheduler
from reviewflow.engine.reviews import ReviewEngine
from reviewflow.notifications import create_emitter
from reviewflow.persistence import create_persistence


@dataclass
class ReviewServices:
    definitions: WorkflowDefinitionStore
    reviews: ReviewEngine
    escalations: EscalationScheduler


def create_services(
    settings: AppSettings | None = None,
    *,
    clock: IClock | None = None,
    emitter: INotificationEmitter | None = None,
    role_resolver: IRoleResolver | None = None,
) -> ReviewServices:
    """Wire repositories, emitter and clock into the three engine services."""
    if settings is None:
        settings = AppSettings()
    clock = clock or SystemClock()
    emitter = emitter or create_emitter(settings)
    workflows, requests = create_persistence(settings)

    definitions = WorkflowDefinitionStore(workflows, clock=clock, emitter=emitter)
    return ReviewServices(
        definitions=definitions,
        reviews=ReviewEngine(
            definitions,
            requests,
            clock=clock,
            emitter=emitter,
            role_resolver=role_resolver,
            max_commit_attempts=settings.engine.max_commit_attempts,
        ),
        escalations=EscalationScheduler(requests, clock=clock, emitter=emitter),
    )
