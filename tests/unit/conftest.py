"""Unit test fixtures: engine services over in-memory repositories and a manual clock."""

from __future__ import annotations

import pytest

from reviewflow.core.clock import ManualClock
from reviewflow.engine.definitions import WorkflowDefinitionStore
from reviewflow.engine.escalation import EscalationScheduler
from reviewflow.engine.reviews import ReviewEngine
from tests.fakes import (
    FIXED_NOW,
    MemoryReviewRequestRepository,
    MemoryWorkflowRepository,
    RecordingNotificationEmitter,
    step,
)


@pytest.fixture
def clock():
    return ManualClock(FIXED_NOW)


@pytest.fixture
def emitter():
    return RecordingNotificationEmitter()


@pytest.fixture
def workflow_repo():
    return MemoryWorkflowRepository()


@pytest.fixture
def request_repo():
    return MemoryReviewRequestRepository()


@pytest.fixture
def definitions(workflow_repo, clock, emitter):
    return WorkflowDefinitionStore(workflow_repo, clock=clock, emitter=emitter)


@pytest.fixture
def engine(definitions, request_repo, clock, emitter):
    return ReviewEngine(definitions, request_repo, clock=clock, emitter=emitter)


@pytest.fixture
def scheduler(request_repo, clock, emitter):
    return EscalationScheduler(request_repo, clock=clock, emitter=emitter)


@pytest.fixture
def two_step(definitions):
    return definitions.create_workflow(
        "w1", "Two Step", [step(0, "Peer", "peer"), step(1, "Lead", "lead")],
    )


@pytest.fixture
def single_step(definitions):
    return definitions.create_workflow("w1", "Single", [step(0, "Review", "reviewer")])
