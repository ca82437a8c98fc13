"""Tests for review model helpers and decision parsing."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from reviewflow.models.review import (
    Approve,
    Assignment,
    AssignmentStatus,
    DecisionBody,
    RequestChanges,
    ReviewStatus,
)
from tests.fakes import FIXED_NOW


class TestDecisionBody:
    def test_parses_by_tag(self):
        body = DecisionBody.model_validate({"decision": "REQUEST_CHANGES", "comment": "fix"})
        assert isinstance(body.root, RequestChanges)
        assert body.root.comment == "fix"

    def test_comment_optional(self):
        assert isinstance(DecisionBody.model_validate({"decision": "APPROVE"}).root, Approve)

    def test_unknown_tag_rejected(self):
        with pytest.raises(ValidationError):
            DecisionBody.model_validate({"decision": "ABSTAIN"})


@pytest.mark.parametrize(
    "status, terminal",
    [
        (ReviewStatus.PENDING, False),
        (ReviewStatus.IN_PROGRESS, False),
        (ReviewStatus.CHANGES_REQUESTED, False),
        (ReviewStatus.APPROVED, True),
        (ReviewStatus.REJECTED, True),
    ],
)
def test_is_terminal(status, terminal):
    assert status.is_terminal is terminal


@pytest.mark.parametrize(
    "status, open_",
    [
        (AssignmentStatus.PENDING, True),
        (AssignmentStatus.ESCALATED, True),
        (AssignmentStatus.DECIDED, False),
    ],
)
def test_assignment_is_open(status, open_):
    a = Assignment(id="a1", request_id="r1", step_index=0, assignee_id="u1", status=status, created_at=FIXED_NOW)
    assert a.is_open is open_
