"""ReviewFlow exception hierarchy."""

from __future__ import annotations


class ReviewFlowError(Exception):
    """Base exception for all ReviewFlow errors."""


class ValidationError(ReviewFlowError):
    """Malformed workflow or step definition."""

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(ReviewFlowError):
    """Unknown workflow, review request or assignment."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} {identifier!r} not found")


class NotAssigneeError(ReviewFlowError):
    """Caller holds no assignment in the current step of the request."""

    def __init__(self, request_id: str, assignee_id: str, step_index: int) -> None:
        self.request_id = request_id
        self.assignee_id = assignee_id
        self.step_index = step_index
        super().__init__(
            f"{assignee_id!r} is not an assignee of step {step_index} on request {request_id!r}"
        )


class AlreadyDecidedError(ReviewFlowError):
    """The caller's assignment already carries a decision."""

    def __init__(self, request_id: str, assignee_id: str, step_index: int) -> None:
        self.request_id = request_id
        self.assignee_id = assignee_id
        self.step_index = step_index
        super().__init__(
            f"{assignee_id!r} already decided step {step_index} on request {request_id!r}"
        )


class InvalidTransitionError(ReviewFlowError):
    """Operation attempted against a request in the wrong state."""

    def __init__(self, request_id: str, status: str, operation: str) -> None:
        self.request_id = request_id
        self.status = status
        self.operation = operation
        super().__init__(f"Cannot {operation} request {request_id!r} in status {status}")


class ConcurrentModificationError(ReviewFlowError):
    """Optimistic version check failed while committing a request update."""

    def __init__(self, request_id: str, expected_version: int) -> None:
        self.request_id = request_id
        self.expected_version = expected_version
        super().__init__(
            f"Request {request_id!r} changed concurrently (expected version {expected_version})"
        )


class PersistenceError(ReviewFlowError):
    """Backing store operation failed."""


class CacheError(ReviewFlowError):
    """Redis cache operation failed."""


class NotificationError(ReviewFlowError):
    """Notification emitter could not deliver an event."""
