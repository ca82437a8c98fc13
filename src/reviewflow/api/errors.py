"""Map engine exceptions onto HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from reviewflow.core.exceptions import (
    AlreadyDecidedError,
    ConcurrentModificationError,
    InvalidTransitionError,
    NotAssigneeError,
    NotFoundError,
    ReviewFlowError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR: list[tuple[type[ReviewFlowError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (NotAssigneeError, 403),
    (AlreadyDecidedError, 409),
    (InvalidTransitionError, 409),
    (ConcurrentModificationError, 409),
]


def _status_for(exc: ReviewFlowError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 500


async def reviewflow_error_handler(request: Request, exc: ReviewFlowError) -> JSONResponse:
    status = _status_for(exc)
    body: dict = {"error": type(exc).__name__, "detail": str(exc)}
    if isinstance(exc, ValidationError):
        body["field"] = exc.field
    if status == 500:
        logger.error("unhandled_reviewflow_error", extra={"path": request.url.path}, exc_info=exc)
    return JSONResponse(status_code=status, content=body)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ReviewFlowError, reviewflow_error_handler)
