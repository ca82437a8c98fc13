"""Access guard implementations and the FastAPI dependency that applies them."""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Callable, Optional

from fastapi import Depends, Header, HTTPException, Request
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class Action(StrEnum):
    WORKFLOW_MANAGE = "workflow:manage"
    REVIEW_READ = "review:read"
    REVIEW_START = "review:start"
    REVIEW_DECIDE = "review:decide"
    REVIEW_REQUEST_CHANGES = "review:request_changes"
    REVIEW_REOPEN = "review:reopen"
    REVIEW_ESCALATE = "review:escalate"


class Caller(BaseModel):
    user_id: str
    workspace_id: str


class AllowAllAccessGuard:
    """Authorizes everything. Default for local development."""

    def authorize(
        self, user_id: str, workspace_id: str, action: str, resource_id: Optional[str] = None
    ) -> bool:
        return True


class GrantAccessGuard:
    """Static per-user grants; ``"*"`` grants every action."""

    def __init__(self, grants: dict[str, set[str]]) -> None:
        self._grants = grants

    def authorize(
        self, user_id: str, workspace_id: str, action: str, resource_id: Optional[str] = None
    ) -> bool:
        allowed = self._grants.get(user_id, set())
        return "*" in allowed or action in allowed


def get_caller(
    x_user_id: Optional[str] = Header(default=None),
    x_workspace_id: Optional[str] = Header(default=None),
) -> Caller:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="x-user-id header required")
    if not x_workspace_id:
        raise HTTPException(status_code=400, detail="Workspace context required")
    return Caller(user_id=x_user_id, workspace_id=x_workspace_id)


def require(action: Action) -> Callable[..., Caller]:
    """Dependency factory: resolve the caller and check ``action`` with the app's guard."""

    def dependency(request: Request, caller: Caller = Depends(get_caller)) -> Caller:
        guard = request.app.state.guard
        resource_id = request.path_params.get("request_id") or request.path_params.get("workflow_id")
        if not guard.authorize(caller.user_id, caller.workspace_id, action.value, resource_id):
            logger.info(
                "access_denied",
                extra={"user_id": caller.user_id, "action": action.value, "resource_id": resource_id},
            )
            raise HTTPException(status_code=403, detail=f"{action.value} not permitted")
        return caller

    return dependency
