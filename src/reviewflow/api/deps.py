"""Request-scoped access to the engine services held on app state."""

from __future__ import annotations

from fastapi import Request

from reviewflow.engine import ReviewServices


def get_services(request: Request) -> ReviewServices:
    return request.app.state.services
