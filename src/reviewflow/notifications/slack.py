"""Slack incoming-webhook emitter for assignment and escalation alerts."""

from __future__ import annotations

from typing import Optional

import httpx

from reviewflow.core.exceptions import NotificationError
from reviewflow.models.events import EventType, ReviewEvent


def format_message(event: ReviewEvent) -> Optional[str]:
    """Slack text for an event, or None when the event is not worth a ping."""
    if event.type == EventType.STEP_ASSIGNED:
        return (
            f"Review assigned (req={event.request_id}, step={event.step_index}) "
            f"-> {event.assignee_id}"
        )
    if event.type == EventType.ESCALATION_TRIGGERED:
        overdue = ""
        if event.overdue_by is not None:
            overdue = f", overdue by {int(event.overdue_by.total_seconds() // 60)} min"
        return (
            f"Escalation triggered (req={event.request_id}, step={event.step_index}, "
            f"assignee={event.assignee_id}{overdue})"
        )
    return None


class SlackNotificationEmitter:
    """Posts selected events to a Slack webhook."""

    def __init__(self, webhook_url: str, timeout: float = 5.0,
                 client: httpx.Client | None = None) -> None:
        self._webhook_url = webhook_url
        self._client = client or httpx.Client(timeout=timeout)

    def emit(self, event: ReviewEvent) -> None:
        text = format_message(event)
        if text is None:
            return
        try:
            response = self._client.post(self._webhook_url, json={"text": text})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise NotificationError(f"Slack webhook failed for event {event.id!r}: {exc}") from exc

    def close(self) -> None:
        self._client.close()
