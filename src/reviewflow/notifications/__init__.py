"""Notification emitters wired from application settings."""

from __future__ import annotations

from reviewflow.core.config import AppSettings
from reviewflow.core.protocols import INotificationEmitter
from reviewflow.notifications.emitters import CombinedNotificationEmitter, NullNotificationEmitter
from reviewflow.notifications.slack import SlackNotificationEmitter
from reviewflow.notifications.sqs import SQSNotificationEmitter


def create_emitter(settings: AppSettings | None = None) -> INotificationEmitter:
    """Build the emitter chain configured in settings.

    Returns a ``NullNotificationEmitter`` when no channel is configured.
    """
    if settings is None:
        settings = AppSettings()

    emitters: list[INotificationEmitter] = []
    if settings.sqs.notification_queue_url:
        emitters.append(SQSNotificationEmitter(
            queue_url=settings.sqs.notification_queue_url,
            region=settings.sqs.region,
            endpoint_url=settings.sqs.endpoint_url,
        ))
    if settings.slack.webhook_url:
        emitters.append(SlackNotificationEmitter(
            webhook_url=settings.slack.webhook_url,
            timeout=settings.slack.timeout,
        ))

    if not emitters:
        return NullNotificationEmitter()
    if len(emitters) == 1:
        return emitters[0]
    return CombinedNotificationEmitter(emitters)
