"""SQS emitter: publishes review events for downstream delivery workers."""

from __future__ import annotations

import boto3
from botocore.exceptions import ClientError

from reviewflow.core.exceptions import NotificationError
from reviewflow.models.events import ReviewEvent


class SQSNotificationEmitter:
    """INotificationEmitter that sends each event as one JSON SQS message."""

    def __init__(self, queue_url: str, region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._queue_url = queue_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("sqs", **kwargs)

    def emit(self, event: ReviewEvent) -> None:
        try:
            self._client.send_message(
                QueueUrl=self._queue_url,
                MessageBody=event.model_dump_json(),
                MessageAttributes={
                    "eventType": {"DataType": "String", "StringValue": event.type.value},
                },
            )
        except ClientError as exc:
            raise NotificationError(f"SQS send failed for event {event.id!r}: {exc}") from exc
