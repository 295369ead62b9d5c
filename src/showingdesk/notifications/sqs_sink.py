"""SQS-backed notification sink.

Delivery (push, email) is owned by whoever consumes the queue; this sink only
enqueues one message per notification.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from showingdesk.core.exceptions import NotificationError


class SQSNotificationSink:
    """Production INotificationSink backed by an SQS queue."""

    def __init__(self, queue_url: str, region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._queue_url = queue_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._client = boto3.client("sqs", **kwargs)

    def notify(self, handler_id: str, request_id: str) -> None:
        body = {
            "type": "showing_request",
            "handlerId": handler_id,
            "requestId": request_id,
            "createdAt": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self._client.send_message(QueueUrl=self._queue_url, MessageBody=json.dumps(body))
        except (ClientError, BotoCoreError) as exc:
            raise NotificationError(
                f"SQS send failed for handler={handler_id!r}, request={request_id!r}: {exc}"
            ) from exc
