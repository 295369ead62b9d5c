"""Unit tests for SQSNotificationSink using moto."""

from __future__ import annotations

import json

import boto3
import pytest
from moto import mock_aws

from showingdesk.core.exceptions import NotificationError
from showingdesk.notifications import RecordingNotificationSink, SQSNotificationSink

REGION = "us-east-1"


@pytest.fixture
def queue_url():
    with mock_aws():
        client = boto3.client("sqs", region_name=REGION)
        yield client.create_queue(QueueName="showingdesk-notifications-test")["QueueUrl"]


class TestSQSNotificationSink:
    def test_enqueues_one_message_per_notification(self, queue_url):
        sink = SQSNotificationSink(queue_url=queue_url, region=REGION)

        sink.notify("agent-ava", "sr-1")

        client = boto3.client("sqs", region_name=REGION)
        messages = client.receive_message(QueueUrl=queue_url, MaxNumberOfMessages=10)["Messages"]
        assert len(messages) == 1
        body = json.loads(messages[0]["Body"])
        assert body["type"] == "showing_request"
        assert body["handlerId"] == "agent-ava"
        assert body["requestId"] == "sr-1"
        assert "createdAt" in body

    def test_missing_queue_raises_notification_error(self, queue_url):
        sink = SQSNotificationSink(queue_url=queue_url + "-missing", region=REGION)
        with pytest.raises(NotificationError):
            sink.notify("agent-ava", "sr-1")


class TestRecordingNotificationSink:
    def test_records_and_filters_by_request(self):
        sink = RecordingNotificationSink()
        sink.notify("ava", "sr-1")
        sink.notify("ben", "sr-2")
        assert sink.handlers_for("sr-1") == ["ava"]

    def test_fail_for_raises(self):
        sink = RecordingNotificationSink()
        sink.fail_for.add("ava")
        with pytest.raises(NotificationError):
            sink.notify("ava", "sr-1")
        assert sink.sent == []
