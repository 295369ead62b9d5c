"""Notification sinks implementing INotificationSink."""

from __future__ import annotations

from showingdesk.notifications.memory_sink import RecordingNotificationSink
from showingdesk.notifications.sqs_sink import SQSNotificationSink

__all__ = ["RecordingNotificationSink", "SQSNotificationSink"]
