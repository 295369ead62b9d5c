"""Recording notification sink for unit tests and local runs."""

from __future__ import annotations

from showingdesk.core.exceptions import NotificationError


class RecordingNotificationSink:
    """INotificationSink that keeps every call; can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail_for: set[str] = set()

    def notify(self, handler_id: str, request_id: str) -> None:
        if handler_id in self.fail_for:
            raise NotificationError(f"delivery to {handler_id!r} failed")
        self.sent.append((handler_id, request_id))

    def handlers_for(self, request_id: str) -> list[str]:
        return [h for h, r in self.sent if r == request_id]
