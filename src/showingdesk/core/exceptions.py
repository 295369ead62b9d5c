"""showingdesk exception hierarchy."""

from __future__ import annotations


class ShowingDeskError(Exception):
    """Base exception for all showingdesk errors."""


class RecordNotFoundError(ShowingDeskError):
    """Showing request record does not exist."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"Showing request {request_id!r} not found")


class RequestExistsError(ShowingDeskError):
    """A record with this request id already exists."""

    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        super().__init__(f"Showing request {request_id!r} already exists")


class InvalidTransitionError(ShowingDeskError):
    """Requested status change is not allowed from the record's current status."""

    def __init__(self, request_id: str, current: str, target: str) -> None:
        self.request_id = request_id
        self.current = current
        self.target = target
        super().__init__(f"Request {request_id!r} cannot move from {current} to {target}")


class UpstreamUnavailableError(ShowingDeskError):
    """Preference store or handler directory read failed."""


class NotificationError(ShowingDeskError):
    """Notification sink rejected or failed to deliver a notification."""


class CacheError(ShowingDeskError):
    """Redis cache operation failed."""


class SchedulerError(ShowingDeskError):
    """Timer scheduler operation failed."""
