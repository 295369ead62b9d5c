"""Protocol interfaces for all showingdesk abstractions.

All inter-layer communication uses these Protocols — structural typing,
no inheritance required, easy to test with isinstance().
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from showingdesk.models.events import TimerToken
    from showingdesk.models.preferences import Candidate, Handler, PreferenceList
    from showingdesk.models.request import RecordPatch, RequestRecord


# ---------------------------------------------------------------------------
# Persistence: Request Record Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IRequestStore(Protocol):
    """Per-request state with conditional partial updates."""

    def read(self, request_id: str) -> RequestRecord | None: ...

    def create(self, record: RequestRecord) -> None: ...

    def compare_and_update(
        self, request_id: str, expected: dict[str, Any], patch: RecordPatch
    ) -> bool: ...


# ---------------------------------------------------------------------------
# Persistence: Preference Store / Handler Directory
# ---------------------------------------------------------------------------

@runtime_checkable
class IPreferenceStore(Protocol):
    """Requester -> ordered preferred handlers. Read-only to the engine."""

    def get_preferences(self, requester_id: str) -> PreferenceList | None: ...

    def get_candidates(self, requester_id: str) -> list[Candidate]: ...


@runtime_checkable
class IHandlerDirectory(Protocol):
    """Public pool of eligible handlers, filtered by role."""

    def list_all_handlers(self) -> list[Handler]: ...


# ---------------------------------------------------------------------------
# Persistence: Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

@runtime_checkable
class ITimerScheduler(Protocol):
    """Deferred re-invocation of the engine.

    Scheduling a token that is already pending replaces its due time.
    """

    def schedule(self, token: TimerToken, due_at: datetime) -> None: ...

    def cancel(self, request_id: str) -> None: ...

    def pop_due(self, now: datetime) -> list[TimerToken]: ...


@runtime_checkable
class IClock(Protocol):
    """Source of timezone-aware UTC timestamps."""

    def now(self) -> datetime: ...


# ---------------------------------------------------------------------------
# Notification Sink
# ---------------------------------------------------------------------------

@runtime_checkable
class INotificationSink(Protocol):
    """Fire-and-forget "tell handler X about request Y"."""

    def notify(self, handler_id: str, request_id: str) -> None: ...
