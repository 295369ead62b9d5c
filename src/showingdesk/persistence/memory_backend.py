"""In-memory backends for unit tests and local runs — dict-backed fakes."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Callable

from showingdesk.core.exceptions import RequestExistsError
from showingdesk.models.events import TimerToken
from showingdesk.models.preferences import Candidate, Handler, PreferenceList
from showingdesk.models.request import RecordPatch, RequestRecord, matches

ChangeListener = Callable[[RequestRecord | None, RequestRecord], None]


class MemoryRequestStore:
    """Dict-backed IRequestStore with a change feed.

    Subscribers receive ``(before, after)`` after every successful write,
    outside the store lock, the way a document store's change trigger fires
    after commit.
    """

    def __init__(self) -> None:
        self._records: dict[str, RequestRecord] = {}
        self._lock = threading.Lock()
        self._listeners: list[ChangeListener] = []

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _emit(self, before: RequestRecord | None, after: RequestRecord) -> None:
        for listener in list(self._listeners):
            listener(before, after)

    def read(self, request_id: str) -> RequestRecord | None:
        with self._lock:
            record = self._records.get(request_id)
            return record.model_copy(deep=True) if record else None

    def create(self, record: RequestRecord) -> None:
        with self._lock:
            if record.id in self._records:
                raise RequestExistsError(record.id)
            self._records[record.id] = record.model_copy(deep=True)
        self._emit(None, record.model_copy(deep=True))

    def compare_and_update(
        self, request_id: str, expected: dict[str, Any], patch: RecordPatch
    ) -> bool:
        with self._lock:
            current = self._records.get(request_id)
            if current is None or not matches(current, expected):
                return False
            updated = patch.apply(current)
            self._records[request_id] = updated
            before, after = current.model_copy(deep=True), updated.model_copy(deep=True)
        self._emit(before, after)
        return True


class MemoryPreferenceStore:
    """Dict-backed IPreferenceStore for unit tests."""

    def __init__(self) -> None:
        self._preferences: dict[str, PreferenceList] = {}

    def put(self, preferences: PreferenceList) -> None:
        self._preferences[preferences.requester_id] = preferences

    def get_preferences(self, requester_id: str) -> PreferenceList | None:
        return self._preferences.get(requester_id)

    def get_candidates(self, requester_id: str) -> list[Candidate]:
        prefs = self._preferences.get(requester_id)
        return prefs.ordered_candidates() if prefs else []


class MemoryHandlerDirectory:
    """List-backed IHandlerDirectory; insertion order is the snapshot order."""

    def __init__(self, handlers: list[Handler] | None = None) -> None:
        self._handlers: list[Handler] = list(handlers or [])

    def add(self, handler: Handler) -> None:
        self._handlers.append(handler)

    def list_all_handlers(self) -> list[Handler]:
        return list(self._handlers)


class MemoryCacheBackend:
    """Dict-backed ICacheBackend for unit tests."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)


class MemoryTimerScheduler:
    """Dict-backed ITimerScheduler keyed by token."""

    def __init__(self) -> None:
        self._timers: dict[TimerToken, datetime] = {}
        self._lock = threading.Lock()

    def schedule(self, token: TimerToken, due_at: datetime) -> None:
        with self._lock:
            self._timers[token] = due_at

    def cancel(self, request_id: str) -> None:
        with self._lock:
            for token in [t for t in self._timers if t.request_id == request_id]:
                del self._timers[token]

    def pop_due(self, now: datetime) -> list[TimerToken]:
        with self._lock:
            due = sorted(
                (t for t, at in self._timers.items() if at <= now),
                key=lambda t: self._timers[t],
            )
            for token in due:
                del self._timers[token]
            return due

    def pending(self, request_id: str | None = None) -> dict[TimerToken, datetime]:
        """Snapshot of armed timers, optionally for one request."""
        with self._lock:
            return {
                t: at for t, at in self._timers.items()
                if request_id is None or t.request_id == request_id
            }
