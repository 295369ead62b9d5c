"""Shared test doubles — re-export memory backends."""

from __future__ import annotations

from showingdesk.core.clock import ManualClock
from showingdesk.notifications.memory_sink import RecordingNotificationSink
from showingdesk.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryHandlerDirectory,
    MemoryPreferenceStore,
    MemoryRequestStore,
    MemoryTimerScheduler,
)

__all__ = [
    "ManualClock",
    "MemoryCacheBackend",
    "MemoryHandlerDirectory",
    "MemoryPreferenceStore",
    "MemoryRequestStore",
    "MemoryTimerScheduler",
    "RecordingNotificationSink",
]
