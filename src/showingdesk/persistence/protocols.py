"""Re-export persistence protocols from core for convenience."""

from __future__ import annotations

from showingdesk.core.protocols import (
    ICacheBackend,
    IHandlerDirectory,
    IPreferenceStore,
    IRequestStore,
    ITimerScheduler,
)

__all__ = ["ICacheBackend", "IHandlerDirectory", "IPreferenceStore", "IRequestStore", "ITimerScheduler"]
