"""Wire an EscalationEngine from application settings."""

from __future__ import annotations

from typing import NamedTuple

from showingdesk.core.clock import SystemClock
from showingdesk.core.config import AppSettings
from showingdesk.core.protocols import IClock, INotificationSink
from showingdesk.engine.escalation import EscalationEngine
from showingdesk.notifications import RecordingNotificationSink, SQSNotificationSink
from showingdesk.persistence import Persistence, create_persistence


class Runtime(NamedTuple):
    settings: AppSettings
    persistence: Persistence
    notifier: INotificationSink
    clock: IClock
    engine: EscalationEngine


def create_notifier(settings: AppSettings) -> INotificationSink:
    if settings.backend == "memory" or not settings.sqs.notification_queue_url:
        return RecordingNotificationSink()
    return SQSNotificationSink(
        queue_url=settings.sqs.notification_queue_url,
        region=settings.sqs.region,
        endpoint_url=settings.sqs.endpoint_url,
    )


def create_runtime(
    settings: AppSettings | None = None,
    persistence: Persistence | None = None,
    notifier: INotificationSink | None = None,
    clock: IClock | None = None,
) -> Runtime:
    """Build the engine and its collaborators; any piece can be injected."""
    if settings is None:
        settings = AppSettings()
    persistence = persistence or create_persistence(settings)
    notifier = notifier or create_notifier(settings)
    clock = clock or SystemClock()
    engine = EscalationEngine(
        config=settings.escalation,
        requests=persistence.requests,
        preferences=persistence.preferences,
        directory=persistence.directory,
        notifier=notifier,
        scheduler=persistence.scheduler,
        clock=clock,
    )
    return Runtime(settings, persistence, notifier, clock, engine)
