"""Engine fixtures — memory backends on a manual clock."""

from __future__ import annotations

import pytest

from showingdesk.core.config import EscalationConfig
from showingdesk.engine import actions
from showingdesk.engine.escalation import EscalationEngine
from showingdesk.models.events import EscalationOutcome, TimerToken
from showingdesk.models.preferences import Candidate, Handler, PreferenceList
from showingdesk.models.request import RequestRecord
from showingdesk.triggers.timer_worker import TimerWorker
from tests.fakes import (
    ManualClock,
    MemoryHandlerDirectory,
    MemoryPreferenceStore,
    MemoryRequestStore,
    MemoryTimerScheduler,
    RecordingNotificationSink,
)

REQUESTER = "listing-agent-1"
REQUEST_ID = "sr-1"


class EscalationHarness:
    """Engine plus fakes, stepped one second at a time."""

    def __init__(self, config: EscalationConfig) -> None:
        self.clock = ManualClock()
        self.start = self.clock.now()
        self.requests = MemoryRequestStore()
        self.preferences = MemoryPreferenceStore()
        self.directory = MemoryHandlerDirectory()
        self.notifier = RecordingNotificationSink()
        self.scheduler = MemoryTimerScheduler()
        self.engine = EscalationEngine(
            config=config,
            requests=self.requests,
            preferences=self.preferences,
            directory=self.directory,
            notifier=self.notifier,
            scheduler=self.scheduler,
            clock=self.clock,
        )
        self.worker = TimerWorker(self.engine, self.scheduler, self.clock)
        self.fired: list[tuple[TimerToken, EscalationOutcome | None]] = []

    @property
    def elapsed(self) -> int:
        return int((self.clock.now() - self.start).total_seconds())

    def set_candidates(self, *specs: tuple[str, int], max_duration: int | None = None,
                       requester_id: str = REQUESTER) -> None:
        self.preferences.put(PreferenceList(
            requester_id=requester_id,
            candidates=[
                Candidate(handler_id=h, display_name=h.title(), response_timeout_seconds=t, rank=i)
                for i, (h, t) in enumerate(specs)
            ],
            max_escalation_duration_seconds=max_duration,
        ))

    def set_directory(self, *handler_ids: str) -> None:
        for h in handler_ids:
            self.directory.add(Handler(handler_id=h, display_name=h.title()))

    def new_request(self, request_id: str = REQUEST_ID, requester_id: str = REQUESTER) -> RequestRecord:
        return actions.create_request(self.requests, self.clock, requester_id,
                                      {"address": "12 Elm St"}, request_id)

    def record(self, request_id: str = REQUEST_ID) -> RequestRecord:
        record = self.requests.read(request_id)
        assert record is not None
        return record

    def run_until(self, seconds: int) -> None:
        """Advance the clock to ``start + seconds``, firing due timers each second."""
        while self.elapsed < seconds:
            self.clock.advance(1)
            self.fired.extend(self.worker.run_once())


@pytest.fixture
def config() -> EscalationConfig:
    return EscalationConfig(
        default_response_timeout_seconds=5,
        max_escalation_duration_seconds=0,
        public_reevaluation_interval_seconds=10,
    )


@pytest.fixture
def harness(config) -> EscalationHarness:
    return EscalationHarness(config)
