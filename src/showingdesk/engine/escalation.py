"""EscalationEngine — moves a showing request through its candidates, then the public pool.

Every entry point is a short, independent step: read the record, decide,
arm the next timer, then apply at most one conditional patch. No lock is
held across the decision; the patch's expected fields (status, phase, and
index) are what keep concurrent or redelivered triggers from
double-escalating. A failed guard is the normal outcome of a race and is
reported as a no-op, never raised.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

import structlog

from showingdesk.core.clock import SystemClock
from showingdesk.core.config import EscalationConfig
from showingdesk.core.exceptions import NotificationError, SchedulerError, UpstreamUnavailableError
from showingdesk.core.protocols import (
    IClock,
    IHandlerDirectory,
    INotificationSink,
    IPreferenceStore,
    IRequestStore,
    ITimerScheduler,
)
from showingdesk.engine.state import live_token
from showingdesk.models.events import EscalationOutcome, TimerMode, TimerToken
from showingdesk.models.preferences import Candidate, Handler, PreferenceList
from showingdesk.models.request import RecordPatch, RequestRecord, RequestStatus

logger = structlog.get_logger(__name__)


class EscalationEngine:
    """Escalation state machine driven by creation, change, and timer triggers."""

    def __init__(
        self,
        *,
        config: EscalationConfig,
        requests: IRequestStore,
        preferences: IPreferenceStore,
        directory: IHandlerDirectory,
        notifier: INotificationSink,
        scheduler: ITimerScheduler,
        clock: IClock | None = None,
    ) -> None:
        self._config = config
        self._requests = requests
        self._preferences = preferences
        self._directory = directory
        self._notifier = notifier
        self._scheduler = scheduler
        self._clock = clock or SystemClock()

    # ---- entry points ----

    def on_request_created(self, request_id: str) -> EscalationOutcome:
        """Start escalation for a new request. Safe under duplicate delivery."""
        log = logger.bind(request_id=request_id, trigger="created")
        record = self._requests.read(request_id)
        if record is None:
            log.debug("request_not_found")
            return EscalationOutcome.NOT_FOUND
        if record.status != RequestStatus.PENDING:
            log.debug("request_not_pending", status=str(record.status))
            return EscalationOutcome.STALE
        if record.escalation_initialized:
            # Redelivery: make sure the live step still has its timer.
            self._rearm(record)
            log.debug("duplicate_creation", index=record.current_candidate_index,
                      public=record.is_public)
            return EscalationOutcome.DUPLICATE
        return self._initialize(record)

    def on_timer_fired(self, request_id: str, token: TimerToken) -> EscalationOutcome:
        """Advance if ``token`` still describes the record's current step."""
        log = logger.bind(request_id=request_id, trigger="timer",
                          mode=str(token.mode), index=token.index)
        record = self._requests.read(request_id)
        if record is None:
            log.debug("request_not_found")
            return EscalationOutcome.NOT_FOUND
        if record.status != RequestStatus.PENDING:
            log.debug("request_not_pending", status=str(record.status))
            return EscalationOutcome.STALE
        if live_token(record) != token:
            log.debug("stale_timer", current_index=record.current_candidate_index,
                      public=record.is_public)
            return EscalationOutcome.STALE
        return self._advance(record)

    def escalate_now(self, request_id: str) -> EscalationOutcome:
        """Operator override: advance now, whatever timer is armed."""
        log = logger.bind(request_id=request_id, trigger="manual")
        record = self._requests.read(request_id)
        if record is None:
            log.debug("request_not_found")
            return EscalationOutcome.NOT_FOUND
        if record.status != RequestStatus.PENDING:
            log.debug("request_not_pending", status=str(record.status))
            return EscalationOutcome.STALE
        if not record.escalation_initialized:
            return self._initialize(record)
        return self._advance(record)

    def on_status_changed(
        self, request_id: str, previous: RequestStatus, new: RequestStatus
    ) -> EscalationOutcome:
        """React to an external accept or complete.

        Acceptance stops escalation: armed timers are dropped (they would
        no-op anyway) and ``accepted_at`` is stamped if the acceptor left it
        unset. Completion stamps ``completed_at`` the same way.
        """
        if previous == RequestStatus.PENDING and new == RequestStatus.ACCEPTED:
            try:
                self._scheduler.cancel(request_id)
            except SchedulerError as exc:
                logger.warning("timer_cancel_failed", request_id=request_id, error=str(exc))
            return self._stamp(request_id, RequestStatus.ACCEPTED, "accepted_at")
        if previous == RequestStatus.ACCEPTED and new == RequestStatus.COMPLETED:
            return self._stamp(request_id, RequestStatus.COMPLETED, "completed_at")
        return EscalationOutcome.IGNORED

    # ---- transitions ----

    def _initialize(self, record: RequestRecord) -> EscalationOutcome:
        prefs = self._load_preferences(record)
        candidates = prefs.ordered_candidates() if prefs else []
        now = self._clock.now()
        expected = {
            "status": RequestStatus.PENDING,
            "is_public": False,
            "current_candidate_index": None,
            "escalation_started_at": None,
        }
        if not candidates:
            handlers = self._load_directory(record)
            return self._enter_public(record, handlers, now, expected)

        first = candidates[0]
        patch = RecordPatch(
            fields={
                "current_candidate_index": 0,
                "assigned_handler_id": first.handler_id,
                "assigned_at": now,
                "escalation_started_at": now,
            },
            notify=frozenset({first.handler_id}),
        )
        token = TimerToken(request_id=record.id, mode=TimerMode.CANDIDATE, index=0)
        due = self._candidate_due(now, now, first, prefs)
        return self._commit(record, expected, patch, token, due, first.handler_id,
                            EscalationOutcome.ASSIGNED)

    def _advance(self, record: RequestRecord) -> EscalationOutcome:
        now = self._clock.now()
        if record.is_public:
            return self._advance_public(record, now)

        prefs = self._load_preferences(record)
        candidates = prefs.ordered_candidates() if prefs else []
        expected = {
            "status": RequestStatus.PENDING,
            "is_public": False,
            "current_candidate_index": record.current_candidate_index,
        }
        index = record.current_candidate_index if record.current_candidate_index is not None else -1
        next_index = index + 1
        started = record.escalation_started_at or now
        max_duration = self._max_duration(prefs)
        elapsed = int((now - started).total_seconds())

        if max_duration is not None and elapsed >= max_duration:
            logger.info("escalation_duration_reached", request_id=record.id,
                        elapsed=elapsed, max_duration=max_duration)
            return self._enter_public(record, self._load_directory(record), now, expected)
        if next_index >= len(candidates):
            logger.info("candidates_exhausted", request_id=record.id, count=len(candidates))
            return self._enter_public(record, self._load_directory(record), now, expected)

        target = candidates[next_index]
        patch = RecordPatch(
            fields={
                "current_candidate_index": next_index,
                "assigned_handler_id": target.handler_id,
                "assigned_at": now,
            },
            notify=frozenset({target.handler_id}),
        )
        token = TimerToken(request_id=record.id, mode=TimerMode.CANDIDATE, index=next_index)
        due = self._candidate_due(now, started, target, prefs)
        return self._commit(record, expected, patch, token, due, target.handler_id,
                            EscalationOutcome.ADVANCED)

    def _advance_public(self, record: RequestRecord, now: datetime) -> EscalationOutcome:
        handlers = self._load_directory(record)
        index = record.current_candidate_index or 0
        # An empty pool at fallback leaves index 0 unassigned; fill it first.
        next_index = index + 1 if record.assigned_handler_id is not None else index
        if next_index >= len(handlers):
            logger.info("public_pool_exhausted", request_id=record.id,
                        index=index, pool_size=len(handlers))
            return EscalationOutcome.EXHAUSTED

        target = handlers[next_index]
        expected = {
            "status": RequestStatus.PENDING,
            "is_public": True,
            "current_candidate_index": record.current_candidate_index,
        }
        patch = RecordPatch(
            fields={
                "current_candidate_index": next_index,
                "assigned_handler_id": target.handler_id,
                "assigned_at": now,
            },
            notify=frozenset({target.handler_id}),
        )
        token = TimerToken(request_id=record.id, mode=TimerMode.PUBLIC, index=next_index)
        due = now + timedelta(seconds=self._config.public_reevaluation_interval_seconds)
        return self._commit(record, expected, patch, token, due, target.handler_id,
                            EscalationOutcome.PUBLIC_ADVANCED)

    def _enter_public(
        self,
        record: RequestRecord,
        handlers: list[Handler],
        now: datetime,
        expected: dict[str, Any],
    ) -> EscalationOutcome:
        fields: dict[str, Any] = {"is_public": True, "current_candidate_index": 0}
        if record.escalation_started_at is None:
            fields["escalation_started_at"] = now
        if handlers:
            first = handlers[0].handler_id
            fields.update(assigned_handler_id=first, assigned_at=now)
            notify = frozenset({first})
        else:
            logger.info("public_pool_empty", request_id=record.id)
            fields.update(assigned_handler_id=None, assigned_at=None)
            first = None
            notify = frozenset()
        token = TimerToken(request_id=record.id, mode=TimerMode.PUBLIC, index=0)
        due = now + timedelta(seconds=self._config.public_reevaluation_interval_seconds)
        return self._commit(record, expected, RecordPatch(fields=fields, notify=notify),
                            token, due, first, EscalationOutcome.WENT_PUBLIC)

    def _commit(
        self,
        record: RequestRecord,
        expected: dict[str, Any],
        patch: RecordPatch,
        token: TimerToken,
        due: datetime,
        handler_id: str | None,
        outcome: EscalationOutcome,
    ) -> EscalationOutcome:
        # Arm first: if scheduling fails nothing is committed and the trigger
        # can be redelivered. A timer armed for a losing patch is stale and
        # no-ops when it fires.
        self._scheduler.schedule(token, due)
        if not self._requests.compare_and_update(record.id, expected, patch):
            logger.debug("transition_conflict", request_id=record.id,
                         attempted=str(outcome), expected_index=record.current_candidate_index)
            return EscalationOutcome.CONFLICT

        logger.info("escalation_transition", request_id=record.id, outcome=str(outcome),
                    index=patch.fields.get("current_candidate_index"),
                    handler_id=handler_id, public=patch.fields.get("is_public", record.is_public),
                    next_check=due.isoformat())
        if handler_id is not None and handler_id not in record.notified_handlers:
            self._notify(handler_id, record.id)
        return outcome

    def _stamp(self, request_id: str, status: RequestStatus, field_name: str) -> EscalationOutcome:
        patch = RecordPatch(fields={field_name: self._clock.now()})
        if self._requests.compare_and_update(request_id, {"status": status, field_name: None}, patch):
            logger.info("status_timestamp_recorded", request_id=request_id, field=field_name)
            return EscalationOutcome.STAMPED
        logger.debug("status_timestamp_present", request_id=request_id, field=field_name)
        return EscalationOutcome.IGNORED

    def _rearm(self, record: RequestRecord) -> None:
        token = live_token(record)
        if token is None:
            return
        assigned = record.assigned_at or record.escalation_started_at or self._clock.now()
        if token.mode is TimerMode.PUBLIC:
            due = assigned + timedelta(seconds=self._config.public_reevaluation_interval_seconds)
        else:
            prefs = self._load_preferences(record)
            candidates = prefs.ordered_candidates() if prefs else []
            if token.index >= len(candidates):
                due = assigned
            else:
                due = self._candidate_due(assigned, record.escalation_started_at or assigned,
                                          candidates[token.index], prefs)
        self._scheduler.schedule(token, due)

    # ---- collaborators ----

    def _load_preferences(self, record: RequestRecord) -> PreferenceList | None:
        try:
            return self._preferences.get_preferences(record.requester_id)
        except UpstreamUnavailableError as exc:
            logger.warning("preferences_unavailable", request_id=record.id,
                           requester_id=record.requester_id, error=str(exc))
            raise

    def _load_directory(self, record: RequestRecord) -> list[Handler]:
        try:
            return self._directory.list_all_handlers()
        except UpstreamUnavailableError as exc:
            logger.warning("directory_unavailable", request_id=record.id, error=str(exc))
            raise

    def _notify(self, handler_id: str, request_id: str) -> None:
        try:
            self._notifier.notify(handler_id, request_id)
        except NotificationError as exc:
            logger.warning("notification_failed", request_id=request_id,
                           handler_id=handler_id, error=str(exc))

    # ---- timing ----

    def _timeout(self, candidate: Candidate, prefs: PreferenceList | None) -> int:
        if candidate.response_timeout_seconds is not None:
            return candidate.response_timeout_seconds
        if prefs is not None and prefs.default_response_timeout_seconds is not None:
            return prefs.default_response_timeout_seconds
        return self._config.default_response_timeout_seconds

    def _max_duration(self, prefs: PreferenceList | None) -> int | None:
        if prefs is not None and prefs.max_escalation_duration_seconds is not None:
            value = prefs.max_escalation_duration_seconds
        else:
            value = self._config.max_escalation_duration_seconds
        return value or None

    def _candidate_due(
        self, now: datetime, started: datetime, candidate: Candidate, prefs: PreferenceList | None
    ) -> datetime:
        """Candidate timeout, capped at the escalation deadline."""
        due = now + timedelta(seconds=self._timeout(candidate, prefs))
        max_duration = self._max_duration(prefs)
        if max_duration is not None:
            due = min(due, started + timedelta(seconds=max_duration))
        return due
