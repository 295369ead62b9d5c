"""Dispatch intake and change events to the escalation engine."""

from __future__ import annotations

import structlog

from showingdesk.engine.escalation import EscalationEngine
from showingdesk.models.events import ChangeEvent, EscalationOutcome, IntakeEvent
from showingdesk.models.request import RequestRecord

logger = structlog.get_logger(__name__)


class TriggerRouter:
    """Turns document-store events into engine calls.

    Only inserts and status changes reach the engine. The engine's own
    patches never change status, so its writes come back here as ignored
    changes instead of re-triggering it.
    """

    def __init__(self, engine: EscalationEngine) -> None:
        self._engine = engine

    def handle_intake(self, event: IntakeEvent) -> EscalationOutcome:
        return self._engine.on_request_created(event.request_id)

    def handle_change(self, event: ChangeEvent) -> EscalationOutcome:
        before, after = event.before, event.after
        if after is None:
            logger.debug("record_removed", request_id=event.request_id)
            return EscalationOutcome.IGNORED
        if before is None:
            return self._engine.on_request_created(event.request_id)
        if before.status == after.status:
            return EscalationOutcome.IGNORED
        if not before.status.can_transition_to(after.status):
            logger.warning("status_transition_skipped", request_id=event.request_id,
                           previous=str(before.status), new=str(after.status))
            return EscalationOutcome.IGNORED
        return self._engine.on_status_changed(event.request_id, before.status, after.status)

    def on_record_written(self, before: RequestRecord | None, after: RequestRecord) -> None:
        """Listener signature for MemoryRequestStore.subscribe."""
        self.handle_change(ChangeEvent(request_id=after.id, before=before, after=after))
