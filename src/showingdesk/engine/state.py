"""Derive the escalation state-machine position from a stored record."""

from __future__ import annotations

from showingdesk.models.events import EscalationState, TimerMode, TimerToken
from showingdesk.models.request import RequestRecord, RequestStatus


def escalation_state(record: RequestRecord) -> EscalationState:
    if record.status == RequestStatus.COMPLETED:
        return EscalationState.TERMINAL
    if record.status == RequestStatus.ACCEPTED:
        return EscalationState.ACCEPTED
    if record.is_public:
        return EscalationState.PUBLIC
    if record.current_candidate_index is not None:
        return EscalationState.ASSIGNED_TO_CANDIDATE
    return EscalationState.UNASSIGNED


def live_token(record: RequestRecord) -> TimerToken | None:
    """The only timer token that may still act on ``record``.

    Any other token for the same request is stale.
    """
    state = escalation_state(record)
    if state is EscalationState.ASSIGNED_TO_CANDIDATE:
        return TimerToken(request_id=record.id, mode=TimerMode.CANDIDATE,
                          index=record.current_candidate_index)
    if state is EscalationState.PUBLIC:
        return TimerToken(request_id=record.id, mode=TimerMode.PUBLIC,
                          index=record.current_candidate_index or 0)
    return None
