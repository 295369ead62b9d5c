"""Trigger payloads, timer tokens, and escalation outcomes."""

from __future__ import annotations

from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from showingdesk.models.request import RequestRecord


class TimerMode(StrEnum):
    CANDIDATE = "candidate"
    PUBLIC = "public"


class TimerToken(BaseModel):
    """Identity and index/mode captured when a timer is armed."""

    model_config = ConfigDict(frozen=True)

    request_id: str
    mode: TimerMode
    index: int


class EscalationState(StrEnum):
    UNASSIGNED = "unassigned"
    ASSIGNED_TO_CANDIDATE = "assigned_to_candidate"
    PUBLIC = "public"
    ACCEPTED = "accepted"
    TERMINAL = "terminal"


class EscalationOutcome(StrEnum):
    """What an engine entry point did. No-op outcomes are expected under races."""

    ASSIGNED = "assigned"
    ADVANCED = "advanced"
    WENT_PUBLIC = "went_public"
    PUBLIC_ADVANCED = "public_advanced"
    EXHAUSTED = "exhausted"
    DUPLICATE = "duplicate"
    STALE = "stale"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    STAMPED = "stamped"
    IGNORED = "ignored"


class IntakeEvent(BaseModel):
    """Fired once per new request by the intake collaborator."""

    request_id: str
    requester_id: str
    payload: dict[str, Any] = Field(default_factory=dict)


class ChangeEvent(BaseModel):
    """Fired on every write to a request record."""

    request_id: str
    before: Optional[RequestRecord] = None
    after: Optional[RequestRecord] = None
