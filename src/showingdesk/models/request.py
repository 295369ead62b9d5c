"""Showing request record and the partial-field patches applied to it."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class RequestStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    COMPLETED = "completed"

    def can_transition_to(self, target: RequestStatus) -> bool:
        """Status only moves forward: pending -> accepted -> completed."""
        order = list(RequestStatus)
        return order.index(target) == order.index(self) + 1


class RequestRecord(BaseModel):
    """Durable per-request state shared by the engine and external writers.

    ``current_candidate_index`` addresses the requester's preference list
    while ``is_public`` is false and the handler directory snapshot after the
    switch to public.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    requester_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    status: RequestStatus = RequestStatus.PENDING
    current_candidate_index: Optional[int] = None
    assigned_handler_id: Optional[str] = None
    assigned_at: Optional[datetime] = None
    escalation_started_at: Optional[datetime] = None
    is_public: bool = False
    notified_handlers: set[str] = Field(default_factory=set)
    created_at: datetime
    accepted_by: Optional[str] = None
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    version: int = 0

    @property
    def escalation_initialized(self) -> bool:
        return self.escalation_started_at is not None or self.is_public


class RecordPatch(BaseModel):
    """Partial update: plain field assignments plus additions to ``notified_handlers``.

    Additions are merged into the stored set, never written as a whole, so
    two writers adding different handlers cannot clobber each other.
    """

    fields: dict[str, Any] = Field(default_factory=dict)
    notify: frozenset[str] = frozenset()

    @field_validator("fields")
    @classmethod
    def _known_fields(cls, v: dict[str, Any]) -> dict[str, Any]:
        protected = {"id", "version", "notified_handlers"}
        for name in v:
            if name not in RequestRecord.model_fields or name in protected:
                raise ValueError(f"field {name!r} cannot be patched")
        return v

    def apply(self, record: RequestRecord) -> RequestRecord:
        """Return a copy of ``record`` with this patch applied and version bumped."""
        update = dict(self.fields)
        update["notified_handlers"] = record.notified_handlers | set(self.notify)
        update["version"] = record.version + 1
        return record.model_copy(update=update, deep=True)


def matches(record: RequestRecord, expected: dict[str, Any]) -> bool:
    """True when every expected field equals the record's current value."""
    return all(getattr(record, name) == value for name, value in expected.items())
