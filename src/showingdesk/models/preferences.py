"""Preference list and handler directory models (read-only to the engine)."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class Candidate(_CamelModel):
    """A ranked handler drawn from a requester's preference list."""

    handler_id: str
    display_name: str = ""
    contact_ref: str = ""
    response_timeout_seconds: Optional[int] = None  # falls back to the list default
    rank: int = 0


class PreferenceList(_CamelModel):
    """Ordered preferred handlers and timeout configuration for one requester."""

    requester_id: str
    candidates: list[Candidate] = Field(default_factory=list)
    default_response_timeout_seconds: Optional[int] = None
    max_escalation_duration_seconds: Optional[int] = None

    def ordered_candidates(self) -> list[Candidate]:
        """Candidates by rank; ties keep their list position."""
        return sorted(self.candidates, key=lambda c: c.rank)


class Handler(_CamelModel):
    """A member of the public pool."""

    handler_id: str
    display_name: str = ""
    contact_ref: str = ""
    role: str = "showing_agent"
