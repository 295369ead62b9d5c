"""Showing request endpoints: intake, accept, complete, manual escalation."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from showingdesk.api.routes.deps import get_runtime
from showingdesk.core.exceptions import (
    InvalidTransitionError,
    RecordNotFoundError,
    RequestExistsError,
    UpstreamUnavailableError,
)
from showingdesk.engine import actions
from showingdesk.engine.factory import Runtime
from showingdesk.engine.state import escalation_state
from showingdesk.models.request import RequestRecord

router = APIRouter(tags=["requests"])


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateRequestBody(_Body):
    requester_id: str
    payload: dict[str, Any] = Field(default_factory=dict)
    request_id: str | None = None


class AcceptBody(_Body):
    handler_id: str


def _view(record: RequestRecord) -> dict[str, Any]:
    data = record.model_dump(mode="json", by_alias=True)
    data["notifiedHandlers"] = sorted(record.notified_handlers)
    data["escalationState"] = str(escalation_state(record))
    return data


def _load(runtime: Runtime, request_id: str) -> RequestRecord:
    record = runtime.persistence.requests.read(request_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"request {request_id!r} not found")
    return record


@router.post("", status_code=201)
def create_request(body: CreateRequestBody, runtime: Runtime = Depends(get_runtime)) -> dict:
    try:
        record = actions.create_request(
            runtime.persistence.requests, runtime.clock,
            body.requester_id, body.payload, body.request_id,
        )
        if runtime.settings.escalation.dispatch_inline:
            runtime.engine.on_request_created(record.id)
    except RequestExistsError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return _view(_load(runtime, record.id))


@router.get("/{request_id}")
def get_request(request_id: str, runtime: Runtime = Depends(get_runtime)) -> dict:
    return _view(_load(runtime, request_id))


@router.post("/{request_id}/accept")
def accept_request(request_id: str, body: AcceptBody, runtime: Runtime = Depends(get_runtime)) -> dict:
    _change_status(runtime, request_id, actions.accept_request, body.handler_id)
    return _view(_load(runtime, request_id))


@router.post("/{request_id}/complete")
def complete_request(request_id: str, runtime: Runtime = Depends(get_runtime)) -> dict:
    _change_status(runtime, request_id, actions.complete_request)
    return _view(_load(runtime, request_id))


@router.post("/{request_id}/escalate")
def escalate_request(request_id: str, runtime: Runtime = Depends(get_runtime)) -> dict:
    """Operator override: move to the next candidate or public handler now."""
    try:
        outcome = runtime.engine.escalate_now(request_id)
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    record = _load(runtime, request_id)
    return {"outcome": str(outcome), "request": _view(record)}


def _change_status(runtime: Runtime, request_id: str, action, *args: str) -> None:
    before = _load(runtime, request_id)
    try:
        action(runtime.persistence.requests, runtime.clock, request_id, *args)
    except RecordNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if runtime.settings.escalation.dispatch_inline:
        after = _load(runtime, request_id)
        runtime.engine.on_status_changed(request_id, before.status, after.status)
